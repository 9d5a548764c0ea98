"""补全接口的 HTTP 适配器。

本模块负责：

1. 把消息序列包装为 {messages, stream: false} 请求体。
2. 调用补全接口并处理网络/HTTP 异常。
3. 按响应的 content-type 归一化出回复文本：
   - application/json: 取 reply 字段，缺失时退回原始文本；
   - 其他类型: 原样使用响应文本。
"""

import logging
from typing import List, Optional

import httpx

from aiw_core.config.settings import settings as default_settings
from aiw_core.domain.exceptions import ApiError, NetworkError
from aiw_core.domain.models import CompletionRequest, Turn
from aiw_core.infrastructure.logging.logger import logger


ERROR_BODY_LIMIT = 300


class HttpCompletionClient:
    """补全接口客户端实现。"""

    name = "http"

    def __init__(self, cfg=default_settings, endpoint: Optional[str] = None):
        self._settings = cfg
        self._endpoint = endpoint or cfg.completion_endpoint

    @property
    def endpoint(self) -> str:
        return self._endpoint

    async def complete(self, messages: List[Turn], *, session_id: Optional[str] = None) -> str:
        payload = CompletionRequest(messages=list(messages)).to_payload()
        headers = {"Content-Type": "application/json"}
        if session_id:
            headers["X-Session-Id"] = session_id
        timeout = getattr(self._settings, "request_timeout", None)
        try:
            async with httpx.AsyncClient(timeout=timeout, trust_env=False) as client:
                resp = await client.post(self._endpoint, json=payload, headers=headers)
        except httpx.RequestError as e:
            # 网络错误：DNS 失败、连接超时等
            raise NetworkError(code="NETWORK_ERROR", message=str(e) or type(e).__name__, endpoint=self._endpoint)
        if not 200 <= resp.status_code < 300:
            body = resp.text or ""
            raise ApiError(
                code="API_ERROR",
                message=f"HTTP {resp.status_code}: {body[:ERROR_BODY_LIMIT]}",
                http_status=resp.status_code,
            )
        return self._extract_reply(resp)

    def _extract_reply(self, resp) -> str:
        text = resp.text or ""
        content_type = resp.headers.get("content-type", "")
        if "application/json" not in content_type.lower():
            return text
        try:
            data = resp.json()
        except ValueError as e:
            # 响应声称是 JSON 但无法解析：降级为原始文本
            logger.log(
                logging.WARNING,
                "Completion response is not valid JSON",
                extra={"extra": {"endpoint": self._endpoint, "error": str(e)}},
            )
            return text
        if isinstance(data, dict) and isinstance(data.get("reply"), str):
            return data["reply"]
        return text
