"""补全服务客户端抽象接口。

RequestController 不直接依赖 httpx，而是依赖此协议：

- 默认实现为 HttpCompletionClient（POST JSON 到补全接口）。
- 测试中可以用任意实现了 complete() 的对象替换。
"""

from typing import List, Optional, Protocol

from aiw_core.domain.models import Turn


class CompletionClient(Protocol):
    """补全服务客户端协议。

    complete(messages) 返回归一化后的回复文本（可能为空字符串）；
    网络失败或非 2xx 响应时抛出 NetworkError / ApiError。
    """

    async def complete(self, messages: List[Turn], *, session_id: Optional[str] = None) -> str:
        ...
