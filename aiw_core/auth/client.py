"""认证服务客户端。

只实现演示站点实际消费的契约：

- POST /auth/login、POST /auth/register，成功返回 { user, tokens: { accessToken, refreshToken } }。
- OAuth 回跳时令牌通过 URL 查询参数带回。

令牌保存在与会话日志相同的键值存储中（auth_access / auth_refresh）。
"""

from typing import Any, Dict, Optional
from urllib.parse import parse_qs

import httpx

from aiw_core.config.settings import settings as default_settings
from aiw_core.domain.conversation import KeyValueStorage
from aiw_core.domain.exceptions import AuthError, NetworkError
from aiw_core.domain.models import AuthSession, AuthTokens


ACCESS_TOKEN_KEY = "auth_access"
REFRESH_TOKEN_KEY = "auth_refresh"


class TokenStore:
    def __init__(self, storage: KeyValueStorage):
        self._storage = storage

    @property
    def access_token(self) -> Optional[str]:
        return self._storage.get(ACCESS_TOKEN_KEY)

    @property
    def refresh_token(self) -> Optional[str]:
        return self._storage.get(REFRESH_TOKEN_KEY)

    def save(self, tokens: AuthTokens) -> None:
        if tokens.access_token:
            self._storage.set(ACCESS_TOKEN_KEY, tokens.access_token)
        if tokens.refresh_token:
            self._storage.set(REFRESH_TOKEN_KEY, tokens.refresh_token)

    def clear(self) -> None:
        self._storage.remove(ACCESS_TOKEN_KEY)
        self._storage.remove(REFRESH_TOKEN_KEY)


def _tokens_from_payload(data: Dict[str, Any]) -> AuthTokens:
    nested = data.get("tokens") or {}
    return AuthTokens(
        access_token=data.get("token") or data.get("accessToken") or nested.get("accessToken"),
        refresh_token=data.get("refreshToken") or nested.get("refreshToken"),
    )


class AuthClient:
    def __init__(self, token_store: TokenStore, cfg=default_settings):
        self._tokens = token_store
        self._settings = cfg

    async def login(self, email: str, password: str) -> AuthSession:
        return await self._authenticate("/auth/login", email, password)

    async def register(self, email: str, password: str) -> AuthSession:
        return await self._authenticate("/auth/register", email, password)

    def accept_redirect(self, query: str) -> Optional[AuthTokens]:
        """保存 OAuth 回跳 URL 查询串中的令牌；没有令牌时返回 None。"""
        params = parse_qs(query.lstrip("?"))
        access = (params.get("accessToken") or params.get("token") or [None])[0]
        if not access:
            return None
        tokens = AuthTokens(access_token=access, refresh_token=(params.get("refreshToken") or [None])[0])
        self._tokens.save(tokens)
        return tokens

    async def _authenticate(self, path: str, email: str, password: str) -> AuthSession:
        url = f"{self._settings.api_base}{path}"
        try:
            async with httpx.AsyncClient(timeout=getattr(self._settings, "request_timeout", None), trust_env=False) as client:
                resp = await client.post(url, json={"email": email, "password": password})
        except httpx.RequestError as e:
            raise NetworkError(code="NETWORK_ERROR", message=str(e) or type(e).__name__, endpoint=url)
        try:
            data = resp.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}
        if not 200 <= resp.status_code < 300:
            raise AuthError(
                code="AUTH_FAILED",
                message=data.get("error") or data.get("message") or "Auth failed",
                http_status=resp.status_code,
            )
        tokens = _tokens_from_payload(data)
        if tokens.access_token:
            self._tokens.save(tokens)
        return AuthSession(user=data.get("user") or {}, tokens=tokens)
