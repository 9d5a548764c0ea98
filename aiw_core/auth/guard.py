from typing import Literal

import httpx

from aiw_core.auth.client import TokenStore
from aiw_core.config.settings import settings as default_settings
from aiw_core.domain.exceptions import StorageError
from aiw_core.infrastructure.logging.logger import logger


AccessState = Literal["allowed", "denied"]


class AccessGuard:
    """受保护页面的访问检查：GET /auth/me，只有 2xx 才放行。"""

    def __init__(self, token_store: TokenStore, cfg=default_settings):
        self._tokens = token_store
        self._settings = cfg

    async def check(self) -> AccessState:
        try:
            token = self._tokens.access_token
        except StorageError as e:
            logger.warning(f"Access check without token storage: {e.message}")
            return "denied"
        if not token:
            return "denied"
        url = f"{self._settings.api_base}/auth/me"
        try:
            async with httpx.AsyncClient(timeout=getattr(self._settings, "request_timeout", None), trust_env=False) as client:
                resp = await client.get(
                    url,
                    headers={"Content-Type": "application/json", "Authorization": f"Bearer {token}"},
                )
        except httpx.RequestError as e:
            logger.warning(f"Access check failed: {e}")
            return "denied"
        if not 200 <= resp.status_code < 300:
            return "denied"
        return "allowed"
