"""认证服务的协作方封装（登录、注册、访问检查）。"""

from aiw_core.auth.client import AuthClient, TokenStore
from aiw_core.auth.guard import AccessGuard

__all__ = ["AccessGuard", "AuthClient", "TokenStore"]
