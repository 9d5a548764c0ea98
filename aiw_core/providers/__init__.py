"""补全服务集成层。

该包下的模块负责：
- 定义补全客户端抽象接口 (base)。
- 提供基于 httpx 的具体实现 (http_client)。
"""

from typing import Optional

from aiw_core.config.settings import settings
from aiw_core.providers.base import CompletionClient
from aiw_core.providers.http_client import HttpCompletionClient


def create_completion_client(endpoint: Optional[str] = None) -> CompletionClient:
    """根据配置创建补全客户端，endpoint 为空时取配置中的 completion_endpoint。"""

    return HttpCompletionClient(settings, endpoint=endpoint)
