"""对外 API 服务模块。

把存储、会话标识、持久化、会话日志与控制器组装成一个在线演示实例，
并提供简化的函数接口供上层应用调用。
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from aiw_core.chat.controller import RequestController
from aiw_core.chat.scroll import ScrollFollower, ScrollViewport
from aiw_core.chat.starters import StarterPrompts
from aiw_core.chat.store import ConversationStore
from aiw_core.config.settings import settings
from aiw_core.domain.conversation import KeyValueStorage
from aiw_core.infrastructure.logging.logger import logger
from aiw_core.infrastructure.storage.json_store import JsonFileStorage
from aiw_core.infrastructure.storage.persistence import PersistenceGateway
from aiw_core.infrastructure.storage.session_identity import SessionIdentity
from aiw_core.providers import create_completion_client
from aiw_core.providers.base import CompletionClient


@dataclass
class LiveChatDemo:
    storage: KeyValueStorage
    identity: SessionIdentity
    gateway: PersistenceGateway
    store: ConversationStore
    controller: RequestController
    starters: StarterPrompts
    follower: Optional[ScrollFollower] = None

    def close(self) -> None:
        """界面卸载：作废在途请求并写出尚未落盘的变更。"""
        self.controller.cancel()
        self.gateway.close()


def create_live_demo(
    storage: Optional[KeyValueStorage] = None,
    client: Optional[CompletionClient] = None,
    viewport: Optional[ScrollViewport] = None,
    cfg=settings,
) -> LiveChatDemo:
    """创建并初始化一个在线演示实例。

    Args:
        storage: 键值存储（可选，默认使用 JsonFileStorage）
        client: 补全客户端（可选，默认按配置创建 HttpCompletionClient）
        viewport: 滚动容器（可选，提供时启用自动滚动跟随）
        cfg: 配置对象

    Returns:
        已完成 initialize() 的 LiveChatDemo
    """
    storage = storage if storage is not None else JsonFileStorage(cfg.storage_path)
    identity = SessionIdentity(storage, cfg)
    gateway = PersistenceGateway(storage, cfg)
    store = ConversationStore(gateway=gateway, cfg=cfg)
    follower = None
    if viewport is not None:
        follower = ScrollFollower(viewport, cfg=cfg)
        follower.attach(store)
    controller = RequestController(store, client or create_completion_client(), identity=identity)
    starters = StarterPrompts(controller, store)
    store.initialize()
    logger.info(f"Live chat demo ready with {len(store)} turns")
    return LiveChatDemo(
        storage=storage,
        identity=identity,
        gateway=gateway,
        store=store,
        controller=controller,
        starters=starters,
        follower=follower,
    )


_demo: Optional[LiveChatDemo] = None


def get_default_demo() -> LiveChatDemo:
    """获取默认的在线演示实例（单例）。"""
    global _demo
    if _demo is None:
        _demo = create_live_demo()
    return _demo


async def send_message(text: str) -> Dict[str, Any]:
    """发送一条消息并返回本轮结果。

    Returns:
        包含 outcome、reply、error 与完整消息列表的字典；空输入时 outcome 为 "ignored"
    """
    demo = get_default_demo()
    outcome = await demo.controller.send(text)
    last = demo.store.last
    return {
        "outcome": type(outcome).__name__.lower() if outcome is not None else "ignored",
        "reply": last.content if last is not None and last.role == "assistant" else None,
        "error": demo.controller.error,
        "turns": list_turns(),
    }


def list_turns() -> List[Dict[str, str]]:
    return [t.to_payload() for t in get_default_demo().store.turns]


def reset_conversation() -> List[Dict[str, str]]:
    get_default_demo().controller.reset()
    return list_turns()
