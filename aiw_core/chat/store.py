"""内存中的会话日志。

ConversationStore 是界面渲染的唯一数据源。每次变更都会在同一调用内、
按订阅顺序同步通知所有监听者（持久化、自动滚动、渲染层），不做缓冲。
"""

import logging
from typing import Callable, List, Optional, Tuple

from aiw_core.config.settings import settings as default_settings
from aiw_core.domain.conversation import MutationKind, StoreListener, StoreMutation
from aiw_core.domain.models import Turn
from aiw_core.infrastructure.logging.logger import logger
from aiw_core.prompts import load_welcome_message


class ConversationStore:
    def __init__(self, gateway=None, welcome: Optional[str] = None, cfg=default_settings):
        self._gateway = gateway
        self._welcome = welcome if welcome is not None else load_welcome_message(getattr(cfg, "locale", "en"))
        self._turns: List[Turn] = []
        self._listeners: List[StoreListener] = []
        if gateway is not None:
            gateway.attach(self)

    @property
    def turns(self) -> Tuple[Turn, ...]:
        return tuple(self._turns)

    @property
    def last(self) -> Optional[Turn]:
        return self._turns[-1] if self._turns else None

    @property
    def welcome(self) -> str:
        return self._welcome

    def __len__(self) -> int:
        return len(self._turns)

    def welcome_turn(self) -> Turn:
        return Turn(role="assistant", content=self._welcome)

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """注册变更监听者，返回取消订阅函数。"""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def initialize(self) -> Tuple[Turn, ...]:
        """从持久化存储恢复日志，失败时以欢迎语作为唯一一条消息。"""
        restored = None
        if self._gateway is not None:
            try:
                restored = self._gateway.read()
            except Exception as e:
                logger.warning(f"Chat log restore failed: {e}")
                restored = None
        if isinstance(restored, list):
            self._turns = list(restored)
        else:
            self._turns = [self.welcome_turn()]
        self._notify("initialize")
        return self.turns

    def append(self, turn: Turn) -> int:
        self._turns.append(turn)
        self._notify("append")
        return len(self._turns)

    def replace_last(self, content: str) -> None:
        if not self._turns:
            logger.warning("replace_last called on an empty conversation log")
            return
        last = self._turns[-1]
        self._turns[-1] = Turn(role=last.role, content=content)
        self._notify("replace_last")

    def reset(self) -> None:
        self._turns = [self.welcome_turn()]
        logger.log(logging.INFO, "Conversation reset")
        self._notify("reset")

    def _notify(self, kind: MutationKind) -> None:
        event = StoreMutation(kind=kind, turns=tuple(self._turns))
        for listener in list(self._listeners):
            listener(event)
