"""会话日志的防抖持久化。

PersistenceGateway 订阅 ConversationStore 的每一次变更，并在固定延迟后
把最近 N 条消息整体写入键值存储。任意时刻最多只有一个待执行的写入，
新的变更会取消并替换它。
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

from aiw_core.config.settings import settings as default_settings
from aiw_core.domain.conversation import (
    KeyValueStorage,
    StoreMutation,
    decode_turns,
    encode_turns,
)
from aiw_core.domain.exceptions import ParseError, StorageError
from aiw_core.domain.models import Turn
from aiw_core.infrastructure.logging.logger import logger


class PersistenceGateway:
    def __init__(self, storage: KeyValueStorage, cfg=default_settings):
        self._storage = storage
        self._key: str = cfg.chat_storage_key
        self._delay: float = cfg.persist_debounce_ms / 1000.0
        self._max_turns: int = cfg.persist_max_turns
        self._pending: Optional[asyncio.TimerHandle] = None
        self._latest: List[Turn] = []

    @property
    def key(self) -> str:
        return self._key

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def attach(self, store) -> Callable[[], None]:
        """订阅 store 的变更，返回取消订阅函数。"""
        return store.subscribe(self.on_mutation)

    def read(self) -> Optional[List[Turn]]:
        """读取持久化的消息序列；缺失或结构不合法时返回 None。"""
        try:
            raw = self._storage.get(self._key)
        except StorageError as e:
            self._log(logging.WARNING, "Chat log read failed", code=e.code, error=e.message)
            return None
        if raw is None:
            return None
        try:
            return decode_turns(raw)
        except ParseError as e:
            self._log(logging.WARNING, "Ignoring malformed chat log", code=e.code, error=e.message)
            return None

    def on_mutation(self, event: StoreMutation) -> None:
        if event.kind == "reset":
            self.clear()
        self._latest = list(event.turns)
        self._schedule()

    def flush(self) -> None:
        """立即写入最近一次变更后的状态。"""
        self._cancel_pending()
        kept = self._latest[-self._max_turns:]
        try:
            self._storage.set(self._key, encode_turns(kept))
        except StorageError as e:
            self._log(logging.WARNING, "Chat log write failed", code=e.code, error=e.message)
            return
        if len(kept) < len(self._latest):
            self._log(logging.INFO, "Truncated persisted chat log", kept=len(kept), total=len(self._latest))

    def clear(self) -> None:
        self._cancel_pending()
        try:
            self._storage.remove(self._key)
        except StorageError as e:
            self._log(logging.WARNING, "Chat log clear failed", code=e.code, error=e.message)

    def close(self) -> None:
        if self._pending is not None:
            self.flush()

    def _schedule(self) -> None:
        self._cancel_pending()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # 没有事件循环（同步调用场景）时直接写入
            self.flush()
            return
        self._pending = loop.call_later(self._delay, self._on_timer)

    def _on_timer(self) -> None:
        self._pending = None
        self.flush()

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _log(self, level: int, message: str, **fields: Any) -> None:
        payload: Dict[str, Any] = {"key": self._key}
        payload.update(fields)
        logger.log(level, message, extra={"extra": payload})
