"""浏览器会话标识。

首次访问时生成并立即写入存储，之后原样读取。存储完全不可用时
返回固定的哨兵值，而不是抛出异常；一旦退化为哨兵，本进程内的
所有实例都沿用它。
"""

import logging
import os
import time
from typing import Optional
from uuid import uuid4

from aiw_core.config.settings import settings as default_settings
from aiw_core.domain.conversation import KeyValueStorage
from aiw_core.domain.exceptions import StorageError
from aiw_core.infrastructure.logging.logger import logger


ANONYMOUS_SESSION_ID = "aiw-anonymous-session"

# 进程级标记：存储曾经不可用
_storage_unavailable = False


def new_session_id() -> str:
    try:
        return str(uuid4())
    except NotImplementedError:
        # 系统随机源不可用时退化为基于时间戳的标识
        return f"s-{time.time_ns():x}-{os.getpid():x}"


class SessionIdentity:
    def __init__(self, storage: KeyValueStorage, cfg=default_settings):
        self._storage = storage
        self._key: str = cfg.session_storage_key
        self._cached: Optional[str] = None

    def get_or_create(self) -> str:
        global _storage_unavailable
        if self._cached is not None:
            return self._cached
        if _storage_unavailable:
            self._cached = ANONYMOUS_SESSION_ID
            return self._cached
        try:
            existing = self._storage.get(self._key)
            if existing:
                self._cached = existing
                return existing
            sid = new_session_id()
            self._storage.set(self._key, sid)
        except StorageError as e:
            logger.log(
                logging.WARNING,
                "Session storage unavailable, using anonymous id",
                extra={"extra": {"key": self._key, "code": e.code}},
            )
            _storage_unavailable = True
            sid = ANONYMOUS_SESSION_ID
        self._cached = sid
        return sid
