"""持久化键值存储实现。

- JsonFileStorage: 以单个 JSON 文件保存所有键，写入通过临时文件 + os.replace 保证原子性。
- MemoryStorage: 进程内存储，用于测试和无法落盘的场景。
- UnavailableStorage: 模拟受限环境，任何访问都抛出 StorageError。

多个进程共享同一文件时没有锁，后写者覆盖先写者。
"""

import json
import os
from pathlib import Path
from typing import Dict, Optional
from uuid import uuid4

from aiw_core.config.settings import settings
from aiw_core.domain.conversation import KeyValueStorage
from aiw_core.domain.exceptions import StorageError


class JsonFileStorage(KeyValueStorage):
    def __init__(self, path: str | Path | None = None):
        # 目录在首次写入时才创建，构造本身不会因存储不可用而失败
        self._path = Path(path or settings.storage_path).resolve()

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> Optional[str]:
        value = self._read_all().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def remove(self, key: str) -> None:
        data = self._read_all()
        if key in data:
            del data[key]
            self._write_all(data)

    def _read_all(self) -> Dict[str, str]:
        try:
            if not self._path.exists():
                return {}
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except ValueError:
            # 文件损坏视为空存储，下一次写入会覆盖
            return {}
        except OSError as e:
            raise StorageError(code="STORAGE_UNAVAILABLE", message=str(e))
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: Dict[str, str]) -> None:
        tmp_path = self._path.parent / f"{self._path.stem}.{uuid4().hex}.json.tmp"
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError as e:
            try:
                tmp_path.unlink(missing_ok=True)
            except OSError:
                pass
            raise StorageError(code="STORAGE_WRITE_ERROR", message=str(e))


class MemoryStorage(KeyValueStorage):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data


class UnavailableStorage(KeyValueStorage):
    """受限上下文中的存储：所有操作都失败。"""

    def get(self, key: str) -> Optional[str]:
        raise StorageError(code="STORAGE_UNAVAILABLE", message="durable storage is unavailable")

    def set(self, key: str, value: str) -> None:
        raise StorageError(code="STORAGE_UNAVAILABLE", message="durable storage is unavailable")

    def remove(self, key: str) -> None:
        raise StorageError(code="STORAGE_UNAVAILABLE", message="durable storage is unavailable")
