import json
from dataclasses import dataclass
from typing import Any, Callable, List, Literal, Optional, Protocol, Tuple

from .exceptions import ParseError
from .models import ROLES, Turn


MutationKind = Literal["initialize", "append", "replace_last", "reset"]


@dataclass(frozen=True)
class StoreMutation:
    kind: MutationKind
    turns: Tuple[Turn, ...]

    @property
    def length(self) -> int:
        return len(self.turns)


StoreListener = Callable[[StoreMutation], None]


class KeyValueStorage(Protocol):
    """同源共享的持久化键值存储（字符串到字符串）。

    不可用时各方法抛出 StorageError。
    """

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


def encode_turns(turns: List[Turn]) -> str:
    return json.dumps([t.to_payload() for t in turns], ensure_ascii=False)


def decode_turns(raw: str) -> List[Turn]:
    """把存储中的 JSON 数组还原为 Turn 列表，结构不符时抛出 ParseError。"""
    try:
        data: Any = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise ParseError(code="TURNS_NOT_JSON", message=str(e))
    if not isinstance(data, list):
        raise ParseError(code="TURNS_NOT_LIST", message=f"expected list, got {type(data).__name__}")
    turns: List[Turn] = []
    for idx, item in enumerate(data):
        if not isinstance(item, dict):
            raise ParseError(code="TURN_INVALID", message=f"item {idx} is not an object")
        role = item.get("role")
        content = item.get("content")
        if role not in ROLES or not isinstance(content, str):
            raise ParseError(code="TURN_INVALID", message=f"item {idx} has invalid role/content")
        turns.append(Turn(role=role, content=content))
    return turns
