from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True)
class Resource:
    id: int
    uri: str
    tags: list[int] = field(default_factory=list)
    token_enumerated: bool = False
    registered_at: str | None = None


@dataclass(slots=True)
class CustomDataEntry:
    resource_id: int
    tag_id: int
    data: bytes
    updated_at: str
