from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True)
class TokenResourceState:
    token_id: int
    pending: list[int] = field(default_factory=list)
    active: list[int] = field(default_factory=list)
    priorities: list[int] = field(default_factory=list)
    overwrites: dict[int, int] = field(default_factory=dict)
    membership: set[int] = field(default_factory=set)

    def is_empty(self) -> bool:
        return not self.pending and not self.active and not self.membership
