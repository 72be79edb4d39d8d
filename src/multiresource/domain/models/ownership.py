from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class Token:
    id: int
    owner: str
    approved: str | None
    minted_at: str
