from __future__ import annotations

import uuid

from multiresource.core.errors import InvalidIdError

# SQLite INTEGER columns are signed 64-bit.
MAX_ID = 2**63 - 1


def new_uuid() -> str:
    """Generate a new UUID4 as a string."""
    return str(uuid.uuid4())


def require_id(value: int, what: str = "id") -> int:
    """Return ``value`` if it is a usable non-zero id, else raise InvalidIdError."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidIdError(f"{what} must be an integer, got {value!r}")
    if value <= 0 or value > MAX_ID:
        raise InvalidIdError(f"{what} must be in 1..{MAX_ID}, got {value}")
    return value


def fits_id(value: int) -> bool:
    """Whether ``value`` can be bound to an id column at all."""
    return isinstance(value, int) and -MAX_ID - 1 <= value <= MAX_ID
