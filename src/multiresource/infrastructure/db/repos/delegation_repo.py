from __future__ import annotations

from pathlib import Path

from multiresource.infrastructure.db.sqlite import get_connection


class DelegationRepo:
    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path

    def set_delegate(self, token_id: int, delegate: str | None) -> None:
        with get_connection(self.db_path) as conn:
            if delegate is None:
                conn.execute("DELETE FROM resource_delegates WHERE token_id = ?", (token_id,))
            else:
                conn.execute(
                    """
                    INSERT INTO resource_delegates (token_id, delegate) VALUES (?, ?)
                    ON CONFLICT(token_id) DO UPDATE SET delegate = excluded.delegate
                    """,
                    (token_id, delegate),
                )
            conn.commit()

    def get_delegate(self, token_id: int) -> str | None:
        with get_connection(self.db_path) as conn:
            row = conn.execute(
                "SELECT delegate FROM resource_delegates WHERE token_id = ?",
                (token_id,),
            ).fetchone()
        return row["delegate"] if row else None

    def set_operator(self, owner: str, operator: str, enabled: bool) -> None:
        with get_connection(self.db_path) as conn:
            if enabled:
                conn.execute(
                    "INSERT OR IGNORE INTO resource_operators (owner, operator) VALUES (?, ?)",
                    (owner, operator),
                )
            else:
                conn.execute(
                    "DELETE FROM resource_operators WHERE owner = ? AND operator = ?",
                    (owner, operator),
                )
            conn.commit()

    def is_operator(self, owner: str, operator: str) -> bool:
        with get_connection(self.db_path) as conn:
            row = conn.execute(
                "SELECT 1 FROM resource_operators WHERE owner = ? AND operator = ?",
                (owner, operator),
            ).fetchone()
        return row is not None
