from __future__ import annotations

from pathlib import Path

from multiresource.core.ids import fits_id
from multiresource.domain.models.ownership import Token
from multiresource.infrastructure.db.sqlite import get_connection


class OwnershipRepo:
    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path

    def insert(self, token: Token) -> None:
        with get_connection(self.db_path) as conn:
            conn.execute(
                "INSERT INTO tokens (id, owner, approved, minted_at) VALUES (?, ?, ?, ?)",
                (token.id, token.owner, token.approved, token.minted_at),
            )
            conn.commit()

    def get_by_id(self, token_id: int) -> Token | None:
        if not fits_id(token_id):
            return None
        with get_connection(self.db_path) as conn:
            row = conn.execute("SELECT * FROM tokens WHERE id = ?", (token_id,)).fetchone()
        if row is None:
            return None
        return Token(
            id=int(row["id"]),
            owner=row["owner"],
            approved=row["approved"],
            minted_at=row["minted_at"],
        )

    def set_owner(self, token_id: int, owner: str) -> None:
        with get_connection(self.db_path) as conn:
            conn.execute(
                "UPDATE tokens SET owner = ?, approved = NULL WHERE id = ?",
                (owner, token_id),
            )
            conn.commit()

    def set_approved(self, token_id: int, approved: str | None) -> None:
        with get_connection(self.db_path) as conn:
            conn.execute("UPDATE tokens SET approved = ? WHERE id = ?", (approved, token_id))
            conn.commit()

    def delete(self, token_id: int) -> None:
        with get_connection(self.db_path) as conn:
            conn.execute("DELETE FROM tokens WHERE id = ?", (token_id,))
            conn.commit()

    def balance_of(self, owner: str) -> int:
        with get_connection(self.db_path) as conn:
            row = conn.execute("SELECT COUNT(*) AS c FROM tokens WHERE owner = ?", (owner,)).fetchone()
        return int(row["c"])

    def set_operator(self, owner: str, operator: str, approved: bool) -> None:
        with get_connection(self.db_path) as conn:
            if approved:
                conn.execute(
                    "INSERT OR IGNORE INTO transfer_operators (owner, operator) VALUES (?, ?)",
                    (owner, operator),
                )
            else:
                conn.execute(
                    "DELETE FROM transfer_operators WHERE owner = ? AND operator = ?",
                    (owner, operator),
                )
            conn.commit()

    def is_operator(self, owner: str, operator: str) -> bool:
        with get_connection(self.db_path) as conn:
            row = conn.execute(
                "SELECT 1 FROM transfer_operators WHERE owner = ? AND operator = ?",
                (owner, operator),
            ).fetchone()
        return row is not None
