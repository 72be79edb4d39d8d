from __future__ import annotations

import sqlite3
from pathlib import Path

from multiresource.core.ids import fits_id
from multiresource.domain.models.token_state import TokenResourceState
from multiresource.infrastructure.db.sqlite import get_connection, immediate_transaction

_SEQUENCE_TABLES = ("token_pending", "token_active")

# Refusals reported by append_pending.
ATTACHED = "attached"
FULL = "full"


class LedgerRepo:
    """Persistence for the per-token pending/active resource ledger.

    Every mutating method runs in a single ``BEGIN IMMEDIATE`` transaction, so a
    failure part-way through leaves the previous state untouched. Removal from
    either sequence is swap-with-last: the last entry moves into the freed slot.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path

    def load_state(self, token_id: int) -> TokenResourceState:
        if not fits_id(token_id):
            return TokenResourceState(token_id=token_id)
        with get_connection(self.db_path) as conn:
            pending = [
                int(r["resource_id"])
                for r in conn.execute(
                    "SELECT resource_id FROM token_pending WHERE token_id = ? ORDER BY position ASC",
                    (token_id,),
                ).fetchall()
            ]
            active_rows = conn.execute(
                "SELECT resource_id, priority FROM token_active WHERE token_id = ? ORDER BY position ASC",
                (token_id,),
            ).fetchall()
            overwrites = {
                int(r["resource_id"]): int(r["target_id"])
                for r in conn.execute(
                    "SELECT resource_id, target_id FROM token_overwrites WHERE token_id = ?",
                    (token_id,),
                ).fetchall()
            }
            membership = {
                int(r["resource_id"])
                for r in conn.execute(
                    "SELECT resource_id FROM token_membership WHERE token_id = ?",
                    (token_id,),
                ).fetchall()
            }
        return TokenResourceState(
            token_id=token_id,
            pending=pending,
            active=[int(r["resource_id"]) for r in active_rows],
            priorities=[int(r["priority"]) for r in active_rows],
            overwrites=overwrites,
            membership=membership,
        )

    def get_overwrite(self, token_id: int, resource_id: int) -> int:
        if not (fits_id(token_id) and fits_id(resource_id)):
            return 0
        with get_connection(self.db_path) as conn:
            row = conn.execute(
                "SELECT target_id FROM token_overwrites WHERE token_id = ? AND resource_id = ?",
                (token_id, resource_id),
            ).fetchone()
        return int(row["target_id"]) if row else 0

    def list_token_ids(self) -> list[int]:
        with get_connection(self.db_path) as conn:
            rows = conn.execute(
                """
                SELECT token_id FROM token_pending
                UNION SELECT token_id FROM token_active
                UNION SELECT token_id FROM token_membership
                UNION SELECT token_id FROM token_overwrites
                ORDER BY token_id ASC
                """
            ).fetchall()
        return [int(r["token_id"]) for r in rows]

    def append_pending(self, token_id: int, resource_id: int, overwrite_target: int, capacity: int) -> str | None:
        """Append ``resource_id`` to the pending sequence.

        Returns None on success, ``ATTACHED`` if the resource is already pending
        or active on the token, or ``FULL`` if pending already holds
        ``capacity`` entries. Nothing is written unless None is returned.
        """
        with immediate_transaction(self.db_path) as conn:
            member = conn.execute(
                "SELECT 1 FROM token_membership WHERE token_id = ? AND resource_id = ?",
                (token_id, resource_id),
            ).fetchone()
            if member is not None:
                return ATTACHED
            position = self._length(conn, "token_pending", token_id)
            if position >= capacity:
                return FULL
            conn.execute(
                "INSERT INTO token_pending (token_id, position, resource_id) VALUES (?, ?, ?)",
                (token_id, position, resource_id),
            )
            conn.execute(
                "INSERT INTO token_membership (token_id, resource_id) VALUES (?, ?)",
                (token_id, resource_id),
            )
            if overwrite_target:
                conn.execute(
                    """
                    INSERT INTO token_overwrites (token_id, resource_id, target_id)
                    VALUES (?, ?, ?)
                    ON CONFLICT(token_id, resource_id) DO UPDATE SET target_id = excluded.target_id
                    """,
                    (token_id, resource_id, overwrite_target),
                )
        return None

    def promote_at(self, token_id: int, index: int) -> tuple[int, int | None] | None:
        """Move the pending entry at ``index`` to the end of active.

        Resolves a recorded overwrite intent on the way. Returns the promoted
        resource id and the id of the active resource it superseded (None when
        nothing was replaced), or None without writing if ``index`` is out of
        range.
        """
        superseded: int | None = None
        with immediate_transaction(self.db_path) as conn:
            resource_id = self._pending_at(conn, token_id, index)
            if resource_id is None:
                return None
            self._swap_remove(conn, "token_pending", token_id, resource_id)

            row = conn.execute(
                "SELECT target_id FROM token_overwrites WHERE token_id = ? AND resource_id = ?",
                (token_id, resource_id),
            ).fetchone()
            if row is not None:
                target_id = int(row["target_id"])
                conn.execute(
                    "DELETE FROM token_overwrites WHERE token_id = ? AND resource_id = ?",
                    (token_id, resource_id),
                )
                if self._swap_remove(conn, "token_active", token_id, target_id):
                    conn.execute(
                        "DELETE FROM token_membership WHERE token_id = ? AND resource_id = ?",
                        (token_id, target_id),
                    )
                    superseded = target_id

            position = self._length(conn, "token_active", token_id)
            conn.execute(
                """
                INSERT INTO token_active (token_id, position, resource_id, priority)
                VALUES (?, ?, ?, 0)
                """,
                (token_id, position, resource_id),
            )
        return resource_id, superseded

    def remove_pending_at(self, token_id: int, index: int) -> int | None:
        """Drop the pending entry at ``index``. Returns its resource id, or None if out of range."""
        with immediate_transaction(self.db_path) as conn:
            resource_id = self._pending_at(conn, token_id, index)
            if resource_id is None:
                return None
            self._swap_remove(conn, "token_pending", token_id, resource_id)
            conn.execute(
                "DELETE FROM token_membership WHERE token_id = ? AND resource_id = ?",
                (token_id, resource_id),
            )
            conn.execute(
                "DELETE FROM token_overwrites WHERE token_id = ? AND resource_id = ?",
                (token_id, resource_id),
            )
        return resource_id

    def clear_pending(self, token_id: int) -> list[int]:
        """Drop every pending entry of a token with its membership and overwrite intents."""
        with immediate_transaction(self.db_path) as conn:
            removed = [
                int(r["resource_id"])
                for r in conn.execute(
                    "SELECT resource_id FROM token_pending WHERE token_id = ? ORDER BY position ASC",
                    (token_id,),
                ).fetchall()
            ]
            conn.executemany(
                "DELETE FROM token_overwrites WHERE token_id = ? AND resource_id = ?",
                [(token_id, rid) for rid in removed],
            )
            conn.executemany(
                "DELETE FROM token_membership WHERE token_id = ? AND resource_id = ?",
                [(token_id, rid) for rid in removed],
            )
            conn.execute("DELETE FROM token_pending WHERE token_id = ?", (token_id,))
        return removed

    def replace_priorities(self, token_id: int, priorities: list[int]) -> bool:
        """Overwrite the active priorities. Returns False without writing on a length mismatch."""
        with immediate_transaction(self.db_path) as conn:
            if self._length(conn, "token_active", token_id) != len(priorities):
                return False
            conn.executemany(
                "UPDATE token_active SET priority = ? WHERE token_id = ? AND position = ?",
                [(priority, token_id, position) for position, priority in enumerate(priorities)],
            )
        return True

    def delete_token_state(self, token_id: int) -> None:
        with immediate_transaction(self.db_path) as conn:
            for table in (*_SEQUENCE_TABLES, "token_membership", "token_overwrites"):
                conn.execute(f"DELETE FROM {table} WHERE token_id = ?", (token_id,))

    @staticmethod
    def _length(conn: sqlite3.Connection, table: str, token_id: int) -> int:
        row = conn.execute(f"SELECT COUNT(*) AS c FROM {table} WHERE token_id = ?", (token_id,)).fetchone()
        return int(row["c"])

    @staticmethod
    def _pending_at(conn: sqlite3.Connection, token_id: int, index: int) -> int | None:
        if index < 0 or not fits_id(index):
            return None
        row = conn.execute(
            "SELECT resource_id FROM token_pending WHERE token_id = ? AND position = ?",
            (token_id, index),
        ).fetchone()
        return int(row["resource_id"]) if row else None

    @classmethod
    def _swap_remove(cls, conn: sqlite3.Connection, table: str, token_id: int, resource_id: int) -> bool:
        """Remove ``resource_id`` from a sequence table by value. Returns False if absent."""
        if table not in _SEQUENCE_TABLES:
            raise ValueError(f"Not a ledger sequence table: {table}")
        row = conn.execute(
            f"SELECT position FROM {table} WHERE token_id = ? AND resource_id = ?",
            (token_id, resource_id),
        ).fetchone()
        if row is None:
            return False
        position = int(row["position"])
        last = cls._length(conn, table, token_id) - 1
        conn.execute(
            f"DELETE FROM {table} WHERE token_id = ? AND position = ?",
            (token_id, position),
        )
        if position != last:
            conn.execute(
                f"UPDATE {table} SET position = ? WHERE token_id = ? AND position = ?",
                (position, token_id, last),
            )
        return True
