from __future__ import annotations

from pathlib import Path

from multiresource.infrastructure.db.sqlite import get_connection


class SettingsRepo:
    ISSUER = "issuer"
    FALLBACK_URI = "fallback_uri"

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path

    def get(self, key: str) -> str | None:
        with get_connection(self.db_path) as conn:
            row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
        return row["value"] if row else None

    def set(self, key: str, value: str) -> None:
        with get_connection(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO settings (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (key, value),
            )
            conn.commit()

    def set_if_absent(self, key: str, value: str) -> bool:
        with get_connection(self.db_path) as conn:
            cur = conn.execute(
                "INSERT OR IGNORE INTO settings (key, value) VALUES (?, ?)",
                (key, value),
            )
            conn.commit()
        return cur.rowcount == 1
