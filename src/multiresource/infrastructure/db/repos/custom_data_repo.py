from __future__ import annotations

from pathlib import Path

from multiresource.core.ids import fits_id
from multiresource.domain.models.resource import CustomDataEntry
from multiresource.infrastructure.db.sqlite import get_connection


class CustomDataRepo:
    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path

    def upsert(self, entry: CustomDataEntry) -> None:
        with get_connection(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO custom_data (resource_id, tag_id, data, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(resource_id, tag_id) DO UPDATE SET
                    data = excluded.data,
                    updated_at = excluded.updated_at
                """,
                (entry.resource_id, entry.tag_id, entry.data, entry.updated_at),
            )
            conn.commit()

    def get(self, resource_id: int, tag_id: int) -> bytes:
        if not (fits_id(resource_id) and fits_id(tag_id)):
            return b""
        with get_connection(self.db_path) as conn:
            row = conn.execute(
                "SELECT data FROM custom_data WHERE resource_id = ? AND tag_id = ?",
                (resource_id, tag_id),
            ).fetchone()
        return bytes(row["data"]) if row else b""

    def list_for_resource(self, resource_id: int) -> list[CustomDataEntry]:
        with get_connection(self.db_path) as conn:
            rows = conn.execute(
                """
                SELECT * FROM custom_data
                WHERE resource_id = ?
                ORDER BY tag_id ASC
                """,
                (resource_id,),
            ).fetchall()
        return [
            CustomDataEntry(
                resource_id=int(row["resource_id"]),
                tag_id=int(row["tag_id"]),
                data=bytes(row["data"]),
                updated_at=row["updated_at"],
            )
            for row in rows
        ]
