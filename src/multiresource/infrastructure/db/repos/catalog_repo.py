from __future__ import annotations

from pathlib import Path

from multiresource.core.ids import fits_id
from multiresource.domain.models.resource import Resource
from multiresource.infrastructure.db.sqlite import get_connection


class CatalogRepo:
    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path

    def insert(self, resource: Resource) -> None:
        with get_connection(self.db_path) as conn:
            conn.execute("BEGIN IMMEDIATE;")
            next_position = conn.execute(
                "SELECT COALESCE(MAX(position) + 1, 0) AS p FROM resources"
            ).fetchone()["p"]
            conn.execute(
                """
                INSERT INTO resources (id, uri, token_enumerated, position, registered_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    resource.id,
                    resource.uri,
                    int(resource.token_enumerated),
                    next_position,
                    resource.registered_at,
                ),
            )
            conn.executemany(
                "INSERT INTO resource_tags (resource_id, position, tag_id) VALUES (?, ?, ?)",
                [(resource.id, i, tag_id) for i, tag_id in enumerate(resource.tags)],
            )
            conn.commit()

    def exists(self, resource_id: int) -> bool:
        if not fits_id(resource_id):
            return False
        with get_connection(self.db_path) as conn:
            row = conn.execute("SELECT 1 FROM resources WHERE id = ?", (resource_id,)).fetchone()
        return row is not None

    def get_by_id(self, resource_id: int) -> Resource | None:
        if not fits_id(resource_id):
            return None
        with get_connection(self.db_path) as conn:
            row = conn.execute("SELECT * FROM resources WHERE id = ?", (resource_id,)).fetchone()
            if row is None:
                return None
            tags = self._tags(conn, resource_id)
        return self._to_model(row, tags)

    def get_many(self, resource_ids: list[int]) -> list[Resource]:
        """Return resources in the order of ``resource_ids``, skipping unknown ids."""
        if not resource_ids:
            return []
        out: list[Resource] = []
        with get_connection(self.db_path) as conn:
            for resource_id in resource_ids:
                row = conn.execute("SELECT * FROM resources WHERE id = ?", (resource_id,)).fetchone()
                if row is not None:
                    out.append(self._to_model(row, self._tags(conn, resource_id)))
        return out

    def list(self, limit: int = 100) -> list[Resource]:
        with get_connection(self.db_path) as conn:
            rows = conn.execute(
                "SELECT * FROM resources ORDER BY position ASC LIMIT ?",
                (limit,),
            ).fetchall()
            return [self._to_model(row, self._tags(conn, row["id"])) for row in rows]

    def append_tag(self, resource_id: int, tag_id: int) -> None:
        with get_connection(self.db_path) as conn:
            conn.execute("BEGIN IMMEDIATE;")
            next_position = conn.execute(
                "SELECT COUNT(*) AS c FROM resource_tags WHERE resource_id = ?",
                (resource_id,),
            ).fetchone()["c"]
            conn.execute(
                "INSERT INTO resource_tags (resource_id, position, tag_id) VALUES (?, ?, ?)",
                (resource_id, next_position, tag_id),
            )
            conn.commit()

    def swap_remove_tag(self, resource_id: int, index: int) -> int:
        """Remove the tag at ``index`` by moving the last tag into its slot.

        Returns the removed tag id. The caller has already bounds-checked ``index``.
        """
        with get_connection(self.db_path) as conn:
            conn.execute("BEGIN IMMEDIATE;")
            last = conn.execute(
                "SELECT COUNT(*) - 1 AS last FROM resource_tags WHERE resource_id = ?",
                (resource_id,),
            ).fetchone()["last"]
            removed = conn.execute(
                "SELECT tag_id FROM resource_tags WHERE resource_id = ? AND position = ?",
                (resource_id, index),
            ).fetchone()["tag_id"]
            conn.execute(
                "DELETE FROM resource_tags WHERE resource_id = ? AND position = ?",
                (resource_id, index),
            )
            if index != last:
                conn.execute(
                    "UPDATE resource_tags SET position = ? WHERE resource_id = ? AND position = ?",
                    (index, resource_id, last),
                )
            conn.commit()
        return int(removed)

    def set_token_enumerated(self, resource_id: int, flag: bool) -> None:
        with get_connection(self.db_path) as conn:
            conn.execute(
                "UPDATE resources SET token_enumerated = ? WHERE id = ?",
                (int(flag), resource_id),
            )
            conn.commit()

    @staticmethod
    def _tags(conn, resource_id: int) -> list[int]:
        rows = conn.execute(
            "SELECT tag_id FROM resource_tags WHERE resource_id = ? ORDER BY position ASC",
            (resource_id,),
        ).fetchall()
        return [int(r["tag_id"]) for r in rows]

    @staticmethod
    def _to_model(row, tags: list[int]) -> Resource:
        return Resource(
            id=int(row["id"]),
            uri=row["uri"],
            tags=tags,
            token_enumerated=bool(row["token_enumerated"]),
            registered_at=row["registered_at"],
        )
