from __future__ import annotations

from pathlib import Path

from multiresource.domain.models.signal import Signal
from multiresource.infrastructure.db.sqlite import get_connection


class SignalRepo:
    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path

    def insert_many(self, signals: list[Signal]) -> None:
        if not signals:
            return
        with get_connection(self.db_path) as conn:
            conn.executemany(
                """
                INSERT INTO signals (id, name, token_id, resource_id, tag_id, detail, emitted_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (s.id, s.name, s.token_id, s.resource_id, s.tag_id, s.detail, s.emitted_at)
                    for s in signals
                ],
            )
            conn.commit()

    def list(
        self,
        *,
        token_id: int | None = None,
        name: str | None = None,
        limit: int = 100,
    ) -> list[Signal]:
        clauses: list[str] = []
        params: list[object] = []
        if token_id is not None:
            clauses.append("token_id = ?")
            params.append(token_id)
        if name is not None:
            clauses.append("name = ?")
            params.append(name)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        params.append(limit)

        with get_connection(self.db_path) as conn:
            rows = conn.execute(
                f"""
                SELECT * FROM (
                    SELECT * FROM signals {where} ORDER BY seq DESC LIMIT ?
                ) ORDER BY seq ASC
                """,
                params,
            ).fetchall()
        return [
            Signal(
                id=row["id"],
                name=row["name"],
                token_id=row["token_id"],
                resource_id=row["resource_id"],
                tag_id=row["tag_id"],
                emitted_at=row["emitted_at"],
                detail=row["detail"],
            )
            for row in rows
        ]
