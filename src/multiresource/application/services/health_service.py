from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from pathlib import Path

from multiresource.core.config import MAX_PENDING_RESOURCES
from multiresource.infrastructure.db.repos.ledger_repo import LedgerRepo
from multiresource.infrastructure.db.sqlite import get_connection


@dataclass(slots=True)
class DoctorIssue:
    check: str
    level: str
    message: str


@dataclass(slots=True)
class DoctorReport:
    ok: bool
    checks_run: int
    tokens_checked: int
    issues: list[DoctorIssue]
    db_runtime: dict[str, object]


class HealthService:
    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path

    def run_doctor(self) -> DoctorReport:
        issues: list[DoctorIssue] = []
        checks_run = 0

        # Check 1: database runtime pragmas support concurrent access.
        checks_run += 1
        with get_connection(self.db_path) as conn:
            journal_mode = str(conn.execute("PRAGMA journal_mode;").fetchone()[0]).lower()
            busy_timeout_ms = int(conn.execute("PRAGMA busy_timeout;").fetchone()[0])
            foreign_keys = int(conn.execute("PRAGMA foreign_keys;").fetchone()[0])
            synchronous = int(conn.execute("PRAGMA synchronous;").fetchone()[0])

        db_runtime: dict[str, object] = {
            "journal_mode": journal_mode,
            "busy_timeout_ms": busy_timeout_ms,
            "foreign_keys": bool(foreign_keys),
            "synchronous": synchronous,
        }

        if journal_mode != "wal":
            issues.append(
                DoctorIssue(
                    check="db_runtime",
                    level="error",
                    message=f"SQLite journal_mode is '{journal_mode}', expected 'wal' for concurrent access.",
                )
            )
        if foreign_keys != 1:
            issues.append(DoctorIssue(check="db_runtime", level="error", message="SQLite foreign_keys pragma is disabled."))
        if busy_timeout_ms <= 0:
            issues.append(
                DoctorIssue(
                    check="db_runtime",
                    level="error",
                    message="SQLite busy_timeout is disabled; concurrent writes may fail immediately.",
                )
            )

        ledger_repo = LedgerRepo(self.db_path)
        token_ids = ledger_repo.list_token_ids()
        states = [ledger_repo.load_state(token_id) for token_id in token_ids]

        # Check 2: membership equals pending + active, and the two are disjoint.
        checks_run += 1
        for state in states:
            counts = Counter(state.pending) + Counter(state.active)
            duplicated = sorted(rid for rid, n in counts.items() if n > 1)
            if duplicated:
                issues.append(
                    DoctorIssue(
                        check="membership",
                        level="error",
                        message=f"Token {state.token_id}: resources both pending and active: {duplicated}",
                    )
                )
            if set(counts) != state.membership:
                issues.append(
                    DoctorIssue(
                        check="membership",
                        level="error",
                        message=(
                            f"Token {state.token_id}: membership {sorted(state.membership)} does not match "
                            f"pending+active {sorted(counts)}"
                        ),
                    )
                )

        # Check 3: sequence positions are dense, so indexes line up with priorities.
        checks_run += 1
        with get_connection(self.db_path) as conn:
            for table in ("token_pending", "token_active"):
                rows = conn.execute(
                    f"""
                    SELECT token_id, COUNT(*) AS n, MIN(position) AS lo, MAX(position) AS hi
                    FROM {table}
                    GROUP BY token_id
                    """
                ).fetchall()
                for row in rows:
                    if row["lo"] != 0 or row["hi"] != row["n"] - 1:
                        issues.append(
                            DoctorIssue(
                                check="positions",
                                level="error",
                                message=f"Token {row['token_id']}: {table} positions are not contiguous.",
                            )
                        )

        # Check 4: overwrite intents only exist for pending resources.
        checks_run += 1
        for state in states:
            stray = sorted(set(state.overwrites) - set(state.pending))
            if stray:
                issues.append(
                    DoctorIssue(
                        check="overwrites",
                        level="error",
                        message=f"Token {state.token_id}: overwrite intents for non-pending resources {stray}",
                    )
                )

        # Check 5: pending capacity and orphaned state of burned tokens.
        checks_run += 1
        with get_connection(self.db_path) as conn:
            live_tokens = {int(r["id"]) for r in conn.execute("SELECT id FROM tokens").fetchall()}
        for state in states:
            if len(state.pending) > MAX_PENDING_RESOURCES:
                issues.append(
                    DoctorIssue(
                        check="capacity",
                        level="error",
                        message=f"Token {state.token_id}: {len(state.pending)} pending resources exceed the cap.",
                    )
                )
            if state.token_id not in live_tokens:
                issues.append(
                    DoctorIssue(
                        check="orphans",
                        level="warning",
                        message=f"Resource state kept for token {state.token_id}, which does not exist.",
                    )
                )

        return DoctorReport(
            ok=not any(i.level == "error" for i in issues),
            checks_run=checks_run,
            tokens_checked=len(states),
            issues=issues,
            db_runtime=db_runtime,
        )
