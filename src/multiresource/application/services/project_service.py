from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from multiresource.application.services.issuer_service import IssuerService
from multiresource.core.config import AppPaths
from multiresource.core.files import ensure_directory
from multiresource.infrastructure.db.repos.settings_repo import SettingsRepo
from multiresource.infrastructure.db.sqlite import initialize_schema


@dataclass(slots=True)
class InitResult:
    paths_created: list[Path]
    db_path: Path
    issuer: str | None
    issuer_created: bool


class ProjectService:
    def __init__(self, paths: AppPaths) -> None:
        self.paths = paths

    def init_project(self, issuer: str | None = None) -> InitResult:
        paths_created: list[Path] = []
        if not self.paths.data_dir.exists():
            paths_created.append(self.paths.data_dir)
        ensure_directory(self.paths.data_dir)

        initialize_schema(self.paths.db_path)

        issuer_service = IssuerService(SettingsRepo(self.paths.db_path))
        issuer_created = issuer_service.initialize(issuer) if issuer else False

        return InitResult(
            paths_created=paths_created,
            db_path=self.paths.db_path,
            issuer=issuer_service.get_issuer(),
            issuer_created=issuer_created,
        )

    def is_initialized(self) -> bool:
        return self.paths.db_path.exists()
