from __future__ import annotations

from dataclasses import dataclass

from rich.console import Console

from multiresource.application.services.project_service import ProjectService
from multiresource.application.services.registry import MultiResourceRegistry
from multiresource.core.config import AppPaths
from multiresource.core.errors import ProjectNotInitializedError


@dataclass(slots=True)
class CLIContext:
    paths: AppPaths
    console: Console

    def open_registry(self) -> MultiResourceRegistry:
        if not ProjectService(self.paths).is_initialized():
            raise ProjectNotInitializedError(
                f"Project is not initialized. Run 'mres init' first in {self.paths.project_root}"
            )
        return MultiResourceRegistry.open(self.paths.db_path)
