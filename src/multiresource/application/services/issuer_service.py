from __future__ import annotations

import logging

from multiresource.core.errors import ConfigurationError, NotAuthorizedError
from multiresource.infrastructure.db.repos.settings_repo import SettingsRepo

logger = logging.getLogger(__name__)


class IssuerService:
    """Capability check guarding every catalog mutation."""

    def __init__(self, settings_repo: SettingsRepo) -> None:
        self.settings_repo = settings_repo

    def initialize(self, issuer: str) -> bool:
        """Record the first issuer. Returns False if one was already set."""
        if not issuer:
            raise ConfigurationError("Issuer identity must be a non-empty string")
        created = self.settings_repo.set_if_absent(SettingsRepo.ISSUER, issuer)
        if created:
            logger.info("Issuer initialised: %s", issuer)
        return created

    def get_issuer(self) -> str | None:
        return self.settings_repo.get(SettingsRepo.ISSUER)

    def require_issuer(self, caller: str) -> None:
        issuer = self.get_issuer()
        if issuer is None:
            raise ConfigurationError("No issuer configured; initialise the registry with an issuer first")
        if caller != issuer:
            raise NotAuthorizedError(f"Only the issuer may modify the catalog (caller: {caller})")

    def set_issuer(self, new_issuer: str, *, caller: str) -> None:
        self.require_issuer(caller)
        if not new_issuer:
            raise ConfigurationError("Issuer identity must be a non-empty string")
        self.settings_repo.set(SettingsRepo.ISSUER, new_issuer)
        logger.info("Issuer changed from %s to %s", caller, new_issuer)
