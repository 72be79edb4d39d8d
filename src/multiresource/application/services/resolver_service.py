from __future__ import annotations

from multiresource.application.services.issuer_service import IssuerService
from multiresource.domain.models.resource import Resource
from multiresource.infrastructure.db.repos.catalog_repo import CatalogRepo
from multiresource.infrastructure.db.repos.custom_data_repo import CustomDataRepo
from multiresource.infrastructure.db.repos.ledger_repo import LedgerRepo
from multiresource.infrastructure.db.repos.settings_repo import SettingsRepo


class UriResolver:
    """Computes display URIs from a token's active resources.

    Resolution never fails for a missing match: every miss falls back to the
    process-wide fallback URI.
    """

    def __init__(
        self,
        catalog_repo: CatalogRepo,
        custom_data_repo: CustomDataRepo,
        ledger_repo: LedgerRepo,
        settings_repo: SettingsRepo,
        issuer: IssuerService,
    ) -> None:
        self.catalog_repo = catalog_repo
        self.custom_data_repo = custom_data_repo
        self.ledger_repo = ledger_repo
        self.settings_repo = settings_repo
        self.issuer = issuer

    def get_fallback_uri(self) -> str:
        return self.settings_repo.get(SettingsRepo.FALLBACK_URI) or ""

    def set_fallback_uri(self, uri: str, *, caller: str) -> None:
        self.issuer.require_issuer(caller)
        self.settings_repo.set(SettingsRepo.FALLBACK_URI, uri)

    def resolve(self, token_id: int) -> str:
        return self.resolve_at(token_id, 0)

    def resolve_at(self, token_id: int, index: int) -> str:
        active = self.ledger_repo.load_state(token_id).active
        if index < 0 or index >= len(active):
            return self.get_fallback_uri()
        return self._compose_by_id(active[index], token_id)

    def resolve_by_attribute(self, token_id: int, tag_id: int, expected_value: bytes) -> str:
        expected = bytes(expected_value)
        for resource_id in self.ledger_repo.load_state(token_id).active:
            if self.custom_data_repo.get(resource_id, tag_id) == expected:
                return self._compose_by_id(resource_id, token_id)
        return self.get_fallback_uri()

    def _compose_by_id(self, resource_id: int, token_id: int) -> str:
        resource = self.catalog_repo.get_by_id(resource_id)
        if resource is None:
            return self.get_fallback_uri()
        return compose_uri(resource, token_id)


def compose_uri(resource: Resource, token_id: int) -> str:
    if resource.token_enumerated and resource.uri:
        return f"{resource.uri}{token_id}"
    return resource.uri
