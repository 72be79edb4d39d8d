from __future__ import annotations

import threading

from multiresource.application.services.issuer_service import IssuerService
from multiresource.application.services.signal_bus import SignalBus
from multiresource.core.errors import AlreadyExistsError, IndexOutOfRangeError, NotFoundError
from multiresource.core.ids import require_id
from multiresource.core.time import now_utc_iso
from multiresource.domain.models.resource import Resource
from multiresource.domain.models.signal import CUSTOM_DATA_ADDED, CUSTOM_DATA_REMOVED, RESOURCE_SET
from multiresource.infrastructure.db.repos.catalog_repo import CatalogRepo


class CatalogService:
    """Append-only registry of resource definitions.

    Ids and URIs are immutable once registered. The tag list of a resource is a
    display-order index into the custom data store and may be edited; removal
    swaps the last tag into the freed slot.
    """

    def __init__(self, catalog_repo: CatalogRepo, issuer: IssuerService, signals: SignalBus) -> None:
        self.catalog_repo = catalog_repo
        self.issuer = issuer
        self.signals = signals
        self._lock = threading.Lock()

    def register(
        self,
        resource_id: int,
        uri: str,
        tags: list[int] | tuple[int, ...] = (),
        *,
        caller: str,
    ) -> Resource:
        self.issuer.require_issuer(caller)
        require_id(resource_id, "resource id")
        tag_list = [int(t) for t in tags]

        with self._lock:
            if self.catalog_repo.exists(resource_id):
                raise AlreadyExistsError(f"Resource already exists: {resource_id}")
            resource = Resource(
                id=resource_id,
                uri=uri,
                tags=tag_list,
                token_enumerated=False,
                registered_at=now_utc_iso(),
            )
            self.catalog_repo.insert(resource)

        self.signals.emit(RESOURCE_SET, resource_id=resource_id)
        return resource

    def get(self, resource_id: int) -> Resource:
        resource = self.catalog_repo.get_by_id(resource_id)
        if resource is None:
            raise NotFoundError(f"No resource matching id: {resource_id}")
        return resource

    def exists(self, resource_id: int) -> bool:
        return self.catalog_repo.exists(resource_id)

    def list(self, limit: int = 100) -> list[Resource]:
        return self.catalog_repo.list(limit=limit)

    def add_tag(self, resource_id: int, tag_id: int, *, caller: str) -> None:
        self.issuer.require_issuer(caller)
        with self._lock:
            self.get(resource_id)
            self.catalog_repo.append_tag(resource_id, tag_id)
        self.signals.emit(CUSTOM_DATA_ADDED, resource_id=resource_id, tag_id=tag_id)

    def remove_tag_at(self, resource_id: int, index: int, *, caller: str) -> int:
        self.issuer.require_issuer(caller)
        with self._lock:
            resource = self.get(resource_id)
            if index < 0 or index >= len(resource.tags):
                raise IndexOutOfRangeError(
                    f"Tag index {index} out of range for resource {resource_id} ({len(resource.tags)} tags)"
                )
            removed = self.catalog_repo.swap_remove_tag(resource_id, index)
        self.signals.emit(CUSTOM_DATA_REMOVED, resource_id=resource_id, tag_id=removed)
        return removed

    def set_token_enumerated(self, resource_id: int, flag: bool, *, caller: str) -> None:
        self.issuer.require_issuer(caller)
        self.get(resource_id)
        self.catalog_repo.set_token_enumerated(resource_id, flag)

    def is_token_enumerated(self, resource_id: int) -> bool:
        return self.get(resource_id).token_enumerated
