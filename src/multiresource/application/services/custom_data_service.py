from __future__ import annotations

from multiresource.application.services.issuer_service import IssuerService
from multiresource.application.services.signal_bus import SignalBus
from multiresource.core.time import now_utc_iso
from multiresource.domain.models.resource import CustomDataEntry
from multiresource.domain.models.signal import CUSTOM_DATA_SET
from multiresource.infrastructure.db.repos.custom_data_repo import CustomDataRepo


class CustomDataService:
    def __init__(self, custom_data_repo: CustomDataRepo, issuer: IssuerService, signals: SignalBus) -> None:
        self.custom_data_repo = custom_data_repo
        self.issuer = issuer
        self.signals = signals

    def set(self, resource_id: int, tag_id: int, data: bytes, *, caller: str) -> None:
        # Not checked against the catalog: data may precede the resource.
        self.issuer.require_issuer(caller)
        self.custom_data_repo.upsert(
            CustomDataEntry(
                resource_id=resource_id,
                tag_id=tag_id,
                data=bytes(data),
                updated_at=now_utc_iso(),
            )
        )
        self.signals.emit(CUSTOM_DATA_SET, resource_id=resource_id, tag_id=tag_id)

    def get(self, resource_id: int, tag_id: int) -> bytes:
        return self.custom_data_repo.get(resource_id, tag_id)

    def list_for_resource(self, resource_id: int) -> list[CustomDataEntry]:
        return self.custom_data_repo.list_for_resource(resource_id)
