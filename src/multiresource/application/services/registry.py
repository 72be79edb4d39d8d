from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from multiresource.application.services.access_service import ResourceAccessService
from multiresource.application.services.catalog_service import CatalogService
from multiresource.application.services.custom_data_service import CustomDataService
from multiresource.application.services.issuer_service import IssuerService
from multiresource.application.services.ledger_service import LedgerService
from multiresource.application.services.ownership_service import OwnershipRegistry
from multiresource.application.services.resolver_service import UriResolver
from multiresource.application.services.signal_bus import SignalBus
from multiresource.core.locks import TokenLocks
from multiresource.infrastructure.db.repos.catalog_repo import CatalogRepo
from multiresource.infrastructure.db.repos.custom_data_repo import CustomDataRepo
from multiresource.infrastructure.db.repos.delegation_repo import DelegationRepo
from multiresource.infrastructure.db.repos.ledger_repo import LedgerRepo
from multiresource.infrastructure.db.repos.ownership_repo import OwnershipRepo
from multiresource.infrastructure.db.repos.settings_repo import SettingsRepo
from multiresource.infrastructure.db.repos.signal_repo import SignalRepo


@dataclass(slots=True)
class MultiResourceRegistry:
    """All components of a multi-resource token registry over one database."""

    db_path: Path
    signals: SignalBus
    issuer: IssuerService
    ownership: OwnershipRegistry
    catalog: CatalogService
    custom_data: CustomDataService
    access: ResourceAccessService
    ledger: LedgerService
    resolver: UriResolver

    @classmethod
    def open(cls, db_path: Path, issuer: str | None = None) -> MultiResourceRegistry:
        """Wire the services around ``db_path``; the schema must already exist.

        ``issuer`` is recorded only if no issuer has been set yet.
        """
        locks = TokenLocks()
        settings_repo = SettingsRepo(db_path)
        catalog_repo = CatalogRepo(db_path)
        custom_data_repo = CustomDataRepo(db_path)
        ledger_repo = LedgerRepo(db_path)

        signals = SignalBus(SignalRepo(db_path))
        issuer_service = IssuerService(settings_repo)
        if issuer is not None:
            issuer_service.initialize(issuer)

        ownership = OwnershipRegistry(OwnershipRepo(db_path), signals, locks)
        access = ResourceAccessService(ownership, DelegationRepo(db_path), signals, locks)
        ledger = LedgerService(catalog_repo, ledger_repo, ownership, access, signals, locks)

        ownership.add_transfer_hook(access.clear_token_approvals)
        ownership.add_burn_hook(ledger.destroy_token_state)

        return cls(
            db_path=db_path,
            signals=signals,
            issuer=issuer_service,
            ownership=ownership,
            catalog=CatalogService(catalog_repo, issuer_service, signals),
            custom_data=CustomDataService(custom_data_repo, issuer_service, signals),
            access=access,
            ledger=ledger,
            resolver=UriResolver(catalog_repo, custom_data_repo, ledger_repo, settings_repo, issuer_service),
        )
