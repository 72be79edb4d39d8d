from __future__ import annotations

from multiresource.application.services.ownership_service import OwnershipRegistry
from multiresource.application.services.signal_bus import SignalBus
from multiresource.core.errors import NotAuthorizedError, SelfApprovalError
from multiresource.core.locks import TokenLocks
from multiresource.domain.models.signal import APPROVAL_FOR_ALL_FOR_RESOURCES, APPROVAL_FOR_RESOURCES
from multiresource.infrastructure.db.repos.delegation_repo import DelegationRepo


class ResourceAccessService:
    """Who may curate a token's resource ledger.

    Standing is held by the token owner, the token's single resource delegate,
    or any operator the owner has blanket-approved. This is independent of
    transfer approval. Blanket approvals are indexed by owner and survive
    transfers; the single delegate is cleared whenever the owner changes.
    """

    def __init__(
        self,
        ownership: OwnershipRegistry,
        delegation_repo: DelegationRepo,
        signals: SignalBus,
        locks: TokenLocks | None = None,
    ) -> None:
        self.ownership = ownership
        self.delegation_repo = delegation_repo
        self.signals = signals
        self.locks = locks or TokenLocks()

    def approve_for_resources(self, to: str | None, token_id: int, *, caller: str) -> None:
        with self.locks.for_token(token_id):
            owner = self.ownership.owner_of(token_id)
            if to is not None and to == owner:
                raise SelfApprovalError("Resource approval to current owner")
            if caller != owner and not self.is_approved_for_all_for_resources(owner, caller):
                raise NotAuthorizedError("Caller is not owner nor approved for all resources")
            self.delegation_repo.set_delegate(token_id, to)
        self.signals.emit(APPROVAL_FOR_RESOURCES, token_id=token_id, detail=f"{owner}->{to or ''}")

    def get_approved_for_resources(self, token_id: int) -> str | None:
        # Raises NotFoundError for a token that does not exist.
        self.ownership.owner_of(token_id)
        return self.delegation_repo.get_delegate(token_id)

    def set_approval_for_all_for_resources(self, operator: str, enabled: bool, *, caller: str) -> None:
        if operator == caller:
            raise SelfApprovalError("Resource approval for all to caller")
        self.delegation_repo.set_operator(caller, operator, enabled)
        self.signals.emit(
            APPROVAL_FOR_ALL_FOR_RESOURCES,
            detail=f"{caller}->{operator}:{'on' if enabled else 'off'}",
        )

    def is_approved_for_all_for_resources(self, owner: str, operator: str) -> bool:
        return self.delegation_repo.is_operator(owner, operator)

    def is_authorized(self, token_id: int, caller: str) -> bool:
        owner = self.ownership.owner_of(token_id)
        if caller == owner:
            return True
        if caller == self.delegation_repo.get_delegate(token_id):
            return True
        return self.is_approved_for_all_for_resources(owner, caller)

    def require_authorized(self, token_id: int, caller: str) -> None:
        if not self.is_authorized(token_id, caller):
            raise NotAuthorizedError(f"Caller {caller} is not owner nor approved for resources of token {token_id}")

    def clear_token_approvals(self, token_id: int) -> None:
        """Transfer/burn hook: drop the token's single resource delegate."""
        with self.locks.for_token(token_id):
            self.delegation_repo.set_delegate(token_id, None)
