from __future__ import annotations

import logging
from typing import Callable

from multiresource.application.services.signal_bus import SignalBus
from multiresource.core.errors import (
    AlreadyExistsError,
    NotAuthorizedError,
    NotFoundError,
    SelfApprovalError,
)
from multiresource.core.ids import require_id
from multiresource.core.locks import TokenLocks
from multiresource.core.time import now_utc_iso
from multiresource.domain.models.ownership import Token
from multiresource.domain.models.signal import APPROVAL, TRANSFER
from multiresource.infrastructure.db.repos.ownership_repo import OwnershipRepo

logger = logging.getLogger(__name__)

TokenHook = Callable[[int], None]


class OwnershipRegistry:
    """Minimal token ownership bookkeeping consumed by the resource ledger.

    Owner changes run the registered transfer hooks first, so per-token
    approvals held elsewhere are gone before the new owner is recorded. Burns
    run the transfer hooks and then the burn hooks.
    """

    def __init__(self, ownership_repo: OwnershipRepo, signals: SignalBus, locks: TokenLocks | None = None) -> None:
        self.ownership_repo = ownership_repo
        self.signals = signals
        self.locks = locks or TokenLocks()
        self._transfer_hooks: list[TokenHook] = []
        self._burn_hooks: list[TokenHook] = []

    def add_transfer_hook(self, hook: TokenHook) -> None:
        self._transfer_hooks.append(hook)

    def add_burn_hook(self, hook: TokenHook) -> None:
        self._burn_hooks.append(hook)

    def mint(self, to: str, token_id: int) -> Token:
        require_id(token_id, "token id")
        if not to:
            raise NotAuthorizedError("Cannot mint to an empty address")
        with self.locks.for_token(token_id):
            if self.ownership_repo.get_by_id(token_id) is not None:
                raise AlreadyExistsError(f"Token already minted: {token_id}")
            token = Token(id=token_id, owner=to, approved=None, minted_at=now_utc_iso())
            self.ownership_repo.insert(token)
        self.signals.emit(TRANSFER, token_id=token_id, detail=f"->{to}")
        return token

    def exists(self, token_id: int) -> bool:
        return self.ownership_repo.get_by_id(token_id) is not None

    def get(self, token_id: int) -> Token:
        token = self.ownership_repo.get_by_id(token_id)
        if token is None:
            raise NotFoundError(f"Token does not exist: {token_id}")
        return token

    def owner_of(self, token_id: int) -> str:
        return self.get(token_id).owner

    def balance_of(self, owner: str) -> int:
        return self.ownership_repo.balance_of(owner)

    def approve(self, to: str | None, token_id: int, *, caller: str) -> None:
        token = self.get(token_id)
        if to is not None and to == token.owner:
            raise SelfApprovalError("Approval to current owner")
        if caller != token.owner and not self.is_approved_for_all(token.owner, caller):
            raise NotAuthorizedError("Approve caller is not owner nor approved for all")
        self.ownership_repo.set_approved(token_id, to)
        self.signals.emit(APPROVAL, token_id=token_id, detail=f"{token.owner}->{to or ''}")

    def get_approved(self, token_id: int) -> str | None:
        return self.get(token_id).approved

    def set_approval_for_all(self, operator: str, approved: bool, *, caller: str) -> None:
        if operator == caller:
            raise SelfApprovalError("Approve to caller")
        self.ownership_repo.set_operator(caller, operator, approved)

    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        return self.ownership_repo.is_operator(owner, operator)

    def is_approved_or_owner_for_transfer(self, caller: str, token_id: int) -> bool:
        token = self.get(token_id)
        return (
            caller == token.owner
            or caller == token.approved
            or self.is_approved_for_all(token.owner, caller)
        )

    def transfer(self, to: str, token_id: int, *, caller: str) -> None:
        if not to:
            raise NotAuthorizedError("Cannot transfer to an empty address")
        with self.locks.for_token(token_id):
            token = self.get(token_id)
            if not self.is_approved_or_owner_for_transfer(caller, token_id):
                raise NotAuthorizedError("Transfer caller is not owner nor approved")
            self._run_hooks(self._transfer_hooks, token_id)
            self.ownership_repo.set_owner(token_id, to)
        logger.info("Token %s transferred from %s to %s", token_id, token.owner, to)
        self.signals.emit(TRANSFER, token_id=token_id, detail=f"{token.owner}->{to}")

    def burn(self, token_id: int, *, caller: str) -> None:
        with self.locks.for_token(token_id):
            token = self.get(token_id)
            if not self.is_approved_or_owner_for_transfer(caller, token_id):
                raise NotAuthorizedError("Burn caller is not owner nor approved")
            self._run_hooks(self._transfer_hooks, token_id)
            self._run_hooks(self._burn_hooks, token_id)
            self.ownership_repo.delete(token_id)
        logger.info("Token %s burned by %s", token_id, caller)
        self.signals.emit(TRANSFER, token_id=token_id, detail=f"{token.owner}->")

    @staticmethod
    def _run_hooks(hooks: list[TokenHook], token_id: int) -> None:
        for hook in hooks:
            hook(token_id)
