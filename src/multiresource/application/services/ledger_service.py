from __future__ import annotations

import logging

from multiresource.application.services.access_service import ResourceAccessService
from multiresource.application.services.ownership_service import OwnershipRegistry
from multiresource.application.services.signal_bus import SignalBus
from multiresource.core.config import MAX_PENDING_RESOURCES
from multiresource.core.errors import (
    AlreadyAttachedError,
    CapacityExceededError,
    IndexOutOfRangeError,
    InvalidIdError,
    LengthMismatchError,
    NotFoundError,
)
from multiresource.core.ids import MAX_ID, new_uuid
from multiresource.core.locks import TokenLocks
from multiresource.core.time import now_utc_iso
from multiresource.domain.models.resource import Resource
from multiresource.domain.models.signal import (
    BATCH_SENTINEL,
    RESOURCE_ACCEPTED,
    RESOURCE_ADDED_TO_TOKEN,
    RESOURCE_OVERWRITE_PROPOSED,
    RESOURCE_OVERWRITTEN,
    RESOURCE_PRIORITY_SET,
    RESOURCE_REJECTED,
    Signal,
)
from multiresource.domain.models.token_state import TokenResourceState
from multiresource.infrastructure.db.repos.catalog_repo import CatalogRepo
from multiresource.infrastructure.db.repos.ledger_repo import ATTACHED, FULL, LedgerRepo

logger = logging.getLogger(__name__)


class LedgerService:
    """Pending/active resource lifecycle for each token.

    A (token, resource) pair moves absent -> pending -> active, and leaves
    pending again on rejection or active again when superseded by an accepted
    overwrite. Anyone may propose; only the owner or a resource delegate may
    accept, reject or reprioritise.

    Index arguments address the pending sequence as it currently stands. The
    entry at that index is resolved to its resource id and every removal then
    works on the id, swapping the last pending entry into the freed slot.
    """

    def __init__(
        self,
        catalog_repo: CatalogRepo,
        ledger_repo: LedgerRepo,
        ownership: OwnershipRegistry,
        access: ResourceAccessService,
        signals: SignalBus,
        locks: TokenLocks | None = None,
    ) -> None:
        self.catalog_repo = catalog_repo
        self.ledger_repo = ledger_repo
        self.ownership = ownership
        self.access = access
        self.signals = signals
        self.locks = locks or TokenLocks()

    def propose(self, token_id: int, resource_id: int, overwrite_target: int = 0) -> None:
        if overwrite_target < 0 or overwrite_target > MAX_ID:
            raise InvalidIdError(f"Overwrite target must be in 0..{MAX_ID}, got {overwrite_target}")

        with self.locks.for_token(token_id):
            if not self.ownership.exists(token_id):
                raise NotFoundError(f"Token does not exist: {token_id}")
            if not self.catalog_repo.exists(resource_id):
                raise NotFoundError(f"No resource matching id: {resource_id}")
            refusal = self.ledger_repo.append_pending(
                token_id, resource_id, overwrite_target, capacity=MAX_PENDING_RESOURCES
            )
            if refusal == ATTACHED:
                raise AlreadyAttachedError(f"Resource {resource_id} already exists on token {token_id}")
            if refusal == FULL:
                raise CapacityExceededError(
                    f"Token {token_id} already has {MAX_PENDING_RESOURCES} pending resources"
                )

        signals = [self._signal(RESOURCE_ADDED_TO_TOKEN, token_id, resource_id)]
        if overwrite_target:
            signals.append(
                self._signal(
                    RESOURCE_OVERWRITE_PROPOSED,
                    token_id,
                    resource_id,
                    detail=f"overwrites={overwrite_target}",
                )
            )
        self.signals.publish(signals)

    def accept(self, token_id: int, index: int, *, caller: str) -> int:
        """Promote the pending entry at ``index``. Returns the accepted resource id."""
        with self.locks.for_token(token_id):
            self.access.require_authorized(token_id, caller)
            promoted = self.ledger_repo.promote_at(token_id, index)
            if promoted is None:
                raise self._index_error(token_id, index)
            resource_id, superseded = promoted

        signals = [self._signal(RESOURCE_ACCEPTED, token_id, resource_id)]
        if superseded is not None:
            signals.append(
                self._signal(RESOURCE_OVERWRITTEN, token_id, superseded, detail=f"by={resource_id}")
            )
            logger.info("Token %s: resource %s overwritten by %s", token_id, superseded, resource_id)
        self.signals.publish(signals)
        return resource_id

    def reject(self, token_id: int, index: int, *, caller: str) -> int:
        """Discard the pending entry at ``index``. Returns the rejected resource id."""
        with self.locks.for_token(token_id):
            self.access.require_authorized(token_id, caller)
            resource_id = self.ledger_repo.remove_pending_at(token_id, index)
            if resource_id is None:
                raise self._index_error(token_id, index)

        self.signals.publish([self._signal(RESOURCE_REJECTED, token_id, resource_id)])
        return resource_id

    def reject_all(self, token_id: int, *, caller: str) -> list[int]:
        """Discard every pending entry. Returns the rejected ids in their former order."""
        with self.locks.for_token(token_id):
            self.access.require_authorized(token_id, caller)
            removed = self.ledger_repo.clear_pending(token_id)

        self.signals.publish([self._signal(RESOURCE_REJECTED, token_id, BATCH_SENTINEL)])
        return removed

    def set_priority(self, token_id: int, priorities: list[int], *, caller: str) -> None:
        values = [int(p) for p in priorities]
        with self.locks.for_token(token_id):
            # Raises NotFoundError for a token that does not exist.
            self.ownership.owner_of(token_id)
            active = self.ledger_repo.load_state(token_id).active
            if len(values) != len(active):
                raise self._length_error(token_id, len(values), len(active))
            self.access.require_authorized(token_id, caller)
            if not self.ledger_repo.replace_priorities(token_id, values):
                active = self.ledger_repo.load_state(token_id).active
                raise self._length_error(token_id, len(values), len(active))

        self.signals.publish([self._signal(RESOURCE_PRIORITY_SET, token_id, None)])

    def destroy_token_state(self, token_id: int) -> None:
        """Burn hook: drop all ledger state of a token."""
        with self.locks.for_token(token_id):
            self.ledger_repo.delete_token_state(token_id)
        logger.debug("Token %s: resource state destroyed", token_id)

    def snapshot(self, token_id: int) -> TokenResourceState:
        with self.locks.for_token(token_id):
            return self.ledger_repo.load_state(token_id)

    def get_pending(self, token_id: int) -> list[int]:
        return self.snapshot(token_id).pending

    def get_active(self, token_id: int) -> list[int]:
        return self.snapshot(token_id).active

    def get_priorities(self, token_id: int) -> list[int]:
        return self.snapshot(token_id).priorities

    def get_overwrite(self, token_id: int, resource_id: int) -> int:
        return self.ledger_repo.get_overwrite(token_id, resource_id)

    def get_full_pending(self, token_id: int) -> list[Resource]:
        return self.catalog_repo.get_many(self.get_pending(token_id))

    def get_full_active(self, token_id: int) -> list[Resource]:
        return self.catalog_repo.get_many(self.get_active(token_id))

    def get_pending_at(self, token_id: int, index: int) -> Resource:
        resource_id = self._pending_at(self.snapshot(token_id), index)
        return self._resource(resource_id)

    def get_active_at(self, token_id: int, index: int) -> Resource:
        active = self.get_active(token_id)
        if index < 0 or index >= len(active):
            raise IndexOutOfRangeError(
                f"Active index {index} out of range for token {token_id} ({len(active)} active)"
            )
        return self._resource(active[index])

    def _resource(self, resource_id: int) -> Resource:
        resource = self.catalog_repo.get_by_id(resource_id)
        if resource is None:
            raise NotFoundError(f"No resource matching id: {resource_id}")
        return resource

    @staticmethod
    def _pending_at(state: TokenResourceState, index: int) -> int:
        if index < 0 or index >= len(state.pending):
            raise IndexOutOfRangeError(
                f"Pending index {index} out of range for token {state.token_id} ({len(state.pending)} pending)"
            )
        return state.pending[index]

    @staticmethod
    def _signal(name: str, token_id: int, resource_id: int | None, detail: str | None = None) -> Signal:
        return Signal(
            id=new_uuid(),
            name=name,
            token_id=token_id,
            resource_id=resource_id,
            tag_id=None,
            emitted_at=now_utc_iso(),
            detail=detail,
        )

    @staticmethod
    def _index_error(token_id: int, index: int) -> IndexOutOfRangeError:
        return IndexOutOfRangeError(f"Pending index {index} out of range for token {token_id}")

    @staticmethod
    def _length_error(token_id: int, given: int, active: int) -> LengthMismatchError:
        return LengthMismatchError(
            f"Bad priority list length: got {given}, token {token_id} has {active} active resources"
        )
