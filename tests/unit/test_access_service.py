import threading
from pathlib import Path

import pytest

from multiresource.application.services.registry import MultiResourceRegistry
from multiresource.core.errors import NotAuthorizedError, NotFoundError, SelfApprovalError
from multiresource.infrastructure.db.sqlite import initialize_schema

ISSUER = "0xissuer"
OWNER = "0xowner"
DELEGATE = "0xdelegate"
OPERATOR = "0xoperator"
NEW_OWNER = "0xnewowner"


def _bootstrap(tmp_path: Path) -> MultiResourceRegistry:
    db_path = tmp_path / "mres.db"
    schema_path = (
        Path(__file__).resolve().parents[2]
        / "src"
        / "multiresource"
        / "infrastructure"
        / "db"
        / "schema.sql"
    )
    initialize_schema(db_path, schema_path)
    registry = MultiResourceRegistry.open(db_path, issuer=ISSUER)
    registry.ownership.mint(OWNER, 1)
    for resource_id in (1, 2):
        registry.catalog.register(resource_id, "metaURI", caller=ISSUER)
    return registry


@pytest.mark.parametrize("how", ["owner", "delegate", "blanket"])
def test_accept_and_reject_with_standing(tmp_path: Path, how: str) -> None:
    registry = _bootstrap(tmp_path)
    if how == "owner":
        caller = OWNER
    elif how == "delegate":
        caller = DELEGATE
        registry.access.approve_for_resources(DELEGATE, 1, caller=OWNER)
    else:
        caller = OPERATOR
        registry.access.set_approval_for_all_for_resources(OPERATOR, True, caller=OWNER)

    registry.ledger.propose(1, 1)
    registry.ledger.propose(1, 2)

    assert registry.ledger.accept(1, 0, caller=caller) == 1
    assert registry.ledger.reject(1, 0, caller=caller) == 2
    registry.ledger.set_priority(1, [9], caller=caller)

    assert registry.ledger.get_active(1) == [1]
    assert registry.ledger.get_priorities(1) == [9]


def test_authorization_is_independent_of_transfer_approval(tmp_path: Path) -> None:
    registry = _bootstrap(tmp_path)
    registry.ownership.approve(DELEGATE, 1, caller=OWNER)
    registry.ledger.propose(1, 1)

    assert registry.access.is_authorized(1, DELEGATE) is False
    with pytest.raises(NotAuthorizedError):
        registry.ledger.accept(1, 0, caller=DELEGATE)


def test_single_delegate_is_replaced(tmp_path: Path) -> None:
    registry = _bootstrap(tmp_path)

    registry.access.approve_for_resources(DELEGATE, 1, caller=OWNER)
    registry.access.approve_for_resources(OPERATOR, 1, caller=OWNER)

    assert registry.access.get_approved_for_resources(1) == OPERATOR
    assert registry.access.is_authorized(1, DELEGATE) is False
    assert registry.access.is_authorized(1, OPERATOR) is True


def test_blanket_operator_can_set_delegate(tmp_path: Path) -> None:
    registry = _bootstrap(tmp_path)
    registry.access.set_approval_for_all_for_resources(OPERATOR, True, caller=OWNER)

    registry.access.approve_for_resources(DELEGATE, 1, caller=OPERATOR)

    assert registry.access.get_approved_for_resources(1) == DELEGATE


def test_stranger_cannot_set_delegate(tmp_path: Path) -> None:
    registry = _bootstrap(tmp_path)

    with pytest.raises(NotAuthorizedError):
        registry.access.approve_for_resources(DELEGATE, 1, caller=DELEGATE)

    assert registry.access.get_approved_for_resources(1) is None


def test_self_approval_is_rejected(tmp_path: Path) -> None:
    registry = _bootstrap(tmp_path)

    with pytest.raises(SelfApprovalError):
        registry.access.set_approval_for_all_for_resources(OWNER, True, caller=OWNER)
    with pytest.raises(SelfApprovalError):
        registry.access.approve_for_resources(OWNER, 1, caller=OWNER)


def test_blanket_approval_is_idempotent_and_revocable(tmp_path: Path) -> None:
    registry = _bootstrap(tmp_path)

    registry.access.set_approval_for_all_for_resources(OPERATOR, True, caller=OWNER)
    registry.access.set_approval_for_all_for_resources(OPERATOR, True, caller=OWNER)
    assert registry.access.is_approved_for_all_for_resources(OWNER, OPERATOR) is True

    registry.access.set_approval_for_all_for_resources(OPERATOR, False, caller=OWNER)
    assert registry.access.is_approved_for_all_for_resources(OWNER, OPERATOR) is False
    assert registry.access.is_authorized(1, OPERATOR) is False


def test_transfer_clears_token_and_resource_approvals(tmp_path: Path) -> None:
    registry = _bootstrap(tmp_path)
    registry.ownership.approve(DELEGATE, 1, caller=OWNER)
    registry.access.approve_for_resources(DELEGATE, 1, caller=OWNER)
    assert registry.ownership.get_approved(1) == DELEGATE
    assert registry.access.get_approved_for_resources(1) == DELEGATE

    registry.ownership.transfer(NEW_OWNER, 1, caller=OWNER)

    assert registry.ownership.owner_of(1) == NEW_OWNER
    assert registry.ownership.get_approved(1) is None
    assert registry.access.get_approved_for_resources(1) is None
    assert registry.access.is_authorized(1, DELEGATE) is False


def test_blanket_approval_follows_owner_not_token(tmp_path: Path) -> None:
    registry = _bootstrap(tmp_path)
    registry.access.set_approval_for_all_for_resources(OPERATOR, True, caller=OWNER)

    registry.ownership.transfer(NEW_OWNER, 1, caller=OWNER)

    assert registry.access.is_approved_for_all_for_resources(OWNER, OPERATOR) is True
    assert registry.access.is_authorized(1, OPERATOR) is False
    assert registry.access.is_authorized(1, OWNER) is False
    assert registry.access.is_authorized(1, NEW_OWNER) is True


def test_burn_clears_approvals_and_resource_state(tmp_path: Path) -> None:
    registry = _bootstrap(tmp_path)
    registry.ownership.approve(DELEGATE, 1, caller=OWNER)
    registry.access.approve_for_resources(DELEGATE, 1, caller=OWNER)
    registry.ledger.propose(1, 1)
    registry.ledger.accept(1, 0, caller=OWNER)
    registry.ledger.propose(1, 2, overwrite_target=1)

    registry.ownership.burn(1, caller=OWNER)

    with pytest.raises(NotFoundError):
        registry.ownership.get_approved(1)
    with pytest.raises(NotFoundError):
        registry.access.get_approved_for_resources(1)
    assert registry.ledger.snapshot(1).is_empty()
    assert registry.ledger.get_overwrite(1, 2) == 0

    # A re-minted token starts without the burned token's delegate or resources.
    registry.ownership.mint(NEW_OWNER, 1)
    assert registry.access.get_approved_for_resources(1) is None
    assert registry.ledger.get_active(1) == []


def test_delegate_approval_does_not_survive_concurrent_transfer(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    registry = _bootstrap(tmp_path)
    original_owner_of = registry.ownership.owner_of
    transfer_thread: list[threading.Thread] = []

    def _owner_of_then_transfer(token_id: int) -> str:
        owner = original_owner_of(token_id)
        if not transfer_thread:
            t = threading.Thread(
                target=registry.ownership.transfer, args=(NEW_OWNER, token_id), kwargs={"caller": OWNER}
            )
            transfer_thread.append(t)
            t.start()
            # Returns early while the transfer waits on the token lock.
            t.join(timeout=0.3)
        return owner

    monkeypatch.setattr(registry.ownership, "owner_of", _owner_of_then_transfer)
    registry.access.approve_for_resources(DELEGATE, 1, caller=OWNER)
    transfer_thread[0].join(timeout=5)
    monkeypatch.setattr(registry.ownership, "owner_of", original_owner_of)

    assert registry.ownership.owner_of(1) == NEW_OWNER
    assert registry.access.get_approved_for_resources(1) is None
    assert registry.access.is_authorized(1, DELEGATE) is False
