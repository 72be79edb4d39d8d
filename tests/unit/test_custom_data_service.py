from pathlib import Path

import pytest

from multiresource.application.services.registry import MultiResourceRegistry
from multiresource.core.errors import NotAuthorizedError
from multiresource.infrastructure.db.sqlite import initialize_schema

ISSUER = "0xissuer"


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
    return MultiResourceRegistry.open(db_path, issuer=ISSUER)


def test_missing_custom_data_is_empty(tmp_path: Path) -> None:
    registry = _bootstrap(tmp_path)

    assert registry.custom_data.get(1, 3) == b""


def test_set_overwrites_and_emits(tmp_path: Path) -> None:
    registry = _bootstrap(tmp_path)
    registry.catalog.register(1, "UriA", [3], caller=ISSUER)

    registry.custom_data.set(1, 3, b"\xaa\xaa", caller=ISSUER)
    registry.custom_data.set(1, 3, b"\xbb\xbb", caller=ISSUER)

    assert registry.custom_data.get(1, 3) == b"\xbb\xbb"
    signals = registry.signals.history(name="ResourceCustomDataSet")
    assert [(s.resource_id, s.tag_id) for s in signals] == [(1, 3), (1, 3)]


def test_data_may_precede_resource_and_tag(tmp_path: Path) -> None:
    registry = _bootstrap(tmp_path)

    registry.custom_data.set(42, 9, b"early", caller=ISSUER)

    assert registry.catalog.exists(42) is False
    assert registry.custom_data.get(42, 9) == b"early"
    assert [e.tag_id for e in registry.custom_data.list_for_resource(42)] == [9]


def test_only_issuer_sets_custom_data(tmp_path: Path) -> None:
    registry = _bootstrap(tmp_path)

    with pytest.raises(NotAuthorizedError):
        registry.custom_data.set(1, 3, b"x", caller="0xstranger")

    assert registry.custom_data.get(1, 3) == b""
