from pathlib import Path

import pytest

from multiresource.application.services.registry import MultiResourceRegistry
from multiresource.cli.main import main
from multiresource.core.config import load_paths

ISSUER = "0xissuer"
OWNER = "0xowner"


@pytest.fixture(autouse=True)
def _no_home_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MRES_HOME", raising=False)


def _populate(project_root: Path) -> None:
    registry = MultiResourceRegistry.open(load_paths(project_root).db_path)
    registry.ownership.mint(OWNER, 1)
    registry.catalog.register(1, "UriA", [3], caller=ISSUER)
    registry.catalog.register(2, "UriB", [3], caller=ISSUER)
    registry.custom_data.set(2, 3, bytes.fromhex("bbbb"), caller=ISSUER)
    registry.resolver.set_fallback_uri("fallback404", caller=ISSUER)
    registry.ledger.propose(1, 1)
    registry.ledger.propose(1, 2)
    registry.ledger.accept(1, 0, caller=OWNER)
    registry.ledger.accept(1, 0, caller=OWNER)


def test_init_creates_database_and_issuer(tmp_path: Path) -> None:
    assert main(["--project-root", str(tmp_path), "init", "--issuer", ISSUER]) == 0

    paths = load_paths(tmp_path)
    assert paths.db_path.exists()
    assert MultiResourceRegistry.open(paths.db_path).issuer.get_issuer() == ISSUER


def test_commands_fail_before_init(tmp_path: Path) -> None:
    assert main(["--project-root", str(tmp_path), "token", "1"]) == 1
    assert main(["--project-root", str(tmp_path), "doctor"]) == 1


def test_resolve_variants(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    main(["--project-root", str(tmp_path), "init", "--issuer", ISSUER])
    _populate(tmp_path)
    capsys.readouterr()

    assert main(["--project-root", str(tmp_path), "resolve", "1"]) == 0
    assert capsys.readouterr().out.strip() == "UriA"

    assert main(["--project-root", str(tmp_path), "resolve", "1", "--index", "1"]) == 0
    assert capsys.readouterr().out.strip() == "UriB"

    assert main(["--project-root", str(tmp_path), "resolve", "1", "--index", "5"]) == 0
    assert capsys.readouterr().out.strip() == "fallback404"

    assert main(["--project-root", str(tmp_path), "resolve", "1", "--tag", "3", "--value", "0xbbbb"]) == 0
    assert capsys.readouterr().out.strip() == "UriB"


def test_resolve_tag_requires_value(tmp_path: Path) -> None:
    main(["--project-root", str(tmp_path), "init", "--issuer", ISSUER])

    assert main(["--project-root", str(tmp_path), "resolve", "1", "--tag", "3"]) == 1


def test_inspection_commands(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    main(["--project-root", str(tmp_path), "init", "--issuer", ISSUER])
    _populate(tmp_path)
    capsys.readouterr()

    assert main(["--project-root", str(tmp_path), "catalog"]) == 0
    assert "UriA" in capsys.readouterr().out

    assert main(["--project-root", str(tmp_path), "token", "1"]) == 0
    assert OWNER in capsys.readouterr().out

    assert main(["--project-root", str(tmp_path), "signals", "--token", "1"]) == 0
    assert "ResourceAccepted" in capsys.readouterr().out

    assert main(["--project-root", str(tmp_path), "doctor"]) == 0
    assert "PASS" in capsys.readouterr().out


def test_mres_home_overrides_data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    home = tmp_path / "elsewhere"
    monkeypatch.setenv("MRES_HOME", str(home))

    paths = load_paths(tmp_path / "project")

    assert paths.data_dir == home.resolve()
    assert paths.db_path == home.resolve() / "mres.db"
