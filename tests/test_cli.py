from __future__ import annotations

from pathlib import Path

import pytest

from ipbesmaps import cli
from ipbesmaps.boundaries import BoundaryRepository

from .conftest import StubSession, world_geojson_bytes


@pytest.fixture()
def populated_cache(cfg, tmp_path: Path) -> Path:
    cache = tmp_path / "cache"
    target = cache / cfg.boundaries.filename
    target.parent.mkdir(parents=True)
    target.write_bytes(world_geojson_bytes())
    return cache


@pytest.fixture()
def no_network(monkeypatch) -> StubSession:
    stub = StubSession()
    monkeypatch.setattr(BoundaryRepository, "_build_session", staticmethod(lambda ua: stub))
    return stub


def test_map_command_writes_image(tmp_path, populated_cache, no_network) -> None:
    data = tmp_path / "codes.csv"
    data.write_text("iso2c,papers\nDE,3\nNA,4\nBR,7\n", encoding="utf-8")
    out = tmp_path / "map.png"

    code = cli.main(
        [
            "map",
            "--data", str(data),
            "--values", "papers",
            "--cache-dir", str(populated_cache),
            "--output", str(out),
            "--dpi", "40",
        ]
    )

    assert code == 0
    assert out.exists()
    assert no_network.calls == []


def test_map_command_reserved_type(tmp_path, populated_cache, no_network) -> None:
    code = cli.main(
        [
            "map",
            "--map-type", "regions",
            "--cache-dir", str(populated_cache),
            "--output", str(tmp_path / "regions.png"),
        ]
    )

    assert code == 2
    assert not (tmp_path / "regions.png").exists()


def test_map_command_missing_value_column(tmp_path, populated_cache, no_network) -> None:
    data = tmp_path / "codes.csv"
    data.write_text("iso3c,papers\nDEU,3\n", encoding="utf-8")

    code = cli.main(
        [
            "map",
            "--data", str(data),
            "--values", "citations",
            "--cache-dir", str(populated_cache),
            "--output", str(tmp_path / "map.png"),
        ]
    )

    assert code == 1


def test_fetch_boundaries(tmp_path, no_network, cfg) -> None:
    cache = tmp_path / "fresh"

    assert cli.main(["fetch-boundaries", "--cache-dir", str(cache)]) == 0
    assert (cache / cfg.boundaries.filename).exists()
    assert len(no_network.calls) == 1

    assert cli.main(["fetch-boundaries", "--cache-dir", str(cache)]) == 0
    assert len(no_network.calls) == 1


def test_validate_command(populated_cache, no_network) -> None:
    assert cli.main(["validate", "--cache-dir", str(populated_cache)]) == 0


def test_validate_without_cache_dir(no_network) -> None:
    assert cli.main(["validate"]) == 0
