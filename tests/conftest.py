from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import matplotlib

matplotlib.use("Agg")

import pytest
import requests

from ipbesmaps.boundaries import BoundaryRepository
from ipbesmaps.config import AppConfig, load_config


def _box(minx: float, miny: float, maxx: float, maxy: float) -> dict[str, Any]:
    ring = [[minx, miny], [maxx, miny], [maxx, maxy], [minx, maxy], [minx, miny]]
    return {"type": "Polygon", "coordinates": [ring]}


def _feature(adm0: str, iso_a3: str, name: str, geometry: dict[str, Any]) -> dict[str, Any]:
    return {
        "type": "Feature",
        "properties": {"ADM0_A3": adm0, "ISO_A3": iso_a3, "NAME": name},
        "geometry": geometry,
    }


# File order matters: reconciled tables must follow it.
WORLD_FEATURES = [
    _feature("DEU", "DEU", "Germany", _box(5, 47, 15, 55)),
    _feature("FRA", "-99", "France", _box(-5, 42, 5, 51)),
    _feature("USA", "USA", "United States of America", _box(-125, 25, -67, 49)),
    _feature("BRA", "BRA", "Brazil", _box(-70, -30, -35, 5)),
    _feature("USA", "USA", "United States of America", _box(-168, 55, -141, 71)),
    _feature("KEN", "KEN", "Kenya", _box(34, -4, 42, 5)),
]
WORLD_ORDER = ["DEU", "FRA", "USA", "BRA", "KEN"]


def world_geojson_bytes() -> bytes:
    payload = {"type": "FeatureCollection", "features": WORLD_FEATURES}
    return json.dumps(payload).encode("utf-8")


class StubResponse:
    def __init__(self, content: bytes, status_code: int = 200, url: str = "") -> None:
        self.content = content
        self.status_code = status_code
        self.url = url

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error for url: {self.url}")


class StubSession:
    """Stands in for requests.Session; records every GET."""

    def __init__(self, content: bytes | None = None, status_code: int = 200) -> None:
        self.content = content if content is not None else world_geojson_bytes()
        self.status_code = status_code
        self.calls: list[tuple[str, Any]] = []

    def get(self, url: str, timeout: Any = None) -> StubResponse:
        self.calls.append((url, timeout))
        return StubResponse(self.content, status_code=self.status_code, url=url)


@pytest.fixture()
def cfg() -> AppConfig:
    return load_config()


@pytest.fixture()
def session() -> StubSession:
    return StubSession()


@pytest.fixture()
def cache_dir(tmp_path: Path) -> Path:
    return tmp_path / "geodata"


@pytest.fixture()
def repo(cfg: AppConfig, cache_dir: Path, session: StubSession) -> BoundaryRepository:
    return BoundaryRepository(cfg.boundaries, cache_dir, session=session)


@pytest.fixture()
def cached_repo(repo: BoundaryRepository) -> BoundaryRepository:
    target = repo.cached_path()
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(world_geojson_bytes())
    return repo


@pytest.fixture()
def world(cached_repo: BoundaryRepository) -> Any:
    return cached_repo.load()
