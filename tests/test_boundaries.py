from __future__ import annotations

import json

import geopandas as gpd
import pytest
import requests
from shapely.geometry import box

from ipbesmaps.boundaries import BoundaryRepository
from ipbesmaps.errors import BoundaryDataError
from ipbesmaps.util import sha256_file

from .conftest import WORLD_ORDER, StubSession


def test_fetch_downloads_once_and_writes_sidecar(repo, session, cfg) -> None:
    path = repo.fetch()

    assert path == repo.cached_path()
    assert path.exists()
    assert session.calls == [(cfg.boundaries.url, cfg.boundaries.request_timeout_s)]

    info = json.loads(repo.sidecar_path().read_text(encoding="utf-8"))
    assert info["version"] == "v5.1.1"
    assert info["resolution"] == "110m"
    assert info["sha256"] == sha256_file(path)
    assert repo.source_info() == info

    repo.fetch()
    assert len(session.calls) == 1


def test_force_redownloads(repo, session) -> None:
    repo.fetch()
    repo.fetch(force=True)

    assert len(session.calls) == 2


def test_http_error_propagates_without_cache_file(cfg, cache_dir) -> None:
    failing = StubSession(content=b"not found", status_code=404)
    repo = BoundaryRepository(cfg.boundaries, cache_dir, session=failing)

    with pytest.raises(requests.HTTPError):
        repo.fetch()
    assert not repo.is_cached()
    assert repo.source_info() is None


def test_load_normalizes_and_dissolves(world) -> None:
    assert list(world.columns) == ["iso3c", "name", "geometry"]
    assert world["iso3c"].tolist() == WORLD_ORDER
    assert world["iso3c"].is_unique
    assert world.crs.to_epsg() == 4326

    usa = world.loc[world["iso3c"] == "USA", "geometry"].iloc[0]
    assert usa.geom_type == "MultiPolygon"
    assert world.loc[world["iso3c"] == "FRA", "name"].iloc[0] == "France"


def test_cached_load_makes_no_request(cached_repo, session) -> None:
    cached_repo.load()

    assert session.calls == []


def test_iso_column_scored_on_values(repo) -> None:
    frame = gpd.GeoDataFrame(
        {"ISO_A3": ["-99", "-99", "BRA"], "GID_0": ["FRA", "NOR", "BRA"]},
        geometry=[box(0, 0, 1, 1), box(1, 1, 2, 2), box(2, 2, 3, 3)],
        crs="EPSG:4326",
    )

    assert repo.detect_iso_column(frame) == "GID_0"


def test_rows_without_iso_code_are_discarded(repo) -> None:
    frame = gpd.GeoDataFrame(
        {"ADM0_A3": ["DEU", "-99", None], "NAME": ["Germany", "Nowhere", "Void"]},
        geometry=[box(0, 0, 1, 1), box(1, 1, 2, 2), box(2, 2, 3, 3)],
        crs="EPSG:4326",
    )

    out = repo.normalize(frame)

    assert out["iso3c"].tolist() == ["DEU"]


def test_undetectable_iso_column(repo) -> None:
    frame = gpd.GeoDataFrame(
        {"label": ["a", "b"]},
        geometry=[box(0, 0, 1, 1), box(1, 1, 2, 2)],
        crs="EPSG:4326",
    )

    with pytest.raises(BoundaryDataError, match="Could not detect ISO3 column"):
        repo.normalize(frame)


def test_reprojects_to_lat_long(repo) -> None:
    frame = gpd.GeoDataFrame(
        {"ADM0_A3": ["DEU"]},
        geometry=[box(1_000_000, 6_000_000, 1_100_000, 6_100_000)],
        crs="EPSG:3857",
    )

    out = repo.normalize(frame)

    assert out.crs.to_epsg() == 4326
    minx, miny, maxx, maxy = out.total_bounds
    assert -180 <= minx <= maxx <= 180
    assert -90 <= miny <= maxy <= 90


def test_placeholder_iso_codes_fall_back_to_adm0(repo) -> None:
    frame = gpd.GeoDataFrame(
        {
            "ISO_A3": ["DEU", "ESH", "-99"],
            "ADM0_A3": ["DEU", "SAH", "KOS"],
            "NAME": ["Germany", "W. Sahara", "Kosovo"],
        },
        geometry=[box(0, 0, 1, 1), box(1, 1, 2, 2), box(2, 2, 3, 3)],
        crs="EPSG:4326",
    )

    out = repo.normalize(frame)

    assert repo.detect_iso_column(frame) == "ISO_A3"
    assert out["iso3c"].tolist() == ["DEU", "ESH", "KOS"]
    assert out.loc[2, "name"] == "Kosovo"
