"""World boundary download, caching and loading."""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable, Sequence

import pandas as pd
import pycountry
import requests

from .config import BoundariesConfig
from .errors import BoundaryDataError
from .models import BoundarySourceInfo
from .util import sha256_file, write_json

BOUNDARY_CRS = "EPSG:4326"

_LOGGER = logging.getLogger("ipbesmaps.boundaries")


def _first_existing_column(columns: Iterable[str], candidates: Sequence[str]) -> str | None:
    existing = {col.lower(): col for col in columns}
    for candidate in candidates:
        match = existing.get(candidate.lower())
        if match:
            return match
    return None


class BoundaryRepository:
    """Cached access to a versioned country-level boundary file.

    The file is downloaded once into `cache_dir`; later calls read it from
    disk. Download errors propagate unchanged.
    """

    ISO_COLUMNS = (
        "GID_0",
        "ADM0_A3",
        "ISO_A3",
        "ISO_A3_EH",
        "ADM0_A3_US",
        "ADM0_A3_UN",
        "SOV_A3",
        "WB_A3",
        "BRK_A3",
        "SU_A3",
        "GU_A3",
        "ISO3",
        "A3",
    )
    NAME_COLUMNS = ("NAME_0", "ADMIN", "NAME", "NAME_EN", "NAME_LONG", "name")

    def __init__(
        self,
        cfg: BoundariesConfig,
        cache_dir: Path,
        *,
        session: requests.Session | None = None,
    ) -> None:
        self.cfg = cfg
        self.cache_dir = Path(cache_dir)
        self._session = session if session is not None else self._build_session(cfg.user_agent)

    @staticmethod
    def _build_session(user_agent: str) -> requests.Session:
        session = requests.Session()
        session.headers.update({"User-Agent": user_agent})
        return session

    def cached_path(self) -> Path:
        return self.cache_dir / self.cfg.filename

    def sidecar_path(self) -> Path:
        target = self.cached_path()
        return target.with_name(target.name + ".json")

    def is_cached(self) -> bool:
        return self.cached_path().exists()

    def fetch(self, *, force: bool = False) -> Path:
        """Ensure the boundary file is on disk and return its path."""
        target = self.cached_path()
        if target.exists() and not force:
            _LOGGER.debug("Using cached boundary file %s", target)
            return target

        url = self.cfg.url
        _LOGGER.info("Downloading boundaries %s -> %s", url, target)
        response = self._session.get(url, timeout=self.cfg.request_timeout_s)
        response.raise_for_status()

        self.cache_dir.mkdir(parents=True, exist_ok=True)
        partial = target.with_name(target.name + ".part")
        partial.write_bytes(response.content)
        partial.replace(target)

        info = BoundarySourceInfo.create(
            url=url,
            version=self.cfg.version,
            resolution=self.cfg.resolution,
            level=self.cfg.level,
            sha256=sha256_file(target),
        )
        write_json(self.sidecar_path(), info.to_dict())
        _LOGGER.info("Cached boundary file %s (%d bytes)", target, target.stat().st_size)
        return target

    def source_info(self) -> dict[str, Any] | None:
        path = self.sidecar_path()
        if not path.exists():
            return None
        with path.open("r", encoding="utf-8") as fh:
            payload = json.load(fh)
        return payload if isinstance(payload, dict) else None

    def load(self, *, force: bool = False) -> Any:
        """Return country polygons as a GeoDataFrame (`iso3c`, `name`, `geometry`)."""
        path = self.fetch(force=force)
        gpd = _require_geopandas()
        raw = gpd.read_file(path)
        boundaries = self.normalize(raw)
        _LOGGER.info("Loaded %d boundary polygons from %s", len(boundaries), path)
        return boundaries

    def detect_iso_column(self, frame: Any, *, iso_allowlist: frozenset[str] | None = None) -> str:
        allowlist = iso_allowlist if iso_allowlist is not None else _known_iso3_codes()
        iso_col = _select_best_iso_column(frame, self.ISO_COLUMNS, iso_allowlist=allowlist)
        if iso_col is None:
            cols = ", ".join(str(c) for c in frame.columns)
            raise BoundaryDataError(
                f"Could not detect ISO3 column in boundary data. Available columns: {cols}"
            )
        return iso_col

    def normalize(self, frame: Any) -> Any:
        """Reduce raw boundary rows to one polygon per ISO3 code, in file order."""
        gpd = _require_geopandas()
        iso_col = self.detect_iso_column(frame)
        name_col = _first_existing_column(frame.columns, self.NAME_COLUMNS)
        _LOGGER.debug("Boundary columns selected: iso=%s name=%s", iso_col, name_col)

        # Natural Earth writes -99 into ISO_A3 for Kosovo, Somaliland and the like.
        codes = [_clean_iso3(value) for value in frame[iso_col]]
        for fallback in self.ISO_COLUMNS:
            col = _first_existing_column(frame.columns, (fallback,))
            if col is None or col == iso_col or all(code is not None for code in codes):
                continue
            codes = [
                code if code is not None else _clean_iso3(value)
                for code, value in zip(codes, frame[col])
            ]

        names = frame[name_col] if name_col is not None else frame[iso_col]
        out = gpd.GeoDataFrame(
            {
                "iso3c": codes,
                "name": [None if pd.isna(value) else str(value) for value in names],
            },
            geometry=list(frame.geometry),
            crs=frame.crs,
        )
        invalid = out["iso3c"].isna()
        if invalid.any():
            _LOGGER.debug("Discarding %d boundary rows without an ISO3 code", int(invalid.sum()))
            out = out[~invalid]

        if out["iso3c"].duplicated().any():
            out = _dissolve_in_order(out)

        if out.crs is None:
            out = out.set_crs(BOUNDARY_CRS)
        elif out.crs.to_epsg() != 4326:
            out = out.to_crs(BOUNDARY_CRS)
        return out.reset_index(drop=True)


def _clean_iso3(value: Any) -> str | None:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    text = str(value).strip().upper()
    if len(text) != 3 or not text.isalpha():
        return None
    return text


def _dissolve_in_order(frame: Any) -> Any:
    gpd = _require_geopandas()
    unary_union = _require_shapely_unary_union()
    rows: list[dict[str, Any]] = []
    for code in pd.unique(frame["iso3c"]):
        part = frame[frame["iso3c"] == code]
        rows.append(
            {
                "iso3c": code,
                "name": part["name"].iloc[0],
                "geometry": unary_union(list(part.geometry)),
            }
        )
    _LOGGER.debug("Dissolved %d boundary rows into %d polygons", len(frame), len(rows))
    return gpd.GeoDataFrame(rows, geometry="geometry", crs=frame.crs)


def _select_best_iso_column(
    dataframe: Any,
    preferred_columns: Sequence[str],
    *,
    iso_allowlist: frozenset[str] | None,
) -> str | None:
    """Pick the best ISO3-like column using schema hints and data-based scoring."""
    existing = [str(col) for col in dataframe.columns]
    by_lower = {col.lower(): col for col in existing}

    candidates: list[str] = []
    for candidate in preferred_columns:
        match = by_lower.get(candidate.lower())
        if match and match not in candidates:
            candidates.append(match)

    if not candidates:
        return None

    best_col: str | None = None
    best_score: tuple[int, int, int] | None = None
    for candidate in candidates:
        score = _score_iso_values(dataframe[candidate].tolist(), iso_allowlist=iso_allowlist)
        if best_score is None or score > best_score:
            best_col = candidate
            best_score = score

    if best_col is None or best_score is None or best_score[1] == 0:
        return None
    return best_col


def _score_iso_values(
    values: list[Any],
    *,
    iso_allowlist: frozenset[str] | None,
) -> tuple[int, int, int]:
    valid: list[str] = []
    for value in values:
        normalized = _clean_iso3(value)
        if normalized is not None:
            valid.append(normalized)

    valid_set = set(valid)
    overlap_count = len(valid_set & iso_allowlist) if iso_allowlist else 0
    return (overlap_count, len(valid), len(valid_set))


@lru_cache(maxsize=1)
def _known_iso3_codes() -> frozenset[str]:
    return frozenset(country.alpha_3 for country in pycountry.countries)


@lru_cache(maxsize=1)
def _require_geopandas() -> Any:
    try:
        import geopandas as gpd
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("geopandas is required for boundary loading") from exc
    return gpd


def _require_shapely_unary_union() -> Any:
    try:
        from shapely.ops import unary_union
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("shapely is required for dissolving boundary polygons") from exc
    return unary_union
