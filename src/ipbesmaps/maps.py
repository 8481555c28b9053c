"""Draw maps of country codes.

`map_country_codes` takes a table with `iso2c` and/or `iso3c` columns and a
value column, joins it onto world country boundaries and returns a
`MapArtifact` holding the matplotlib figure::

    art = map_country_codes(df, values="n", geodata_path="cache/")
    art.save("map.png")

Only the `countries` map type renders today; `regions` and `subregions` are
reserved and raise `MapTypeNotImplementedError`.
"""

from __future__ import annotations

import logging
import warnings
from pathlib import Path
from typing import Callable

import pandas as pd

from .boundaries import BoundaryRepository
from .codes import normalize_codes
from .config import AppConfig, load_config
from .countries import ReferenceData, load_reference_data
from .errors import InvalidArgumentError, MissingInputWarning
from .models import MapArtifact, MapType, parse_map_type
from .reconcile import reconcile
from .render import MapRenderer
from .util import resolve_cache_dir

_LOGGER = logging.getLogger("ipbesmaps.maps")


def map_country_codes(
    data: pd.DataFrame | None = None,
    values: str | None = None,
    map_type: str | MapType = "countries",
    geodata_path: str | Path | None = None,
    *,
    config: AppConfig | None = None,
    reference: ReferenceData | None = None,
    repository: BoundaryRepository | None = None,
) -> MapArtifact:
    """Draw a choropleth of `values` for the countries listed in `data`.

    Parameters
    ----------
    data:
        Table with at least one column called `iso2c` or `iso3c`. When
        omitted, the bundled default country codes are used and a
        `MissingInputWarning` is emitted.
    values:
        Name of the column to plot; also used as the legend title.
        Required whenever `data` is given.
    map_type:
        One of 'countries', 'regions', 'subregions'.
    geodata_path:
        Directory to cache the boundary download in. Defaults to
        `paths.cache_dir` from the config, else a temporary directory.
    config, reference, repository:
        Injected settings, bundled tables and boundary source. Loaded from
        the packaged defaults when omitted.
    """
    return _map_country_codes(
        data,
        values,
        map_type,
        geodata_path,
        config=config,
        reference=reference,
        repository=repository,
        stacklevel=3,
    )


def render_map(
    data: pd.DataFrame | None,
    value_column: str | None,
    map_type: str | MapType = "countries",
    cache_path: str | Path | None = None,
    **kwargs,
) -> MapArtifact:
    """Alias of `map_country_codes` with the same arguments and warnings."""
    return _map_country_codes(data, value_column, map_type, cache_path, stacklevel=3, **kwargs)


def _map_country_codes(
    data: pd.DataFrame | None,
    values: str | None,
    map_type: str | MapType,
    geodata_path: str | Path | None,
    *,
    config: AppConfig | None = None,
    reference: ReferenceData | None = None,
    repository: BoundaryRepository | None = None,
    stacklevel: int,
) -> MapArtifact:
    # stacklevel is counted from this frame and must reach the public caller.
    resolved = parse_map_type(map_type)
    cfg = config if config is not None else load_config()

    if data is None:
        ref = reference if reference is not None else load_reference_data(cfg)
        warnings.warn(
            "No data provided. Using default country codes.",
            MissingInputWarning,
            stacklevel=stacklevel,
        )
        data = ref.default_table()
        values = ref.default_value_column
    elif values is None:
        raise InvalidArgumentError("`values` must name the column to plot when `data` is given")

    table = normalize_codes(data)
    if values not in table.columns:
        raise InvalidArgumentError(f"Value column '{values}' not found in `data`")

    if repository is None:
        cache_dir = resolve_cache_dir(geodata_path, cfg.paths.cache_dir)
        repository = BoundaryRepository(cfg.boundaries, cache_dir)

    builder = _BUILDERS[resolved]
    return builder(table, values, cfg=cfg, repository=repository, stacklevel=stacklevel + 1)


def _build_country_map(
    table: pd.DataFrame,
    values: str,
    *,
    cfg: AppConfig,
    repository: BoundaryRepository,
    stacklevel: int,
) -> MapArtifact:
    boundaries = repository.load()
    result = reconcile(table, boundaries, values, stacklevel=stacklevel)
    _LOGGER.info(
        "Country map: %d polygons, %d with values, %d codes dropped",
        len(result.table),
        result.matched_count,
        len(result.dropped_codes),
    )
    return MapRenderer(cfg.render).render(result, map_type=MapType.COUNTRIES)


_BUILDERS: dict[MapType, Callable[..., MapArtifact]] = {
    MapType.COUNTRIES: _build_country_map,
}
