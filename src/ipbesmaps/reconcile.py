"""Align a country-code table with boundary polygons."""

from __future__ import annotations

import logging
import warnings
from typing import Any

import pandas as pd

from .codes import ISO3_COLUMN
from .errors import InvalidArgumentError, PartialCoverageWarning
from .models import ReconciliationResult
from .util import format_code_list

MISSING_CODE_LABEL = "NA"

_LOGGER = logging.getLogger("ipbesmaps.reconcile")


def coverage_message(dropped: list[str]) -> str:
    return (
        "The following countries are not in the world dataset: \n"
        + ", ".join(dropped)
        + "\nand will therefore not be plotted!"
    )


def reconcile(
    data: pd.DataFrame,
    boundaries: Any,
    value_column: str,
    *,
    stacklevel: int = 2,
) -> ReconciliationResult:
    """Return one row per boundary polygon, in boundary order.

    Rows whose `iso3c` has no polygon are dropped with a single
    `PartialCoverageWarning` naming every dropped code. Polygons without an
    input row get a null value. The join is keyed on `iso3c`, so row *i* of
    the result always carries polygon *i* of `boundaries`.
    """
    if ISO3_COLUMN not in data.columns:
        raise InvalidArgumentError(f"`data` must contain an '{ISO3_COLUMN}' column")
    if value_column in (ISO3_COLUMN, "geometry"):
        raise InvalidArgumentError(f"'{value_column}' cannot be used as the value column")
    if value_column not in data.columns:
        raise InvalidArgumentError(f"Value column '{value_column}' not found in `data`")

    boundary_codes = set(boundaries[ISO3_COLUMN])
    in_world = data[ISO3_COLUMN].isin(boundary_codes)

    missing = data.loc[~in_world, ISO3_COLUMN]
    dropped = sorted({MISSING_CODE_LABEL if pd.isna(code) else str(code) for code in missing})
    if dropped:
        warnings.warn(coverage_message(dropped), PartialCoverageWarning, stacklevel=stacklevel + 1)
        _LOGGER.info("Dropped %d codes without boundary polygons", len(dropped))

    kept = data.loc[in_world, [ISO3_COLUMN, value_column]]
    duplicated = kept[ISO3_COLUMN].duplicated(keep="first")
    duplicate_codes = sorted(set(kept.loc[duplicated, ISO3_COLUMN]))
    if duplicate_codes:
        _LOGGER.warning(
            "Duplicate input rows for %s; keeping the first row of each",
            format_code_list(duplicate_codes),
        )
        kept = kept.loc[~duplicated]

    table = boundaries.merge(
        kept,
        how="left",
        on=ISO3_COLUMN,
        validate="one_to_one",
        suffixes=("_boundary", ""),
    )
    _LOGGER.debug("Reconciled %d input rows onto %d polygons", len(kept), len(table))
    return ReconciliationResult(
        table=table,
        value_column=value_column,
        dropped_codes=tuple(dropped),
        duplicate_codes=tuple(duplicate_codes),
    )
