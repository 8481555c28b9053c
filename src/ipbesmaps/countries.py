"""Bundled country-code and IPBES region reference tables."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

import pandas as pd

from .config import DEFAULT_COUNTRY_CODES_PATH, DEFAULT_REGION_LOOKUP_PATH, AppConfig
from .errors import InvalidArgumentError
from .models import CountryCode, RegionRecord

REGION_LOOKUP_COLUMNS = ("GID_0", "ISO_3", "Area", "Region", "Sub_Region")
# Present in the lookup but not meaningful once joined onto a code table.
_REGION_DROP_COLUMNS = ("ISO_3", "Area")


def _read_csv(path: Path) -> pd.DataFrame:
    if not path.exists():
        raise FileNotFoundError(f"Reference table not found: {path}")
    # "NA" is Namibia's ISO2 code, not a missing value.
    return pd.read_csv(path, dtype=str, keep_default_na=False, na_values=[""])


def load_country_codes(path: Path = DEFAULT_COUNTRY_CODES_PATH) -> list[CountryCode]:
    """Load and validate the default country-code table."""
    frame = _read_csv(path)
    codes: list[CountryCode] = []
    seen_iso3: set[str] = set()
    seen_iso2: set[str] = set()
    for idx, row in enumerate(frame.to_dict(orient="records")):
        try:
            code = CountryCode.from_mapping(row)
        except ValueError as exc:
            raise ValueError(f"Invalid row {idx} in {path}: {exc}") from exc
        if code.iso3 in seen_iso3:
            raise ValueError(f"Duplicate ISO3 '{code.iso3}' in {path}")
        if code.iso2 in seen_iso2:
            raise ValueError(f"Duplicate ISO2 '{code.iso2}' in {path}")
        seen_iso3.add(code.iso3)
        seen_iso2.add(code.iso2)
        codes.append(code)
    return codes


def country_codes_frame(codes: Iterable[CountryCode]) -> pd.DataFrame:
    return pd.DataFrame(
        [{"iso2c": c.iso2, "iso3c": c.iso3, "name": c.name, "n": c.n} for c in codes],
        columns=["iso2c", "iso3c", "name", "n"],
    )


def load_region_lookup(path: Path = DEFAULT_REGION_LOOKUP_PATH) -> pd.DataFrame:
    """Load the IPBES region/subregion lookup keyed by `GID_0`."""
    frame = _read_csv(path)
    missing = [col for col in REGION_LOOKUP_COLUMNS if col not in frame.columns]
    if missing:
        raise ValueError(f"Region lookup {path} missing columns: {', '.join(missing)}")
    for idx, row in enumerate(frame.to_dict(orient="records")):
        try:
            RegionRecord.from_mapping(row)
        except ValueError as exc:
            raise ValueError(f"Invalid row {idx} in {path}: {exc}") from exc
    frame["GID_0"] = frame["GID_0"].str.strip().str.upper()
    if frame["GID_0"].duplicated().any():
        dupes = sorted(set(frame.loc[frame["GID_0"].duplicated(), "GID_0"]))
        raise ValueError(f"Duplicate GID_0 in {path}: {', '.join(dupes)}")
    return frame


def attach_regions(data: pd.DataFrame, lookup: pd.DataFrame) -> pd.DataFrame:
    """Left-join IPBES regions onto a code table by `iso3c`.

    Codes without a lookup row keep null `Region`/`Sub_Region`.
    """
    if "iso3c" not in data.columns:
        raise InvalidArgumentError("`data` must contain an 'iso3c' column to attach regions")
    joined = data.merge(lookup, how="left", left_on="iso3c", right_on="GID_0")
    return joined.drop(columns=[*_REGION_DROP_COLUMNS, "GID_0"], errors="ignore")


@dataclass(frozen=True, slots=True)
class ReferenceData:
    """Read-only bundled tables, passed explicitly so tests can swap them."""

    country_codes: pd.DataFrame
    region_lookup: pd.DataFrame
    default_value_column: str

    def default_table(self) -> pd.DataFrame:
        return self.country_codes.copy()


def load_reference_data(cfg: AppConfig) -> ReferenceData:
    codes = load_country_codes(cfg.paths.country_codes)
    lookup = load_region_lookup(cfg.paths.region_lookup)
    value_column = cfg.defaults.value_column
    frame = country_codes_frame(codes)
    if value_column not in frame.columns:
        raise ValueError(
            f"defaults.value_column '{value_column}' is not a column of {cfg.paths.country_codes}"
        )
    return ReferenceData(country_codes=frame, region_lookup=lookup, default_value_column=value_column)
