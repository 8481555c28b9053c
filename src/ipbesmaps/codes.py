"""ISO 3166 code normalization for caller-supplied tables."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

import pandas as pd
import pycountry

from .errors import InvalidArgumentError

ISO2_COLUMN = "iso2c"
ISO3_COLUMN = "iso3c"

_LOGGER = logging.getLogger("ipbesmaps.codes")


def _clean_code(value: Any) -> str | None:
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    text = str(value).strip().upper()
    return text or None


@lru_cache(maxsize=512)
def iso3_from_iso2(code: str) -> str | None:
    """Return the alpha-3 code for an alpha-2 code, or None when unknown."""
    text = _clean_code(code)
    if text is None or len(text) != 2 or not text.isalpha():
        return None
    try:
        country = pycountry.countries.get(alpha_2=text)
    except (KeyError, LookupError):
        country = None
    return getattr(country, "alpha_3", None) if country else None


def normalize_codes(data: pd.DataFrame) -> pd.DataFrame:
    """Return a copy of `data` with an upper-case `iso3c` column.

    An existing `iso3c` column is kept (trimmed and upper-cased); otherwise it
    is derived from `iso2c`. Codes that cannot be mapped become null.
    """
    if not isinstance(data, pd.DataFrame):
        raise InvalidArgumentError(f"`data` must be a pandas DataFrame, got {type(data).__name__}")
    out = data.copy()
    if ISO3_COLUMN in out.columns:
        out[ISO3_COLUMN] = out[ISO3_COLUMN].map(_clean_code).astype(object)
        return out
    if ISO2_COLUMN not in out.columns:
        raise InvalidArgumentError(
            f"`data` must contain a column called '{ISO2_COLUMN}' or '{ISO3_COLUMN}'"
        )

    iso2 = [_clean_code(value) for value in out[ISO2_COLUMN]]
    iso3 = [iso3_from_iso2(code) if code is not None else None for code in iso2]
    out[ISO3_COLUMN] = pd.Series(iso3, index=out.index, dtype=object)
    unmapped = sorted({code for code, mapped in zip(iso2, iso3) if code and mapped is None})
    if unmapped:
        _LOGGER.warning("No ISO3 match for ISO2 codes: %s", ", ".join(unmapped))
    return out
