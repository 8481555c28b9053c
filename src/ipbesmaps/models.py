"""Domain models shared across map modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

from .errors import InvalidArgumentError, MapTypeNotImplementedError


def _require_str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected non-empty string for '{field_name}'")
    return value.strip()


def _normalize_iso(value: str, expected_len: int, field_name: str) -> str:
    normalized = value.strip().upper()
    if len(normalized) != expected_len or not normalized.isalpha():
        raise ValueError(f"Invalid {field_name}: '{value}'")
    return normalized


class MapType(str, Enum):
    COUNTRIES = "countries"
    REGIONS = "regions"
    SUBREGIONS = "subregions"

    @property
    def supported(self) -> bool:
        return self in SUPPORTED_MAP_TYPES


SUPPORTED_MAP_TYPES = frozenset({MapType.COUNTRIES})
# Region polygons exist upstream, but the join keys are not settled yet.
RESERVED_MAP_TYPES = frozenset({MapType.REGIONS, MapType.SUBREGIONS})

_RESERVED_MESSAGES = {
    MapType.REGIONS: "Regions not yet implemented",
    MapType.SUBREGIONS: "Subregions not yet implemented",
}


def parse_map_type(value: str | MapType) -> MapType:
    """Resolve a map type name, failing for unknown or reserved values."""
    if isinstance(value, MapType):
        map_type = value
    else:
        try:
            map_type = MapType(str(value).strip().casefold())
        except ValueError:
            allowed = ", ".join(f"'{item.value}'" for item in MapType)
            raise InvalidArgumentError(f"`map_type` must be one of {allowed}") from None
    if map_type in RESERVED_MAP_TYPES:
        raise MapTypeNotImplementedError(_RESERVED_MESSAGES[map_type])
    return map_type


@dataclass(frozen=True, slots=True)
class CountryCode:
    """One row of the bundled default country-code table."""

    iso2: str
    iso3: str
    name: str
    n: int = 1

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> CountryCode:
        iso2 = _normalize_iso(_require_str(data.get("iso2c"), "iso2c"), 2, "iso2c")
        iso3 = _normalize_iso(_require_str(data.get("iso3c"), "iso3c"), 3, "iso3c")
        name = _require_str(data.get("name"), "name")
        n_raw = data.get("n", 1)
        try:
            n = int(n_raw)
        except (TypeError, ValueError):
            raise ValueError(f"Expected integer for 'n' ({iso3})") from None
        return cls(iso2=iso2, iso3=iso3, name=name, n=n)


@dataclass(frozen=True, slots=True)
class RegionRecord:
    """IPBES region/subregion assignment for one country."""

    gid_0: str
    region: str
    sub_region: str

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> RegionRecord:
        return cls(
            gid_0=_normalize_iso(_require_str(data.get("GID_0"), "GID_0"), 3, "GID_0"),
            region=_require_str(data.get("Region"), "Region"),
            sub_region=_require_str(data.get("Sub_Region"), "Sub_Region"),
        )


@dataclass(frozen=True, slots=True)
class BoundarySourceInfo:
    """Provenance written next to a cached boundary file."""

    url: str
    version: str
    resolution: str
    level: int
    sha256: str
    retrieved_at_utc: str

    @classmethod
    def create(
        cls,
        *,
        url: str,
        version: str,
        resolution: str,
        level: int,
        sha256: str,
    ) -> BoundarySourceInfo:
        now = datetime.now(timezone.utc).isoformat()
        return cls(
            url=url,
            version=version,
            resolution=resolution,
            level=level,
            sha256=sha256,
            retrieved_at_utc=now,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "version": self.version,
            "resolution": self.resolution,
            "level": self.level,
            "sha256": self.sha256,
            "retrieved_at_utc": self.retrieved_at_utc,
        }


@dataclass(frozen=True, slots=True)
class ReconciliationResult:
    """Input table aligned 1:1 with boundary polygons."""

    table: Any
    value_column: str
    dropped_codes: tuple[str, ...] = ()
    duplicate_codes: tuple[str, ...] = ()

    @property
    def matched_count(self) -> int:
        return int(self.table[self.value_column].notna().sum())


@dataclass(frozen=True, slots=True)
class MapArtifact:
    """Rendered choropleth handed back to the caller."""

    figure: Any
    axes: Any
    table: Any
    value_column: str
    map_type: MapType
    dropped_codes: tuple[str, ...] = field(default_factory=tuple)

    def save(self, path: str | Path, *, dpi: int | None = None) -> Path:
        out = Path(path)
        out.parent.mkdir(parents=True, exist_ok=True)
        if dpi is None:
            self.figure.savefig(out)
        else:
            self.figure.savefig(out, dpi=dpi)
        return out

    def close(self) -> None:
        import matplotlib.pyplot as plt

        plt.close(self.figure)
