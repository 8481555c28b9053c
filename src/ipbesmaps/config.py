"""Typed configuration loader for map settings."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, cast

import yaml

PACKAGE_DIR = Path(__file__).resolve().parent
DATA_DIR = PACKAGE_DIR / "data"
DEFAULT_CONFIG_PATH = DATA_DIR / "default_config.yaml"
DEFAULT_COUNTRY_CODES_PATH = DATA_DIR / "countrycodes.csv"
DEFAULT_REGION_LOOKUP_PATH = DATA_DIR / "ipbes_regions_subregions.csv"


def _mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValueError(f"Expected mapping for '{field_name}'")
    return cast(Mapping[str, Any], value)


def _str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected non-empty string for '{field_name}'")
    return value.strip()


def _int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Expected integer for '{field_name}'")
    return value


def _float(value: Any, field_name: str) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    raise ValueError(f"Expected float for '{field_name}'")


def _optional_path(value: Any, field_name: str, root_dir: Path) -> Path | None:
    if value is None:
        return None
    p = Path(_str(value, field_name)).expanduser()
    return p if p.is_absolute() else root_dir / p


@dataclass(frozen=True, slots=True)
class BoundariesConfig:
    url_template: str
    version: str
    resolution: str
    level: int
    request_timeout_s: float
    user_agent: str

    @property
    def url(self) -> str:
        return self.url_template.format(
            version=self.version,
            resolution=self.resolution,
            level=self.level,
        )

    @property
    def filename(self) -> str:
        suffix = Path(self.url_template).suffix or ".geojson"
        return f"world_adm{self.level}_{self.resolution}_{self.version}{suffix}"

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> BoundariesConfig:
        level = _int(raw.get("level", 0), "boundaries.level")
        if level != 0:
            raise ValueError("boundaries.level must be 0 (country level)")
        timeout = _float(raw.get("request_timeout_s", 60), "boundaries.request_timeout_s")
        if timeout <= 0:
            raise ValueError("boundaries.request_timeout_s must be > 0")
        url_template = _str(raw.get("url_template"), "boundaries.url_template")
        if "{version}" not in url_template or "{resolution}" not in url_template:
            raise ValueError(
                "boundaries.url_template must contain '{version}' and '{resolution}' placeholders"
            )
        return cls(
            url_template=url_template,
            version=_str(raw.get("version"), "boundaries.version"),
            resolution=_str(raw.get("resolution"), "boundaries.resolution"),
            level=level,
            request_timeout_s=timeout,
            user_agent=_str(raw.get("user_agent"), "boundaries.user_agent"),
        )


@dataclass(frozen=True, slots=True)
class PathsConfig:
    cache_dir: Path | None
    country_codes: Path
    region_lookup: Path

    @property
    def required_input_files(self) -> tuple[Path, ...]:
        return (self.country_codes, self.region_lookup)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], root_dir: Path) -> PathsConfig:
        country_codes = _optional_path(raw.get("country_codes"), "paths.country_codes", root_dir)
        region_lookup = _optional_path(raw.get("region_lookup"), "paths.region_lookup", root_dir)
        return cls(
            cache_dir=_optional_path(raw.get("cache_dir"), "paths.cache_dir", root_dir),
            country_codes=country_codes or DEFAULT_COUNTRY_CODES_PATH,
            region_lookup=region_lookup or DEFAULT_REGION_LOOKUP_PATH,
        )


@dataclass(frozen=True, slots=True)
class RenderConfig:
    width_px: int
    height_px: int
    dpi: int
    crs: str
    cmap: str
    missing_color: str
    edge_color: str

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> RenderConfig:
        width_px = _int(raw.get("width_px"), "render.width_px")
        height_px = _int(raw.get("height_px"), "render.height_px")
        dpi = _int(raw.get("dpi"), "render.dpi")
        if width_px <= 0 or height_px <= 0:
            raise ValueError("render.width_px and render.height_px must be > 0")
        if dpi <= 0:
            raise ValueError("render.dpi must be > 0")
        return cls(
            width_px=width_px,
            height_px=height_px,
            dpi=dpi,
            crs=_str(raw.get("crs"), "render.crs"),
            cmap=_str(raw.get("cmap"), "render.cmap"),
            missing_color=_str(raw.get("missing_color"), "render.missing_color"),
            edge_color=_str(raw.get("edge_color"), "render.edge_color"),
        )


@dataclass(frozen=True, slots=True)
class DefaultsConfig:
    value_column: str

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> DefaultsConfig:
        return cls(value_column=_str(raw.get("value_column"), "defaults.value_column"))


@dataclass(frozen=True, slots=True)
class AppConfig:
    source_path: Path
    boundaries: BoundariesConfig
    paths: PathsConfig
    render: RenderConfig
    defaults: DefaultsConfig

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], source_path: Path) -> AppConfig:
        root_dir = source_path.parent.resolve()
        return cls(
            source_path=source_path.resolve(),
            boundaries=BoundariesConfig.from_mapping(_mapping(raw.get("boundaries"), "boundaries")),
            paths=PathsConfig.from_mapping(_mapping(raw.get("paths", {}), "paths"), root_dir),
            render=RenderConfig.from_mapping(_mapping(raw.get("render"), "render")),
            defaults=DefaultsConfig.from_mapping(_mapping(raw.get("defaults"), "defaults")),
        )


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load and validate a YAML config file; the packaged defaults when `path` is None."""
    cfg_path = Path(path).resolve() if path is not None else DEFAULT_CONFIG_PATH
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)
    if not isinstance(raw, Mapping):
        raise ValueError("Top-level config must be a YAML mapping")
    return AppConfig.from_mapping(cast(Mapping[str, Any], raw), cfg_path)
