"""CLI entrypoint for ipbesmaps."""

from __future__ import annotations

import argparse
import logging
import warnings
from pathlib import Path
from typing import Sequence

import matplotlib
import pandas as pd

from .boundaries import BoundaryRepository
from .config import AppConfig, load_config
from .errors import IpbesMapsError, IpbesMapsWarning
from .maps import map_country_codes
from .models import MapType
from .util import resolve_cache_dir, setup_logging
from .validate import Validator, format_report_lines

LOGGER = logging.getLogger("ipbesmaps.cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ipbesmaps",
        description="Country-code maps for IPBES assessment support.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument("--config", default=None, help="Path to YAML config (packaged defaults if omitted).")
        p.add_argument("--verbose", action="store_true", help="Enable debug logs.")
        p.add_argument("--log-file", default=None, help="Also write logs to this file.")

    map_p = subparsers.add_parser("map", help="Render a country-code choropleth to an image file.")
    add_common(map_p)
    map_p.add_argument(
        "--data",
        default=None,
        help="CSV with an iso2c and/or iso3c column. Bundled default codes if omitted.",
    )
    map_p.add_argument("--values", default=None, help="Column to plot; also the legend title.")
    map_p.add_argument(
        "--map-type",
        default=MapType.COUNTRIES.value,
        choices=[item.value for item in MapType],
        help="Map type (only 'countries' is implemented).",
    )
    map_p.add_argument("--cache-dir", default=None, help="Directory for the boundary download.")
    map_p.add_argument("--output", required=True, help="Image file to write (format from suffix).")
    map_p.add_argument("--dpi", type=int, default=None, help="Override render.dpi when saving.")

    fetch_p = subparsers.add_parser("fetch-boundaries", help="Download the boundary file into the cache.")
    add_common(fetch_p)
    fetch_p.add_argument("--cache-dir", default=None, help="Directory for the boundary download.")
    fetch_p.add_argument("--force", action="store_true", help="Re-download even when cached.")

    validate_p = subparsers.add_parser("validate", help="Validate config, bundled tables and cache.")
    add_common(validate_p)
    validate_p.add_argument("--cache-dir", default=None, help="Boundary cache to inspect.")

    return parser


def _load_and_setup(args: argparse.Namespace) -> AppConfig:
    log_file = Path(args.log_file) if args.log_file else None
    setup_logging(log_file, verbose=args.verbose)
    return load_config(args.config)


def _cache_dir(cfg: AppConfig, raw: str | None) -> Path:
    return resolve_cache_dir(raw, cfg.paths.cache_dir)


def _read_table(path: str) -> pd.DataFrame:
    # Keep codes as text: "NA" is Namibia.
    return pd.read_csv(path, keep_default_na=False, na_values=[""])


def _run_map(
    cfg: AppConfig,
    *,
    data_path: str | None,
    values: str | None,
    map_type: str,
    cache_dir: Path,
    output: Path,
    dpi: int | None,
) -> int:
    matplotlib.use("Agg")
    data = _read_table(data_path) if data_path else None
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", IpbesMapsWarning)
        artifact = map_country_codes(
            data,
            values,
            map_type,
            cache_dir,
            config=cfg,
        )
    for item in caught:
        LOGGER.warning("%s", item.message)
    try:
        path = artifact.save(output, dpi=dpi)
    finally:
        artifact.close()
    LOGGER.info("Map written to %s", path)
    return 0


def _run_fetch(cfg: AppConfig, *, cache_dir: Path, force: bool) -> int:
    repo = BoundaryRepository(cfg.boundaries, cache_dir)
    path = repo.fetch(force=force)
    boundaries = repo.load()
    LOGGER.info("Boundary file %s ready (%d country polygons)", path, len(boundaries))
    return 0


def _run_validate(cfg: AppConfig, *, cache_dir: str | None) -> int:
    repository = BoundaryRepository(cfg.boundaries, Path(cache_dir)) if cache_dir else None
    report = Validator(cfg, repository=repository).run()
    for line in format_report_lines(report):
        LOGGER.info(line)
    return 0 if report.ok else 1


def _dispatch(args: argparse.Namespace) -> int:
    cfg = _load_and_setup(args)
    command = str(args.command)
    if command == "map":
        return _run_map(
            cfg,
            data_path=args.data,
            values=args.values,
            map_type=str(args.map_type),
            cache_dir=_cache_dir(cfg, args.cache_dir),
            output=Path(args.output),
            dpi=args.dpi,
        )
    if command == "fetch-boundaries":
        return _run_fetch(cfg, cache_dir=_cache_dir(cfg, args.cache_dir), force=bool(args.force))
    if command == "validate":
        return _run_validate(cfg, cache_dir=args.cache_dir)
    raise ValueError(f"Unknown command: {command}")


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    try:
        return _dispatch(args)
    except NotImplementedError as exc:
        LOGGER.error("%s", exc)
        return 2
    except IpbesMapsError as exc:
        LOGGER.error("%s", exc)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
