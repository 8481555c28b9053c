"""Validation of config, bundled tables and the boundary cache."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from .boundaries import BoundaryRepository
from .codes import iso3_from_iso2
from .config import AppConfig
from .countries import load_country_codes, load_region_lookup
from .models import CountryCode
from .util import format_code_list


@dataclass(slots=True)
class ValidationReport:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)

    def add_info(self, msg: str) -> None:
        self.infos.append(msg)


class Validator:
    """Checks that every input a map call depends on is present and consistent."""

    def __init__(self, cfg: AppConfig, *, repository: BoundaryRepository | None = None) -> None:
        self.cfg = cfg
        self.repository = repository

    def run(self) -> ValidationReport:
        report = ValidationReport()
        self._validate_config_paths(report)
        codes = self._validate_country_codes(report)
        region_codes = self._validate_region_lookup(report)
        if codes and region_codes is not None:
            missing = sorted({code.iso3 for code in codes} - region_codes)
            if missing:
                report.add_warning(
                    "Default country codes without an IPBES region: " + format_code_list(missing)
                )
        self._validate_boundary_cache(report, codes=codes)
        return report

    def _validate_config_paths(self, report: ValidationReport) -> None:
        report.add_info(f"Config loaded from {self.cfg.source_path}")
        for path in self.cfg.paths.required_input_files:
            if not path.exists():
                report.add_error(f"Missing required input file: {path}")

    def _validate_country_codes(self, report: ValidationReport) -> list[CountryCode]:
        path = self.cfg.paths.country_codes
        if not path.exists():
            return []
        try:
            codes = load_country_codes(path)
        except Exception as exc:
            report.add_error(f"Failed parsing country codes '{path}': {exc}")
            return []
        if not codes:
            report.add_error(f"Country code table is empty: {path}")
            return []
        report.add_info(f"Loaded {len(codes)} default country codes from {path}")

        mismatched = [
            f"{code.iso2}->{code.iso3}"
            for code in codes
            if iso3_from_iso2(code.iso2) != code.iso3
        ]
        if mismatched:
            report.add_error(
                "ISO2/ISO3 pairs disagree with ISO 3166: " + format_code_list(sorted(mismatched))
            )
        return codes

    def _validate_region_lookup(self, report: ValidationReport) -> set[str] | None:
        path = self.cfg.paths.region_lookup
        if not path.exists():
            return None
        try:
            lookup = load_region_lookup(path)
        except Exception as exc:
            report.add_error(f"Failed parsing region lookup '{path}': {exc}")
            return None
        report.add_info(
            f"Loaded {len(lookup)} region lookup rows "
            f"({lookup['Region'].nunique()} regions, {lookup['Sub_Region'].nunique()} subregions)"
        )
        return set(lookup["GID_0"])

    def _validate_boundary_cache(self, report: ValidationReport, *, codes: Sequence[CountryCode]) -> None:
        repo = self.repository
        if repo is None:
            if self.cfg.paths.cache_dir is None:
                report.add_info("No paths.cache_dir configured; boundary cache not checked.")
                return
            repo = BoundaryRepository(self.cfg.boundaries, Path(self.cfg.paths.cache_dir))

        if not repo.is_cached():
            report.add_warning(
                f"Boundary file not cached yet: {repo.cached_path()} (run 'ipbesmaps fetch-boundaries')"
            )
            return

        info = repo.source_info()
        if info is None:
            report.add_warning(f"Boundary cache has no provenance sidecar: {repo.sidecar_path()}")
        elif info.get("version") != self.cfg.boundaries.version:
            report.add_warning(
                f"Cached boundary version {info.get('version')} differs from configured "
                f"{self.cfg.boundaries.version}"
            )

        try:
            boundaries = repo.load()
        except Exception as exc:
            report.add_error(f"Failed loading cached boundary file '{repo.cached_path()}': {exc}")
            return
        report.add_info(f"Boundary cache holds {len(boundaries)} country polygons")

        if codes:
            not_in_world = sorted({code.iso3 for code in codes} - set(boundaries["iso3c"]))
            if not_in_world:
                report.add_warning(
                    "Default country codes without a boundary polygon (will not be plotted): "
                    + ", ".join(not_in_world)
                )


def format_report_lines(report: ValidationReport) -> Sequence[str]:
    lines: list[str] = []
    lines.extend(f"[INFO] {msg}" for msg in report.infos)
    lines.extend(f"[WARN] {msg}" for msg in report.warnings)
    lines.extend(f"[ERROR] {msg}" for msg in report.errors)
    if report.ok:
        lines.append("[OK] Validation completed with no errors.")
    return lines
