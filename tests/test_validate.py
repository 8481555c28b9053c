from __future__ import annotations

from ipbesmaps.validate import Validator, format_report_lines


def test_bundled_data_is_consistent(cfg) -> None:
    report = Validator(cfg).run()

    assert report.ok, report.errors
    assert any("default country codes" in msg for msg in report.infos)
    assert any("No paths.cache_dir configured" in msg for msg in report.infos)


def test_uncached_boundaries_warn(cfg, repo) -> None:
    report = Validator(cfg, repository=repo).run()

    assert report.ok
    assert any("not cached yet" in msg for msg in report.warnings)


def test_cached_boundaries_report_coverage(cfg, cached_repo) -> None:
    report = Validator(cfg, repository=cached_repo).run()

    assert report.ok
    assert any("5 country polygons" in msg for msg in report.infos)
    assert any("provenance sidecar" in msg for msg in report.warnings)
    coverage = [msg for msg in report.warnings if "without a boundary polygon" in msg]
    assert len(coverage) == 1
    assert "SGP" in coverage[0]
    assert "more)" not in coverage[0]


def test_fetched_boundaries_have_provenance(cfg, repo) -> None:
    repo.fetch()

    report = Validator(cfg, repository=repo).run()

    assert not any("provenance" in msg for msg in report.warnings)


def test_bad_country_table_is_an_error(cfg, tmp_path) -> None:
    from dataclasses import replace

    bad = tmp_path / "codes.csv"
    bad.write_text("iso2c,iso3c,name,n\nDE,FRA,Germany,1\n", encoding="utf-8")
    cfg = replace(cfg, paths=replace(cfg.paths, country_codes=bad))

    report = Validator(cfg).run()

    assert not report.ok
    assert any("DE->FRA" in msg for msg in report.errors)
    assert format_report_lines(report)[-1].startswith("[ERROR]")
