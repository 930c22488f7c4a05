"""
cli.py — Click CLI entrypoint for the PSGC pipelines.

Usage:
    psgc import data/PSGC-3Q-2025.xlsx
    psgc import data/psgc.json --dry-run
    psgc clean data/psgc-raw.csv data/psgc-clean.json
    psgc merge data/psgc-complete.json data/psgc-cloud.json -o data/psgc-merged.json
    psgc validate data/psgc.json
    psgc diagnose data/psgc.xlsx
    psgc fetch -o data/psgc-cloud.json
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import get_args

import click
import polars as pl
import structlog

from psgc_shared.config import settings
from psgc_shared.errors import ForeignKeyViolation

from psgc_pipeline.sources.files import FileFormat
from psgc_pipeline.utils.logging import configure_logging
from psgc_pipeline.validation.standards import LevelCheck, checks_frame

log = structlog.get_logger(__name__)

_FORMATS = click.Choice(list(get_args(FileFormat)))


def _echo_checks(title: str, checks: list[LevelCheck]) -> None:
    if not checks:
        return
    click.echo(title)
    with pl.Config(tbl_hide_dataframe_shape=True, tbl_hide_column_data_types=True):
        click.echo(str(checks_frame(checks)))


def _echo_json(payload: object) -> None:
    click.echo(json.dumps(payload, indent=2, default=str))


@click.group()
@click.option(
    "--log-level",
    default=settings.log_level,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Log level",
)
@click.option(
    "--log-format",
    default=settings.log_format,
    type=click.Choice(["json", "console"]),
    help="Log output format",
)
def main(log_level: str, log_format: str) -> None:
    """PSGC import, cleaning and validation pipelines."""
    configure_logging(log_level, log_format)


@main.command("import")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--format", "fmt", type=_FORMATS, default=None, help="Override format detection")
@click.option("--sheet", default=None, help="Excel sheet name (default: PSGC)")
@click.option("--dry-run", is_flag=True, help="Classify and reconcile without writing")
def import_(file: Path, fmt: FileFormat | None, sheet: str | None, dry_run: bool) -> None:
    """Import a PSGC source file into the DuckDB store."""
    from psgc_pipeline.pipelines.import_psgc import run

    try:
        result = asyncio.run(
            run(
                file,
                format=fmt,
                sheet_name=sheet,
                dry_run=dry_run,
            )
        )
    except ForeignKeyViolation as exc:
        log.error("import_aborted", error=str(exc))
        raise click.ClickException(str(exc)) from exc

    _echo_json(result.summary())
    _echo_checks("Standards (levels):", result.checks)
    _echo_checks("Standards (city classes):", result.city_class_checks)


@main.command()
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("output_path", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--format", "fmt", type=_FORMATS, default=None, help="Override format detection")
def clean(input_path: Path, output_path: Path, fmt: FileFormat | None) -> None:
    """Classify and reconcile a file, writing level-grouped JSON."""
    from psgc_pipeline.pipelines.clean import run

    result = asyncio.run(run(input_path, output_path, format=fmt))
    click.echo(f"Wrote {len(result.reconciled.entities)} entities to {result.output_path}")
    _echo_json(result.reconciled.report.summary())


@main.command()
@click.argument("baseline", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument(
    "supplements", nargs=-1, required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-o", "--output", "output_path", required=True,
    type=click.Path(dir_okay=False, path_type=Path),
)
@click.option("--preview", "preview_limit", type=int, default=None, help="Added codes to show")
def merge(
    baseline: Path, supplements: tuple[Path, ...], output_path: Path, preview_limit: int | None
) -> None:
    """Add records missing from BASELINE using one or more SUPPLEMENT files."""
    from psgc_pipeline.pipelines.merge_sources import run

    result = asyncio.run(
        run(baseline, list(supplements), output_path, preview_limit=preview_limit)
    )
    report = result.merged.report
    click.echo(f"Wrote {len(result.reconciled.entities)} entities to {result.output_path}")
    _echo_json(report.summary())
    for code in report.preview():
        click.echo(f"  + {code}")
    more = len(report.added_codes) - len(report.preview())
    if more > 0:
        click.echo(f"  ... and {more} more")


@main.command()
@click.argument(
    "file", required=False, type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.option("--no-store", is_flag=True, help="Only check FILE, skip the database")
def validate(file: Path | None, no_store: bool) -> None:
    """Check FILE and/or the store against the PSA reference totals."""
    from psgc_pipeline.loaders.duckdb_loader import GeoStore
    from psgc_pipeline.pipelines.validate import run

    if file is None and no_store:
        raise click.UsageError("--no-store needs a FILE")

    store = None if no_store else GeoStore()
    report = asyncio.run(run(file, store=store))

    click.echo(f"Reference totals: {report.vintage}")
    _echo_checks("File:", report.file_checks)
    _echo_checks("Store:", report.store_checks)
    _echo_checks("City classes:", report.city_class_checks)
    if report.file_vs_store:
        click.echo("Store - file:")
        for level, delta in report.file_vs_store.items():
            click.echo(f"  {level.value:14s} {delta:+d}")
    for result in report.integrity:
        mark = "ok" if result.passed else f"{len(result.rows)} rows"
        click.echo(f"  {result.name:34s} {mark}")
    if not report.ok:
        raise SystemExit(1)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--limit", default=20, show_default=True, help="Names to show per list")
@click.option("--no-store", is_flag=True, help="Skip the file vs store comparison")
def diagnose(file: Path, limit: int, no_store: bool) -> None:
    """Explain City/Municipality and count discrepancies in FILE."""
    from psgc_pipeline.loaders.duckdb_loader import GeoStore
    from psgc_pipeline.pipelines.diagnose import run

    report = asyncio.run(run(file, store=None if no_store else GeoStore()))

    _echo_checks("Counts vs standards:", report.checks)
    click.echo(f"City + Municipality delta: {report.city_municipality_delta:+d}")
    click.echo(f"Municipalities named like cities: {len(report.suspect_cities)}")
    for entity in report.suspect_cities[:limit]:
        click.echo(f"  {entity.code}  {entity.name}")
    click.echo(f"Cities without 'city' in the name: {len(report.suspect_municipalities)}")
    for entity in report.suspect_municipalities[:limit]:
        click.echo(f"  {entity.code}  {entity.name}")
    for level, codes in report.missing_in_store.items():
        click.echo(f"Not in store ({level.value}): {len(codes)}")
        for code in codes[:limit]:
            click.echo(f"  {code}")


@main.command()
@click.option(
    "-o", "--output", "output_path", required=True,
    type=click.Path(dir_okay=False, path_type=Path),
)
def fetch(output_path: Path) -> None:
    """Download every level from PSGC Cloud into a JSON file."""
    from psgc_pipeline.pipelines.fetch import run

    result = asyncio.run(run(output_path))
    click.echo(f"Wrote {result.records} records to {result.output_path}")
    if result.failed_levels:
        click.echo(
            "Failed levels: " + ", ".join(level.value for level in result.failed_levels),
            err=True,
        )
        raise SystemExit(1)


if __name__ == "__main__":
    main()
