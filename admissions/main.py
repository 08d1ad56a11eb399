#!/usr/bin/env python3
"""
Healthcare Admissions - Cleaning Pipeline Entry Point

Cleans an admissions file, assigns patient and visit ids, and produces the
analysis reports.

Usage:
    python -m admissions.main clean data/raw/healthcare_dataset.csv --output data/processed/cleaned.csv
    python -m admissions.main clean healthcare_dataset.csv --save-db      # looked up under data/raw
    python -m admissions.main report --input data/processed/cleaned.csv --output data/processed/report.json
    python -m admissions.main audit data/raw/healthcare_dataset.csv
    python -m admissions.main status
"""

import sys
from pathlib import Path

import click
from loguru import logger
from rich.console import Console
from rich.table import Table
from sqlalchemy.exc import SQLAlchemyError

from admissions.config import settings
from admissions.database import create_all_tables, get_session, load_admissions, replace_admissions, table_counts
from admissions.deduplication import duplicate_group_count, find_age_variations, find_exact_duplicates
from admissions.errors import AdmissionsError, MalformedRecordError, PipelineStageError
from admissions.exporter import save_report, write_records_csv
from admissions.ingest import read_admissions_csv
from admissions.normalizers import normalize_records
from admissions.pipeline import CleaningPipeline
from admissions.reports import AdmissionsReport

console = Console()


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--log-file", type=click.Path(dir_okay=False, path_type=Path), help="Also log to this rotating file")
def cli(debug, log_file):
    """Healthcare Admissions Cleaning Pipeline"""
    if debug or log_file:
        from admissions.utils.logging import setup_logging
        setup_logging(level="DEBUG" if debug else None, log_file=log_file)


def resolve_input(path: Path) -> Path:
    """Use ``path`` as given, or look it up under the raw data directory."""
    if path.is_file():
        return path
    candidate = settings.pipeline.data_raw_dir / path
    if candidate.is_file():
        return candidate
    raise click.BadParameter(f"{path} not found (also looked in {settings.pipeline.data_raw_dir})")


def default_output(input_path: Path) -> Path:
    """Cleaned CSV location for ``input_path`` under the processed data directory."""
    return settings.pipeline.data_processed_dir / f"{input_path.stem}_cleaned.csv"


@cli.command()
@click.argument("input_path", type=click.Path(dir_okay=False, path_type=Path))
@click.option(
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write cleaned CSV here (default: <data_processed_dir>/<input>_cleaned.csv)",
)
@click.option("--save-db", is_flag=True, help="Replace the healthcare_dataset table with the cleaned rows")
@click.option(
    "--on-malformed",
    type=click.Choice(["reject", "fail"]),
    default=None,
    help="Drop unparseable rows or abort the run (default from settings)",
)
@click.option("--age-tolerance", type=int, default=None, help="Patient identity window in years")
def clean(input_path: Path, output: Path | None, save_db: bool, on_malformed: str | None, age_tolerance: int | None):
    """
    Clean an admissions file.

    INPUT_PATH is a CSV with the healthcare dataset columns, either a path
    or a file name under the raw data directory.
    """
    input_path = resolve_input(input_path)
    output = output or default_output(input_path)
    console.print(f"\n[bold blue]Healthcare Admissions - Cleaning[/bold blue]")
    console.print(f"Input: {input_path}\n")

    try:
        result = CleaningPipeline(age_tolerance=age_tolerance).run_csv(input_path, on_malformed=on_malformed)
    except MalformedRecordError as e:
        console.print(f"[red]Malformed input at record {e.record_index}: {e.reason}[/red]")
        sys.exit(1)
    except PipelineStageError as e:
        console.print(f"[red]Stage '{e.stage}' failed (record {e.record_index}): {e.cause}[/red]")
        logger.exception("Cleaning failed")
        sys.exit(1)

    table = Table(title="Cleaning Summary")
    table.add_column("Stage")
    table.add_column("In")
    table.add_column("Out")
    table.add_column("Removed")
    table.add_column("Duration")

    for stage in result.stages:
        duration = f"{stage.duration_seconds:.2f}s" if stage.duration_seconds is not None else "-"
        table.add_row(stage.stage, str(stage.records_in), str(stage.records_out), str(stage.records_removed), duration)

    console.print(table)
    console.print(f"Rejected rows: {len(result.rejected)}")
    console.print(f"Patients: {result.patient_count}  Visits: {result.visit_count}")
    if result.anchor_divergence:
        console.print(
            f"[yellow]{result.anchor_divergence} identity triples differ from transitive window grouping[/yellow]"
        )

    write_records_csv(output, result.records)
    console.print(f"[green]Cleaned data written to {output}[/green]")

    if save_db:
        create_all_tables()
        with get_session() as session:
            replace_admissions(session, result.records)
        console.print(f"[green]Saved {len(result.records)} rows to {settings.database.url}[/green]")


@cli.command()
@click.option(
    "--input", "input_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Cleaned CSV (default: read the database table)",
)
@click.option("--output", type=click.Path(dir_okay=False, path_type=Path), help="Write the JSON summary here")
@click.option("--compress", is_flag=True, help="Also write a gzipped copy")
def report(input_path: Path | None, output: Path | None, compress: bool):
    """Run the analysis reports over cleaned data."""
    try:
        if input_path:
            records = read_admissions_csv(input_path, on_malformed="fail").records
        else:
            create_all_tables()
            with get_session() as session:
                records = load_admissions(session)
        admissions = AdmissionsReport(records)
    except AdmissionsError as e:
        console.print(f"[red]Cannot build report: {e}[/red]")
        sys.exit(1)
    except SQLAlchemyError as e:
        console.print(f"[red]Cannot read {settings.database.url}: {e}[/red]")
        logger.exception("Database read failed")
        sys.exit(1)

    console.print(f"\n[bold blue]Healthcare Admissions - Report ({len(admissions)} records)[/bold blue]\n")

    table = Table(title="Top Hospitals by Visits")
    table.add_column("Hospital")
    table.add_column("Visits")
    for row in admissions.hospitals_by_visits(limit=5):
        table.add_row(row["hospital"], str(row["number_of_visits"]))
    console.print(table)

    table = Table(title="30-day Readmissions")
    table.add_column("Name")
    table.add_column("Readmissions")
    for row in admissions.readmissions()[:10]:
        table.add_row(row["name"], str(row["readmission_count"]))
    console.print(table)

    console.print(f"Average bill: {admissions.average_bill()}")

    if output:
        save_report(output, admissions.summary(), compress=compress)
        console.print(f"[green]Report written to {output}[/green]")


@cli.command()
@click.argument("input_path", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--name", default=None, help="Only inspect duplicates for this patient name")
@click.option("--limit", type=int, default=10, help="Number of rows to show")
def audit(input_path: Path, name: str | None, limit: int):
    """Show duplicates and age conflicts without changing anything."""
    input_path = resolve_input(input_path)
    records = normalize_records(read_admissions_csv(input_path).records, settings.pipeline.billing_places)

    duplicates = find_exact_duplicates(records, name=name)
    console.print(f"\n[bold]Exact duplicates: {len(duplicates)}[/bold] in {duplicate_group_count(records)} groups")
    table = Table()
    table.add_column("Row")
    table.add_column("Name")
    table.add_column("Admitted")
    table.add_column("Hospital")
    for record in duplicates[:limit]:
        table.add_row(str(record.source_index), record.name, str(record.date_of_admission), record.hospital)
    console.print(table)

    variations = find_age_variations(records)
    console.print(f"\n[bold]Encounters with conflicting ages: {len(variations)}[/bold]")
    table = Table()
    table.add_column("Name")
    table.add_column("Admitted")
    table.add_column("Ages")
    for variation in variations[:limit]:
        table.add_row(
            variation.key["name"],
            str(variation.key["date_of_admission"]),
            ", ".join(str(a) for a in variation.ages),
        )
    console.print(table)


@cli.command()
def status():
    """Show database statistics."""
    console.print("\n[bold blue]Healthcare Admissions - Database Status[/bold blue]\n")

    create_all_tables()
    with get_session() as session:
        counts = table_counts(session)

    table = Table()
    table.add_column("Metric")
    table.add_column("Value")
    table.add_row("Database", settings.database.url)
    table.add_row("Rows", str(counts["rows"]))
    table.add_row("Patients", str(counts["patients"]))
    table.add_row("Visits", str(counts["visits"]))
    console.print(table)

    if not counts["rows"]:
        console.print("[yellow]No data loaded. Run 'python -m admissions.main clean <file> --save-db' first.[/yellow]")


if __name__ == "__main__":
    cli()
