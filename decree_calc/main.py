"""Command‑line interface for the decree calculator.

This module uses the ``click`` library to implement a multi‑command
interface. Users can compute a decree report from a case file, check a case
file for errors, and manage the local report store: list, show, delete,
import and export reports. Results can be printed to the terminal or exported
to JSON/CSV files.
"""

from __future__ import annotations

import csv
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import click

from .data_models import CalculatedReport
from .engine import calculate_decree
from .formatter import format_pkr, print_report, print_summary
from .report_store import ReportNotFoundError, ReportStore, create_store_from_env
from .serialization import report_to_dict
from .validators import CaseValidationError, validate_case


def load_json_file(path: Path) -> Any:
    try:
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as exc:
        raise click.BadParameter(f"{path} is not valid JSON: {exc}")


def load_case(path: Path):
    """Read and validate a case file, turning field errors into a usage error."""
    data = load_json_file(path)
    try:
        return validate_case(data)
    except CaseValidationError as exc:
        lines = [f"  {e.path or '<record>'}: {e.message}" for e in exc.errors]
        raise click.BadParameter("invalid case file\n" + "\n".join(lines))


def export_to_json(path: Path, report: CalculatedReport) -> None:
    """Export the computed report to a JSON file."""
    with path.open("w", encoding="utf-8") as f:
        json.dump(report_to_dict(report), f, indent=2, ensure_ascii=False)


def export_to_csv(path: Path, report: CalculatedReport) -> None:
    """Export every recipient's yearly breakdown to a CSV file."""
    header = [
        "Recipient",
        "Relationship",
        "Year",
        "Start_Date",
        "End_Date",
        "Duration",
        "Basic_Amount",
        "Increased_Amount",
        "Total",
    ]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for rec in report.recipient_calculations:
            for year in rec.yearly_breakdown:
                writer.writerow(
                    [
                        rec.name,
                        rec.relationship,
                        year.year,
                        year.start_date.isoformat(),
                        year.end_date.isoformat(),
                        year.duration_display,
                        float(year.basic_amount),
                        float(year.increased_amount),
                        float(year.total_period),
                    ]
                )


def write_json(path: Path, data: Any) -> None:
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


def _store(ctx: click.Context) -> ReportStore:
    if ctx.obj.get("store") is None:
        ctx.obj["store"] = create_store_from_env(ctx.obj.get("database"))
    return ctx.obj["store"]


@click.group()
@click.option(
    "--database",
    "database",
    envvar="DECREE_DATABASE_URL",
    help="SQLAlchemy URL of the report store (default: local SQLite file)",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.pass_context
def cli(ctx: click.Context, database: Optional[str], verbose: bool) -> None:
    """Family-court maintenance decree calculator."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["database"] = database


@cli.command()
@click.argument("case_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
@click.option("--summary-only", is_flag=True, help="Print only the summary block")
def calculate(case_file: Path, output: Optional[str], summary_only: bool) -> None:
    """Compute the decree report for a case file."""
    case = load_case(case_file)
    report = calculate_decree(case)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, report)
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, report)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"Report exported to {path}")
    elif summary_only:
        print_summary(report)
    else:
        print_report(report)


@cli.command()
@click.argument("case_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def validate(case_file: Path) -> None:
    """Check a case file and list any field errors."""
    data = load_json_file(case_file)
    try:
        validate_case(data)
    except CaseValidationError as exc:
        for error in exc.errors:
            click.echo(f"{error.path or '<record>'}: {error.message}")
        sys.exit(1)
    click.echo("OK")


@cli.command(name="list")
@click.pass_context
def list_reports(ctx: click.Context) -> None:
    """List saved reports, newest first."""
    reports = _store(ctx).list_reports()
    if not reports:
        click.echo("No saved reports.")
        return
    click.echo("\t".join(["ID", "CMS", "Parties", "Outstanding", "Saved"]))
    for report in reports:
        outstanding = report["result"]["summary"]["finalOutstandingAmount"]
        click.echo(
            "\t".join(
                [
                    report["id"],
                    report["cms_no"],
                    f"{report['party_a']} / {report['party_b']}",
                    format_pkr(outstanding),
                    report["created_at"][:10],
                ]
            )
        )


@cli.command()
@click.argument("report_id")
@click.pass_context
def show(ctx: click.Context, report_id: str) -> None:
    """Recompute and print a saved report."""
    try:
        stored = _store(ctx).get_report(report_id)
    except ReportNotFoundError:
        raise click.ClickException(f"No report with id {report_id}")
    print_report(calculate_decree(validate_case(stored["case"])))


@cli.command()
@click.argument("case_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def save(ctx: click.Context, case_file: Path) -> None:
    """Validate a case file and save it as a new report."""
    data = load_json_file(case_file)
    try:
        report_id = _store(ctx).add_report(data)
    except CaseValidationError as exc:
        raise click.BadParameter(str(exc))
    click.echo(f"Saved report {report_id}")


@cli.command()
@click.argument("report_id")
@click.pass_context
def delete(ctx: click.Context, report_id: str) -> None:
    """Delete a saved report."""
    try:
        _store(ctx).delete_report(report_id)
    except ReportNotFoundError:
        raise click.ClickException(f"No report with id {report_id}")
    click.echo(f"Deleted report {report_id}")


@cli.command(name="import")
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def import_files(ctx: click.Context, files: Tuple[Path, ...]) -> None:
    """Import exported report files (one report or a list per file).

    Invalid records and unreadable files are skipped; the rest are imported.
    """
    records: List[Dict[str, Any]] = []
    unreadable = 0
    for path in files:
        try:
            data = load_json_file(path)
        except click.BadParameter as exc:
            click.echo(f"Skipping {path}: {exc.message}", err=True)
            unreadable += 1
            continue
        records.extend(data if isinstance(data, list) else [data])
    result = _store(ctx).import_reports(records)
    click.echo(
        f"Imported {result.imported}, updated {result.updated}, "
        f"skipped {len(result.skipped) + unreadable}"
    )
    for label in result.skipped:
        click.echo(f"  skipped report {label}", err=True)


@cli.command()
@click.argument("report_id", required=False)
@click.option("--output", "output", type=str, required=True, help="Output file path (.json)")
@click.pass_context
def export(ctx: click.Context, report_id: Optional[str], output: str) -> None:
    """Export one saved report, or all of them, to a JSON file."""
    path = Path(output)
    if path.suffix.lower() != ".json":
        raise click.BadParameter("Export must use .json extension")
    store = _store(ctx)
    if report_id:
        try:
            data: Any = store.export_report(report_id)
        except ReportNotFoundError:
            raise click.ClickException(f"No report with id {report_id}")
    else:
        data = store.export_reports()
    write_json(path, data)
    click.echo(f"Exported to {path}")


if __name__ == "__main__":
    cli()
