#!/usr/bin/env python3
"""
Command-line interface for operating the bulk import pipeline.

Lets an operator upload and queue a CSV, run a queued job in the foreground,
inspect a job record, and bootstrap the tables.
"""

import argparse
import sys
import time
import uuid
from pathlib import Path
from typing import Any, Dict

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from bulk_import.core.config import settings
from bulk_import.core.logging_config import configure_logging
from bulk_import.domain.imports.types import ImportType

console = Console()


def _status_style(status: str) -> str:
    return {
        "completed": "green",
        "failed": "red",
        "processing": "yellow",
    }.get(status, "white")


def print_job(job: Dict[str, Any]) -> None:
    """Render an import job record as a table."""
    table = Table(title=f"Import job {job['id']}", show_header=False)
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Value", style="white")

    status = job.get("status") or ""
    table.add_row("File", f"{job['file_name']} ({job['file_path']})")
    table.add_row("Type", job["import_type"])
    table.add_row("Status", f"[{_status_style(status)}]{status}[/]")
    table.add_row("Stage", job.get("current_stage") or "-")
    table.add_row("Message", str((job.get("stage_details") or {}).get("message", "")))
    table.add_row("Rows", f"{job.get('processed_rows') or 0} / {job.get('total_rows') or 0}")
    table.add_row("Written", str(job.get("success_count") or 0))
    table.add_row("Errors", str(job.get("error_count") or 0))
    console.print(table)

    details = job.get("error_details") or []
    if details:
        errors = Table(title="Diagnostics")
        errors.add_column("Row", style="dim", justify="right")
        errors.add_column("Error", style="red")
        errors.add_column("Data", style="white")
        for detail in details[:20]:
            errors.add_row(str(detail.get("row", "")), str(detail.get("error", "")), str(detail.get("data", "")))
        console.print(errors)
        if len(details) > 20:
            console.print(f"[dim]... {len(details) - 20} more diagnostics on the job record[/dim]")


def cmd_init_db(args) -> int:
    from bulk_import.db.models import create_tables

    create_tables()
    console.print("[green]✓ Import tables ready[/green]")
    return 0


def cmd_submit(args) -> int:
    from bulk_import.domain.imports.jobs import create_import_job
    from bulk_import.integrations.storage import upload_file

    path = Path(args.file)
    if not path.is_file():
        console.print(f"[red]❌ File not found: {path}[/red]")
        return 1

    # Unique prefix keeps re-uploads of the same name from replacing a queued file
    object_name = f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}-{path.name}"
    uploaded = upload_file(path.read_bytes(), object_name, folder=args.org_id)
    job = create_import_job(
        org_id=args.org_id,
        user_id=args.user_id,
        file_name=path.name,
        file_path=uploaded["file_path"],
        import_type=args.import_type,
        target_id=args.target_id,
    )
    console.print(f"[green]✓ Queued import job[/green] [bold]{job['id']}[/bold] ({uploaded['size']} bytes)")
    return 0


def cmd_process(args) -> int:
    from bulk_import.domain.imports.jobs import get_import_job
    from bulk_import.domain.imports.processor import process_import_job

    try:
        with console.status(f"[bold green]Processing import job {args.job_id}...", spinner="dots"):
            result = process_import_job(args.job_id)
    except Exception as e:
        console.print(Panel(
            f"[red]❌ Import failed:[/red]\n{e}",
            title="Error",
            border_style="red"
        ))
        job = get_import_job(args.job_id)
        if job:
            print_job(job)
        return 1

    console.print(Panel(
        f"[green]✅ {result['processed']} records written, {result['errors']} rows rejected[/green]",
        title="Import completed",
        border_style="green"
    ))
    return 0


def cmd_status(args) -> int:
    from bulk_import.domain.imports.jobs import get_import_job

    job = get_import_job(args.job_id)
    if not job:
        console.print(f"[red]❌ Import job not found: {args.job_id}[/red]")
        return 1
    print_job(job)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bulk-import",
        description="Bulk CSV import pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s init-db
  %(prog)s submit contacts.csv --org-id ORG --user-id USER --type contacts
  %(prog)s process 6f1c...           # Run a queued job in the foreground
  %(prog)s status 6f1c...            # Show job progress and diagnostics
        """
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_db = subparsers.add_parser("init-db", help="Create the import tables")
    init_db.set_defaults(func=cmd_init_db)

    submit = subparsers.add_parser("submit", help="Upload a CSV and create a pending import job")
    submit.add_argument("file", help="Path to the CSV file")
    submit.add_argument("--org-id", required=True)
    submit.add_argument("--user-id", required=True)
    submit.add_argument(
        "--type",
        dest="import_type",
        choices=[import_type.value for import_type in ImportType],
        required=True,
    )
    submit.add_argument("--target-id", help="Campaign id for recipient imports")
    submit.set_defaults(func=cmd_submit)

    process = subparsers.add_parser("process", help="Run an import job to completion")
    process.add_argument("job_id")
    process.set_defaults(func=cmd_process)

    status = subparsers.add_parser("status", help="Show an import job")
    status.add_argument("job_id")
    status.set_defaults(func=cmd_status)

    return parser


def main(argv=None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    configure_logging(settings.log_level)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
