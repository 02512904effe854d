"""Command-line entry point for mirata-forms.

(c) Mike Casale 2025.
Licensed under the MIT License.
See LICENSE file for details.
"""

from __future__ import annotations as _annotations

# =============================================================================
# Section 1: Imports
# =============================================================================
# Standard library (alphabetical)
import argparse
import asyncio
import sys

# Third-party (alphabetical)
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

# Local imports (core first, then alphabetical)
from . import __version__
from .adapters.odata import ODataAdapter, ODataSettings
from .adapters.offline import OfflineODataStore
from .core.deps import SyncDeps
from .core.exceptions import MirataFormsError, classify_error
from .core.models import SessionInfo, SyncReport
from .core.settings import SessionSettings
from .infra import configure_instrumentation, load_settings
from .services import ErrorReporter, SyncSequencer

# =============================================================================
# Section 2: Module Exports
# =============================================================================
__all__ = ("main",)

console = Console()


# =============================================================================
# Section 12: Functions
# =============================================================================
async def run_sync(routine: bool) -> SyncReport:
    """Sync the forms entity sets into a fresh offline store."""
    session_settings = SessionSettings()
    session = SessionInfo(
        page_path=session_settings.page_path,
        user_id=session_settings.user_id,
        platform=session_settings.platform,
    )
    async with ODataAdapter(ODataSettings()) as remote:
        store = OfflineODataStore(remote=remote)
        async with ErrorReporter(store, session) as reporter:
            sequencer = SyncSequencer(SyncDeps(service=store, store=store, reporter=reporter))
            report = await sequencer.sync_forms()
            if routine:
                report = await sequencer.sync_forms()
            # Error entries queued during the sync go out with the next upload
            if store.pending_changes:
                await store.upload()
            return report


def _print_report(report: SyncReport) -> None:
    table = Table(title=f"Mirata Forms {report.mode} sync")
    table.add_column("Entity set", style="cyan", no_wrap=True)
    table.add_column("Rows", justify="right", style="green")
    for name, count in sorted(report.downloaded.items()):
        table.add_row(name, str(count))
    console.print(table)
    console.print(f"[dim]Uploaded: {report.uploaded}; cleared images: {report.cleared_images}[/dim]")


def main(argv: list[str] | None = None) -> int:
    """Parse arguments and run the requested command."""
    parser = argparse.ArgumentParser(prog="mirata-forms", description="Mirata Forms submission and sync client")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("version", help="Print the package version")
    sync_parser = subparsers.add_parser("sync", help="Download the forms entity sets")
    sync_parser.add_argument(
        "--routine",
        action="store_true",
        help="Follow the initial download with a routine upload/download cycle",
    )
    args = parser.parse_args(argv)

    if args.command == "version":
        console.print(f"mirata-forms version {__version__}")
        return 0

    settings = load_settings()
    configure_instrumentation(
        service_name=settings.service_name,
        environment=settings.environment,
        send_to_logfire=settings.send_to_logfire,
    )
    console.print(Panel.fit("[bold cyan]Mirata Forms sync[/bold cyan]", border_style="cyan"))
    try:
        report = asyncio.run(run_sync(args.routine))
    except MirataFormsError as exc:
        category, strategy = classify_error(exc)
        console.print(f"[red]Error ({category}, {strategy}):[/red] {exc}")
        return 1
    _print_report(report)
    return 0


if __name__ == "__main__":
    sys.exit(main())
