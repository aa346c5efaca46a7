"""Rich renderings of sync reports for the command line."""

from __future__ import annotations

from io import StringIO
import shutil
from typing import Any, Callable, Dict, Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .sync.conflict import ConflictResolution
from .sync.protocol import ComparisonRecord, SyncAction, SyncReport

ACTION_STYLES = {
    SyncAction.UPLOAD: "green",
    SyncAction.UPDATE: "yellow",
    SyncAction.SKIP: "dim",
    SyncAction.CONFLICT: "red",
}


def render_rich(render_fn: Callable[[Console], None], styles: bool = True) -> str:
    """Render a Rich layout to a string without printing live."""

    terminal_size = shutil.get_terminal_size(fallback=(80, 24))
    # Clamp to a reasonable minimum so Rich does not choke on ultra-small widths.
    width = max(20, terminal_size.columns)
    height = max(10, terminal_size.lines)

    console = Console(
        record=True,
        force_terminal=True,
        color_system="auto",
        width=width,
        height=height,
        file=StringIO(),
    )
    render_fn(console)
    return console.export_text(clear=False, styles=styles)


def render_report(report: SyncReport, title: str = "Sync Report", styles: bool = True) -> str:
    """Render per-category snippet names plus the summary line."""

    def _render(console: Console) -> None:
        table = Table(title=title, show_header=True, header_style="bold cyan")
        table.add_column("Outcome", style="bold", no_wrap=True)
        table.add_column("Count", justify="right")
        table.add_column("Snippets")

        rows = [
            ("Uploaded", report.uploaded, "green"),
            ("Updated", report.updated, "yellow"),
            ("Downloaded", report.downloaded, "blue"),
            ("Unchanged", report.skipped, "dim"),
            ("Conflicts", report.conflicts, "red"),
        ]
        for label, names, style in rows:
            if names:
                table.add_row(f"[{style}]{label}[/{style}]", str(len(names)), escape(", ".join(names)))

        if table.row_count:
            console.print(table)
        status = "[green]OK[/green]" if report.success else "[red]NEEDS ATTENTION[/red]"
        console.print(f"{status} {escape(report.message)}")
        if report.conflicts:
            console.print("Re-run with --force and the conflicting names to overwrite the remote copies.")

    return render_rich(_render, styles=styles)


def render_comparisons(records: Sequence[ComparisonRecord], styles: bool = True) -> str:
    """Render a comparison report as a table of fingerprints and actions."""

    def _render(console: Console) -> None:
        if not records:
            console.print("No snippets to compare.")
            return

        table = Table(title="Snippet Comparison", show_header=True, header_style="bold cyan")
        table.add_column("Snippet", style="cyan")
        table.add_column("Local", style="dim")
        table.add_column("Remote", style="dim")
        table.add_column("Action")

        for record in records:
            style = ACTION_STYLES.get(record.action, "white")
            action = f"[{style}]{record.action.value}[/{style}]"
            if record.error:
                action += f" ({escape(record.error)})"
            table.add_row(escape(record.name), record.local_fingerprint, record.remote_fingerprint or "-", action)

        console.print(table)
        pending = sum(1 for record in records if record.needs_sync)
        console.print(f"{pending} of {len(records)} snippets need syncing")

    return render_rich(_render, styles=styles)


def render_status(status: Dict[str, Any], repo: str = "", styles: bool = True) -> str:
    """Render engine status as a two-column table."""

    def _render(console: Console) -> None:
        table = Table(title="Snippet Sync Status", show_header=False)
        table.add_column("Property", style="bold")
        table.add_column("Value")

        table.add_row("Repository", repo or "(not configured)")
        table.add_row("Local Snippets", str(status.get("local_count", 0)))
        table.add_row("Remote Snippets", str(status.get("remote_count", 0)))
        shared = status.get("shared", [])
        table.add_row("On Both Sides", escape(", ".join(shared[:10])) + ("..." if len(shared) > 10 else ""))
        table.add_row("Hash Variant", str(status.get("hash_variant", "fast")))
        cache = status.get("cache", {})
        table.add_row("Cached Fingerprints", str(cache.get("items", 0)))

        console.print(table)

    return render_rich(_render, styles=styles)


def render_resolution(resolution: ConflictResolution, styles: bool = True) -> str:
    def _render(console: Console) -> None:
        marker = "[green]resolved[/green]" if resolution.applied else "[yellow]unchanged[/yellow]"
        console.print(f"{escape(resolution.name)}: {marker} ({resolution.strategy.value}) {escape(resolution.message)}")

    return render_rich(_render, styles=styles)


__all__ = [
    "render_rich",
    "render_report",
    "render_comparisons",
    "render_status",
    "render_resolution",
]
