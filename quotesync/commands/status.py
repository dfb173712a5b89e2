"""Slash command for runtime status."""

from __future__ import annotations

from typing import Dict, Iterable, List, Sequence, Tuple

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..slash_commands import SlashCommand, SlashCommandContext, render_rich

SECTION_ALIASES: Dict[str, Sequence[str]] = {
    "info": ("info", "summary"),
    "sync": ("sync", "conflicts"),
    "diagnostics": ("diagnostics", "diag", "diags"),
}
DEFAULT_MAX_ROWS = 5


def _resolve_sections(args: Iterable[str]) -> Tuple[List[str], bool]:
    """Return sections to render and whether all rows should be shown."""

    normalized = [arg.strip().lower() for arg in args]
    show_all = any(arg in {"--all", "-a", "all"} for arg in normalized)

    requested: List[str] = [
        section
        for section, aliases in SECTION_ALIASES.items()
        if any(arg in aliases for arg in normalized)
    ]
    return requested or list(SECTION_ALIASES.keys()), show_all


def _handler(context: SlashCommandContext, args: List[str]) -> str:
    config = context.config
    session_status = context.session.status()
    sections, show_all = _resolve_sections(args)

    def _render_summary(console: Console) -> None:
        info = Table.grid(padding=(0, 1))
        info.add_column("Key", style="bold", no_wrap=True)
        info.add_column("Value", overflow="fold")
        info.add_row("Data dir", str(config.data_dir))
        info.add_row("Config", config.status)
        info.add_row("Config files", str(len(config.files_loaded)))
        info.add_row("Log path", str(config.log_path or "(not initialized)"))
        info.add_row("Quotes", str(session_status["quotes"]))
        info.add_row("Categories", str(len(session_status["categories"])))
        info.add_row("Filter", escape(session_status["selected_category"]))
        storage_error = session_status["storage_error"]
        info.add_row(
            "Storage",
            f"[red]degraded: {escape(storage_error)}[/red]" if storage_error else "[green]ok[/green]",
        )

        console.print(
            Panel(
                info,
                title="Runtime Status",
                border_style="green",
                padding=(0, 1),
            )
        )

    def _render_sync(console: Console) -> None:
        table = Table.grid(padding=(0, 1))
        table.add_column("Key", style="bold", no_wrap=True)
        table.add_column("Value", overflow="fold")
        table.add_row("Phase", session_status["phase"])
        table.add_row("Pending conflicts", str(session_status["pending_conflicts"]))
        last = session_status["last_report"]
        table.add_row("Last cycle", f"{last['status']}: {escape(last['message'])}" if last else "(none yet)")
        resolution = session_status["last_resolution"]
        if resolution:
            table.add_row("Last resolution", escape(resolution["message"]))
        console.print(
            Panel(
                table,
                title="Sync",
                border_style="cyan",
                padding=(0, 1),
            )
        )

    def _render_diagnostics(console: Console) -> None:
        if not config.diagnostics:
            console.print(Panel("[green]No diagnostics reported.", title="Diagnostics", border_style="red"))
            return

        diag_table = Table(
            show_header=True,
            header_style="bold red",
            box=box.SIMPLE,
            pad_edge=False,
        )
        diag_table.add_column("Lvl", style="red", no_wrap=True)
        diag_table.add_column("Message", overflow="fold", ratio=2)
        diag_table.add_column("Source", overflow="fold", ratio=2)

        max_rows = len(config.diagnostics) if show_all else DEFAULT_MAX_ROWS
        for diag in config.diagnostics[:max_rows]:
            diag_table.add_row(
                diag.level.upper(),
                escape(diag.message),
                str(diag.source or config.data_dir),
            )

        console.print(
            Panel(
                diag_table,
                title="Diagnostics",
                border_style="red",
                padding=(0, 1),
            )
        )
        if len(config.diagnostics) > max_rows:
            console.print(
                f"[dim]Showing {max_rows}/{len(config.diagnostics)}. "
                "Use '/status diagnostics --all' for the full list.[/dim]"
            )

    renderers = {
        "info": _render_summary,
        "sync": _render_sync,
        "diagnostics": _render_diagnostics,
    }

    def _render(console: Console) -> None:
        for section in sections:
            renderers[section](console)

    return render_rich(_render)


COMMAND = SlashCommand(
    name="status",
    description="Show storage, sync and configuration status.",
    handler=_handler,
)
