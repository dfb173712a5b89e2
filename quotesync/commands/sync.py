"""Slash command for quote synchronization."""

from __future__ import annotations

from typing import List

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..slash_commands import (
    SlashCommand,
    SlashCommandContext,
    render_rich,
)
from ..sync.protocol import CycleReport, CycleStatus, ResolutionSource

MAX_CONFLICT_ROWS = 20


def _handler(context: SlashCommandContext, args: List[str]) -> str:
    """Manage quote synchronization."""

    if not args:
        return _show_status(context)

    subcommand = args[0].lower()

    if subcommand == "status":
        return _show_status(context)
    elif subcommand == "now":
        return format_cycle_report(context.session.run_cycle(trigger="manual"))
    elif subcommand == "conflicts":
        return _show_conflicts(context)
    elif subcommand == "resolve":
        return _resolve(context, args[1:])
    elif subcommand == "start":
        return _toggle_scheduler(context, start=True)
    elif subcommand == "stop":
        return _toggle_scheduler(context, start=False)
    elif subcommand == "help":
        return _show_help()
    else:
        return f"[sync] Unknown subcommand '{subcommand}'. Use /sync help for usage."


def format_cycle_report(report: CycleReport) -> str:
    lines = [f"[sync] {report.status.value}: {report.message}"]
    if report.auto_resolved is not None:
        lines.append(f"  Auto-resolved {report.conflicts} conflict(s) using {report.auto_resolved.value} data")
    elif report.status is CycleStatus.CONFLICTS_PENDING:
        lines.append("  Review with /sync conflicts, then /sync resolve server|local")
    return "\n".join(lines)


def _show_status(context: SlashCommandContext) -> str:
    status = context.session.status()
    scheduler = context.metadata.get("scheduler")
    sync_config = context.config.section("sync")

    def _render(console: Console) -> None:
        table = Table(title="Quote Sync Status", show_header=False)
        table.add_column("Property", style="bold")
        table.add_column("Value")

        table.add_row("Enabled", str(sync_config.get("enabled", True)))
        table.add_row("Timer", "running" if scheduler and scheduler.running else "stopped")
        table.add_row("Interval", f"{sync_config.get('interval_seconds', 30)}s")
        table.add_row("Remote", status["remote_url"])
        table.add_row("Conflict Strategy", status["conflict_strategy"])
        table.add_row("While Pending", status["on_pending"])
        table.add_row("Phase", status["phase"])
        table.add_row("Pending Conflicts", str(status["pending_conflicts"]))

        last = status["last_report"]
        if last:
            table.add_row("Last Cycle", f"{last['status']} at {last['finished_at']}")
            table.add_row("Last Message", last["message"])
        else:
            table.add_row("Last Cycle", "(none yet)")

        console.print(table)

    return render_rich(_render)


def _show_conflicts(context: SlashCommandContext) -> str:
    conflicts = list(context.session.pending_conflicts)
    if not conflicts:
        return "[sync] No pending conflicts."

    def _render(console: Console) -> None:
        console.print(f"[yellow]Conflicts detected: {len(conflicts)} quotes differ.[/yellow]\n")
        table = Table(show_header=True, header_style="bold yellow")
        table.add_column("ID", style="dim", no_wrap=True)
        table.add_column("Local", overflow="fold")
        table.add_column("Server", overflow="fold")
        for record in conflicts[:MAX_CONFLICT_ROWS]:
            table.add_row(
                str(record.id),
                f"{escape(record.local.text)}\n[dim]({escape(record.local.category)})[/dim]",
                f"{escape(record.remote.text)}\n[dim]({escape(record.remote.category)})[/dim]",
            )
        console.print(table)
        if len(conflicts) > MAX_CONFLICT_ROWS:
            console.print(f"... and {len(conflicts) - MAX_CONFLICT_ROWS} more")
        console.print("\nResolve with /sync resolve server or /sync resolve local")

    return render_rich(_render)


def _resolve(context: SlashCommandContext, args: List[str]) -> str:
    if not args:
        return "[sync] Usage: /sync resolve server|local"
    try:
        source = ResolutionSource(args[0].lower())
    except ValueError:
        return f"[sync] Unknown resolution source '{args[0]}'. Use 'server' or 'local'."

    outcome = context.session.resolve(source)
    if not outcome.resolved:
        return f"[sync] {outcome.message}"
    return (
        f"[sync] {outcome.message} "
        f"({outcome.updated} updated, {outcome.added} added)"
    )


def _toggle_scheduler(context: SlashCommandContext, start: bool) -> str:
    scheduler = context.metadata.get("scheduler")
    if scheduler is None:
        return "[sync] Periodic sync is not available in this session."
    if start:
        scheduler.start()
        return f"[sync] Periodic sync running every {scheduler.interval_seconds}s."
    scheduler.stop()
    return "[sync] Periodic sync stopped."


def _show_help() -> str:
    """Show sync command help."""
    return """[sync] Usage:
  /sync                    Show sync status
  /sync status             Show sync status
  /sync now                Fetch from the server and sync immediately
  /sync conflicts          List pending conflicts side by side
  /sync resolve server     Settle conflicts with server values
  /sync resolve local      Settle conflicts keeping local values
  /sync start | stop       Start or stop the periodic timer
  /sync help               Show this help

Configuration:
  sync:
    enabled: true
    interval_seconds: 30
    conflict_strategy: manual  # manual, server, local
    on_pending: block          # block, replace
    publish: true
  remote:
    url: https://jsonplaceholder.typicode.com/posts
    limit: 5"""


COMMAND = SlashCommand(
    name="sync",
    description="Sync quotes with the server. Usage: /sync [status|now|conflicts|resolve|start|stop]",
    handler=_handler,
)
