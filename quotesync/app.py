# quotesync/app.py
"""
Interactive terminal front end for quotesync.

Shows a quote on start, accepts slash commands, and runs the periodic
fetch-and-sync timer in the background.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
try:
    import readline
except ImportError:  # pragma: no cover
    readline = None
from shutil import get_terminal_size
from typing import List, Optional

from rich.console import Console
from rich.text import Text

from .commands import COMMANDS
from .commands.quote import format_quote
from .commands.sync import format_cycle_report
from .configuration import (
    ConfigurationBundle,
    Diagnostic,
    load_runtime_configuration,
    resolve_data_dir,
)
from .logging_utils import setup_logging
from .session import QuoteSession
from .slash_commands import CommandRouter
from .sync.protocol import CycleReport, CycleStatus
from .sync.scheduler import SyncScheduler

logger = logging.getLogger("quotesync")
TRUE_STRINGS = {"1", "true", "yes", "on"}
FALSE_STRINGS = {"0", "false", "no", "off"}


def print_banner(console: Console) -> None:
    terminal_width = get_terminal_size(fallback=(80, 24)).columns
    if terminal_width >= 60:
        inner_width = 56
        lines = [
            "╔" + "═" * inner_width + "╗",
            f"║{'QUOTESYNC'.center(inner_width)}║",
            f"║{'collect ◇ share ◇ reconcile'.center(inner_width)}║",
            "╚" + "═" * inner_width + "╝",
        ]
        console.print("\n".join(lines), style="cyan", highlight=False)
    else:
        console.print("quotesync", style="bold cyan")
    console.print()


def _parse_env_flag(value: str, *, default: bool = True) -> bool:
    normalized = value.strip().lower()
    if normalized in TRUE_STRINGS:
        return True
    if normalized in FALSE_STRINGS:
        return False
    return default


def _resolve_ui_verbose(config_bundle: ConfigurationBundle) -> bool:
    """Resolve whether the CLI should show the banner and sync notices."""

    env_value = os.environ.get("QUOTESYNC_UI_VERBOSE")
    if env_value is not None:
        return _parse_env_flag(env_value)

    verbose_setting = config_bundle.section("ui").get("verbose")
    if verbose_setting is None:
        return True
    return bool(verbose_setting)


def _resolve_log_level(config_bundle: ConfigurationBundle) -> str:
    env_level = os.environ.get("QUOTESYNC_LOG_LEVEL")
    configured = config_bundle.section("logging").get("level")
    return (env_level or configured or "WARNING").upper()


def build_router(
    config: ConfigurationBundle,
    session: Optional[QuoteSession],
    scheduler: Optional[SyncScheduler] = None,
) -> CommandRouter:
    router = CommandRouter(config, session=session, metadata={"scheduler": scheduler})
    for command in COMMANDS:
        router.register(command)
    return router


def build_scheduler(
    config: ConfigurationBundle,
    session: QuoteSession,
    console: Console,
    verbose: bool = True,
) -> Optional[SyncScheduler]:
    """Create the periodic sync timer, or None when sync is disabled."""

    if not session.settings.sync_enabled:
        logger.info("Periodic sync disabled via configuration")
        return None

    def _on_report(report: CycleReport) -> None:
        if report.status is CycleStatus.SKIPPED and not verbose:
            return
        if report.status is CycleStatus.MERGED and not report.added and not verbose:
            return
        console.print(Text(format_cycle_report(report), style=_report_style(report)))

    return SyncScheduler(
        tick=lambda: session.run_cycle(trigger="timer"),
        interval_seconds=session.settings.interval_seconds,
        on_report=_on_report,
    )


def _report_style(report: CycleReport) -> str:
    if report.status is CycleStatus.FAILED:
        return "red"
    if report.status is CycleStatus.CONFLICTS_PENDING:
        return "yellow"
    if report.status is CycleStatus.SKIPPED:
        return "dim"
    return "green"


def emit_configuration_report(console: Console, config: ConfigurationBundle) -> None:
    """Print diagnostics so operators can correct issues quickly."""

    if not config.diagnostics:
        console.print(f"[config] Loaded {len(config.files_loaded)} file(s).", highlight=False, markup=False)
        return

    console.print("[config] Diagnostics:", markup=False)
    for diag in config.diagnostics:
        prefix = diag.source or config.data_dir
        console.print(f"  - ({diag.level.upper()}) {diag.message} [{prefix}]", markup=False)


def configure_autocomplete(router: CommandRouter) -> None:
    """Enable readline tab completion for slash commands."""

    if readline is None:
        return

    commands = list(router.command_names)

    def completer(text: str, state: int):
        buffer = readline.get_line_buffer()
        if not buffer.startswith("/"):
            return None
        fragment = text[1:] if text.startswith("/") else text
        matches = [f"/{cmd}" for cmd in commands if cmd.startswith(fragment)]
        if state < len(matches):
            return matches[state]
        return None

    readline.set_completer(completer)
    readline.parse_and_bind("tab: complete")
    readline.set_completer_delims(" \t")


def execute_cli_command(command_line: str, router: CommandRouter, history: List[str]) -> str:
    """Run one slash command (without the leading slash) and print its output."""

    stripped = command_line.strip()
    if not stripped:
        return ""

    result = router.dispatch(stripped)
    print(result)
    history.append(stripped)
    logger.info("Executed CLI command: %s", stripped)
    return result


def prepare_data_dir(data_dir: Path) -> Optional[str]:
    """Create the data directory; return an error message on failure."""
    try:
        data_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        return f"Could not create data directory '{data_dir}': {exc}"
    return None


def main() -> None:
    """Entry point for ``python -m quotesync`` and the ``quotesync`` script."""

    console = Console()
    data_dir = resolve_data_dir()
    mkdir_error = prepare_data_dir(data_dir)
    config_bundle = load_runtime_configuration(data_dir)
    if mkdir_error:
        config_bundle.diagnostics.append(Diagnostic(level="error", message=mkdir_error))

    ui_verbose = _resolve_ui_verbose(config_bundle)
    if ui_verbose:
        print_banner(console)

    structured = bool(config_bundle.section("logging").get("structured", True))
    log_path = setup_logging(config_bundle.data_dir, _resolve_log_level(config_bundle), structured=structured)
    config_bundle.log_path = log_path
    logger.info("Logging initialized at %s", log_path)
    if ui_verbose or config_bundle.diagnostics:
        emit_configuration_report(console, config_bundle)

    session = QuoteSession.from_config(config_bundle)
    scheduler = build_scheduler(config_bundle, session, console, verbose=ui_verbose)
    router = build_router(config_bundle, session, scheduler)
    configure_autocomplete(router)
    history: List[str] = []

    console.print(format_quote(session.random_quote()), highlight=False, markup=False)
    console.print(Text("Type /help for commands, Enter for a new quote, 'quit' to exit.", style="dim"))

    if scheduler is not None:
        scheduler.start()

    try:
        while True:
            try:
                raw_line = input("> ")
            except (EOFError, KeyboardInterrupt):
                print("\n[Exiting quotesync]")
                break

            line = raw_line.strip()
            if line.lower() in {"quit", "exit", "/quit", "/exit"}:
                print("[Goodbye]")
                break

            if not line:
                print(format_quote(session.random_quote()))
                continue

            if line.startswith("/"):
                execute_cli_command(line[1:], router, history)
                continue

            print("[quotesync] Commands start with '/'. Try /help.")
    finally:
        if scheduler is not None:
            scheduler.stop()
        session.close()
