"""Slash command routing for the quotesync REPL."""

from __future__ import annotations

from dataclasses import dataclass, field
from io import StringIO
import shutil
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Sequence, Tuple

from rich.console import Console
from rich.table import Table

from .configuration import ConfigurationBundle

if TYPE_CHECKING:  # pragma: no cover
    from .session import QuoteSession

SlashCommandHandler = Callable[["SlashCommandContext", List[str]], str]
MIN_RENDER_SIZE = (20, 10)


@dataclass
class SlashCommandContext:
    """What a handler gets to work with: config, router, session."""

    config: ConfigurationBundle
    router: "CommandRouter"
    session: Optional["QuoteSession"] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SlashCommand:
    name: str
    description: str
    handler: SlashCommandHandler
    # Most commands operate on the quote collection; /help and /config do not.
    requires_session: bool = True
    requires_ready: bool = False


class CommandRouter:
    """Maps ``/name`` to a registered command and runs it."""

    def __init__(
        self,
        config: ConfigurationBundle,
        session: Optional["QuoteSession"] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.config = config
        self.session = session
        self.metadata = metadata or {}
        self._registry: Dict[str, SlashCommand] = {}

    def register(self, command: SlashCommand) -> None:
        self._registry[command.name.lower()] = command

    def get(self, name: str) -> Optional[SlashCommand]:
        return self._registry.get(name.lower())

    @property
    def command_names(self) -> Sequence[str]:
        return sorted(self._registry)

    def commands(self) -> Sequence[SlashCommand]:
        return [self._registry[name] for name in self.command_names]

    def _refusal(self, name: str, command: Optional[SlashCommand]) -> Optional[str]:
        if command is None:
            return f"[router] Unknown command '/{name}'. Use /help for a list of commands."
        if command.requires_session and self.session is None:
            return f"[router] '/{name}' needs a loaded quote session."
        if command.requires_ready and self.config.status != "ready":
            return f"[router] '/{name}' requires a ready configuration (status: {self.config.status})."
        return None

    def handle(self, name: str, args: List[str]) -> str:
        command = self.get(name)
        refusal = self._refusal(name, command)
        if refusal is not None:
            return refusal
        context = SlashCommandContext(self.config, self, self.session, self.metadata)
        return command.handler(context, args)

    def dispatch(self, command_line: str) -> str:
        """Run a raw ``name arg...`` line; arguments split on whitespace."""
        name, *args = command_line.split() or [""]
        return self.handle(name, args) if name else ""


def render_help_table(commands: Sequence[SlashCommand]) -> str:
    def _render(console: Console) -> None:
        table = Table(title="Slash Commands", header_style="bold cyan")
        table.add_column("Command", style="green", no_wrap=True)
        table.add_column("Description")
        for command in commands:
            table.add_row(f"/{command.name}", command.description)
        console.print(table)

    return render_rich(_render)


def _render_size() -> Tuple[int, int]:
    columns, lines = shutil.get_terminal_size(fallback=(80, 24))
    return max(MIN_RENDER_SIZE[0], columns), max(MIN_RENDER_SIZE[1], lines)


def render_rich(render_fn: Callable[[Console], None]) -> str:
    """Capture Rich output as an ANSI string instead of printing it."""

    width, height = _render_size()
    console = Console(
        file=StringIO(),
        record=True,
        force_terminal=True,
        width=width,
        height=height,
    )
    render_fn(console)
    return console.export_text(styles=True)


__all__ = [
    "CommandRouter",
    "SlashCommand",
    "SlashCommandContext",
    "render_help_table",
    "render_rich",
]
