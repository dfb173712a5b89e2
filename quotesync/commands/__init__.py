"""Slash command registry."""

from __future__ import annotations

from .add import COMMAND as ADD_COMMAND
from .config import COMMAND as CONFIG_COMMAND
from .help import COMMAND as HELP_COMMAND
from .quote import CATEGORIES_COMMAND, FILTER_COMMAND, QUOTE_COMMAND
from .status import COMMAND as STATUS_COMMAND
from .sync import COMMAND as SYNC_COMMAND
from .transfer import EXPORT_COMMAND, IMPORT_COMMAND

COMMANDS = [
    HELP_COMMAND,
    STATUS_COMMAND,
    QUOTE_COMMAND,
    CATEGORIES_COMMAND,
    FILTER_COMMAND,
    ADD_COMMAND,
    IMPORT_COMMAND,
    EXPORT_COMMAND,
    SYNC_COMMAND,
    CONFIG_COMMAND,
]

__all__ = ["COMMANDS"]
