"""Slash commands for importing and exporting quotes as JSON files."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from ..errors import DecodeError, StorageError, ValidationError
from ..quotes.transfer import DEFAULT_EXPORT_NAME
from ..slash_commands import SlashCommand, SlashCommandContext


def _resolve_path(context: SlashCommandContext, raw: str) -> Path:
    path = Path(raw).expanduser()
    if path.is_absolute():
        return path
    if path.exists():
        return path.resolve()
    return context.config.data_dir / path


def _import_handler(context: SlashCommandContext, args: List[str]) -> str:
    if not args:
        return "[import] Usage: /import PATH_TO_JSON"

    path = _resolve_path(context, " ".join(args))
    try:
        imported = context.session.import_file(path)
    except DecodeError as exc:
        return f"[import] {exc}"
    except ValidationError as exc:
        return f"[import] Rejected: {exc}"
    except StorageError as exc:
        return f"[import] {exc}"

    if not imported:
        return f"[import] No quotes found in {path}."
    return f"[import] Quotes imported successfully ({len(imported)} from {path})."


def _export_handler(context: SlashCommandContext, args: List[str]) -> str:
    output_path: Optional[Path] = None

    i = 0
    while i < len(args):
        arg = args[i]
        if arg in ("-o", "--output") and i + 1 < len(args):
            output_path = Path(args[i + 1])
            i += 2
        elif not arg.startswith("-"):
            output_path = Path(arg)
            i += 1
        else:
            i += 1

    if output_path is None:
        output_path = context.config.data_dir / "exports" / DEFAULT_EXPORT_NAME
    output_path = output_path.expanduser()
    if not output_path.is_absolute():
        output_path = context.config.data_dir / output_path

    try:
        count = context.session.export_file(output_path)
    except StorageError as exc:
        return f"[export] {exc}"

    return f"[export] {count} quote(s) exported to: {output_path}"


IMPORT_COMMAND = SlashCommand(
    name="import",
    description="Import quotes from a JSON list. Usage: /import PATH",
    handler=_import_handler,
)

EXPORT_COMMAND = SlashCommand(
    name="export",
    description="Export quotes to JSON. Usage: /export [-o PATH]",
    handler=_export_handler,
)
