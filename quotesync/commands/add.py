"""Slash command for adding a quote."""

from __future__ import annotations

from typing import List

from ..errors import ValidationError
from ..slash_commands import SlashCommand, SlashCommandContext

SEPARATOR = "|"


def _handler(context: SlashCommandContext, args: List[str]) -> str:
    raw = " ".join(args)
    if SEPARATOR not in raw:
        return "[add] Usage: /add QUOTE TEXT | CATEGORY"

    text, _, category = raw.rpartition(SEPARATOR)
    try:
        quote = context.session.add_quote(text, category)
    except ValidationError as exc:
        return f"[add] {exc}"

    lines = [f"[add] Quote added locally (id {quote.id})."]
    if context.session.storage_error:
        lines.append(f"[add] Warning: not saved to disk: {context.session.storage_error}")
    return "\n".join(lines)


COMMAND = SlashCommand(
    name="add",
    description="Add a quote and publish it. Usage: /add TEXT | CATEGORY",
    handler=_handler,
)
