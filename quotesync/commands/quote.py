"""Slash commands for showing and filtering quotes."""

from __future__ import annotations

from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..quotes.models import ALL_CATEGORIES, Quote
from ..slash_commands import SlashCommand, SlashCommandContext, render_rich


def format_quote(quote: Optional[Quote]) -> str:
    if quote is None:
        return "No quotes in this category."
    return f'"{quote.text}" - ({quote.category})'


def _quote_handler(context: SlashCommandContext, args: List[str]) -> str:
    """Show a random quote from the active filter or the given category."""

    category = " ".join(args).strip() or None
    if args and args[0] in ("--last", "-l"):
        return format_quote(context.session.selection.last_quote)
    return format_quote(context.session.random_quote(category))


def _categories_handler(context: SlashCommandContext, _: List[str]) -> str:
    session = context.session
    categories = session.collection.categories()
    selected = session.selection.selected_category

    if not categories:
        return "[categories] No quotes yet."

    def _render(console: Console) -> None:
        table = Table(title="Categories", show_header=True, header_style="bold cyan")
        table.add_column("Category", style="green")
        table.add_column("Quotes", justify="right")
        table.add_row(
            f"{ALL_CATEGORIES} (All Categories)" + (" *" if selected == ALL_CATEGORIES else ""),
            str(len(session.collection)),
        )
        for label in categories:
            marker = " *" if label == selected else ""
            table.add_row(f"{escape(label)}{marker}", str(len(session.collection.by_category(label))))
        console.print(table)

    return render_rich(_render)


def _filter_handler(context: SlashCommandContext, args: List[str]) -> str:
    session = context.session
    if not args:
        return f"[filter] Current category: {session.selection.selected_category}"

    label = " ".join(args).strip()
    if label.lower() == ALL_CATEGORIES:
        label = ALL_CATEGORIES
    elif label not in session.collection.categories():
        return f"[filter] Unknown category '{label}'. Use /categories to list them."

    quote = session.set_filter(label)
    return f"[filter] Showing {label}\n{format_quote(quote)}"


QUOTE_COMMAND = SlashCommand(
    name="quote",
    description="Show a random quote. Usage: /quote [CATEGORY] | /quote --last",
    handler=_quote_handler,
)

CATEGORIES_COMMAND = SlashCommand(
    name="categories",
    description="List quote categories (* marks the active filter).",
    handler=_categories_handler,
)

FILTER_COMMAND = SlashCommand(
    name="filter",
    description="Show or set the remembered category filter. Usage: /filter [CATEGORY|all]",
    handler=_filter_handler,
)
