"""Quote records, local persistence and file transfer."""

from __future__ import annotations

from .models import ALL_CATEGORIES, DEFAULT_QUOTES, Quote, QuoteCollection
from .store import LocalStore, SelectionState
from .transfer import export_quotes, read_import_file

__all__ = [
    "ALL_CATEGORIES",
    "DEFAULT_QUOTES",
    "Quote",
    "QuoteCollection",
    "LocalStore",
    "SelectionState",
    "export_quotes",
    "read_import_file",
]
