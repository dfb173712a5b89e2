"""Key/value persistence for the quote collection and selection state."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, List, Optional

from ..errors import StorageError
from .models import ALL_CATEGORIES, Quote

logger = logging.getLogger("quotesync.quotes.store")

QUOTES_KEY = "quotes"
SELECTED_CATEGORY_KEY = "selected_category"


class LocalStore:
    """Durable JSON values, one file per key."""

    def __init__(self, directory: Path):
        self.directory = directory

    def _path_for(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str, default: Any = None) -> Any:
        path = self._path_for(key)
        if not path.exists():
            return default
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        # UnicodeDecodeError is a ValueError, not a JSONDecodeError
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read '{path}': {e}") from e

    def set(self, key: str, value: Any) -> None:
        path = self._path_for(key)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(value, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Failed to write '{path}': {e}") from e
        logger.debug("Stored key '%s' at %s", key, path)

    def load(self) -> Optional[List[Quote]]:
        """Return the persisted quotes, or None when nothing was saved yet."""
        raw = self.get(QUOTES_KEY)
        if raw is None:
            return None
        if not isinstance(raw, list):
            raise StorageError(f"Stored quotes under '{self.directory}' are not a list.")
        try:
            return [Quote.from_dict(item) for item in raw]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise StorageError(f"Stored quotes are malformed: {e}") from e

    def save(self, quotes: Iterable[Quote]) -> None:
        self.set(QUOTES_KEY, [q.to_dict() for q in quotes])


@dataclass
class SelectionState:
    """Presentation state: last shown quote and the category filter.

    The last quote lives only for the session; the filter is stored.
    """

    store: LocalStore
    last_quote: Optional[Quote] = None

    @property
    def selected_category(self) -> str:
        try:
            value = self.store.get(SELECTED_CATEGORY_KEY, ALL_CATEGORIES)
        except StorageError as e:
            logger.warning("Could not read category filter: %s", e)
            return ALL_CATEGORIES
        return str(value) if value else ALL_CATEGORIES

    def select_category(self, label: str) -> None:
        self.store.set(SELECTED_CATEGORY_KEY, label or ALL_CATEGORIES)


__all__ = ["LocalStore", "SelectionState", "QUOTES_KEY", "SELECTED_CATEGORY_KEY"]
