"""JSON file import and export for quotes."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, List

from ..errors import DecodeError, StorageError
from .models import Quote

logger = logging.getLogger("quotesync.quotes.transfer")

DEFAULT_EXPORT_NAME = "quotes.json"


def export_quotes(quotes: Iterable[Quote], path: Path) -> int:
    """Write quotes as an indented JSON list and return how many were written."""

    payload = [q.to_dict() for q in quotes]
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    except OSError as e:
        raise StorageError(f"Failed to write export file '{path}': {e}") from e
    logger.info("Exported %d quote(s) to %s", len(payload), path)
    return len(payload)


def read_import_file(path: Path) -> List[Any]:
    """Read an import file. Records are returned unvalidated."""

    try:
        raw = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(f"Error parsing file: {e}") from e
    except OSError as e:
        raise StorageError(f"Failed to read import file '{path}': {e}") from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Error parsing file: {e}") from e

    if not isinstance(data, list):
        raise DecodeError("Invalid file format: expected a JSON list of quotes.")
    return data


__all__ = ["export_quotes", "read_import_file", "DEFAULT_EXPORT_NAME"]
