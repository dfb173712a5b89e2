"""Quote records and the ordered in-memory collection."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Set

from ..errors import DecodeError, ValidationError

logger = logging.getLogger("quotesync.quotes.models")

ALL_CATEGORIES = "all"


@dataclass(frozen=True)
class Quote:
    """A single quote. Replaced, never edited."""

    id: int
    text: str
    category: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "category": self.category,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Quote":
        return cls(
            id=int(data["id"]),
            text=str(data.get("text", "")),
            category=str(data.get("category", "")),
        )

    def same_content(self, other: "Quote") -> bool:
        return self.text == other.text and self.category == other.category


DEFAULT_QUOTES: List[Quote] = [
    Quote(1, "The best way to predict the future is to create it.", "Motivation"),
    Quote(2, "Simplicity is the ultimate sophistication.", "Design"),
    Quote(3, "JavaScript is the duct tape of the Internet.", "Programming"),
]


def _now_millis() -> int:
    return int(time.time() * 1000)


class QuoteCollection:
    """Ordered quotes, unique by identifier.

    Every mutating operation calls ``on_change`` once with the collection so the
    owner can persist it.
    """

    def __init__(
        self,
        quotes: Optional[Iterable[Quote]] = None,
        on_change: Optional[Callable[["QuoteCollection"], None]] = None,
        clock: Callable[[], int] = _now_millis,
    ):
        self._quotes: List[Quote] = []
        self.on_change = on_change
        self._clock = clock
        if quotes:
            self._load(quotes)

    def _load(self, quotes: Iterable[Quote]) -> None:
        seen: Set[int] = set()
        for quote in quotes:
            if quote.id in seen:
                logger.warning("Dropping duplicate quote id %s from initial state", quote.id)
                continue
            seen.add(quote.id)
            self._quotes.append(quote)

    def __len__(self) -> int:
        return len(self._quotes)

    def __iter__(self) -> Iterator[Quote]:
        return iter(list(self._quotes))

    def __contains__(self, quote_id: object) -> bool:
        return any(q.id == quote_id for q in self._quotes)

    def get(self, quote_id: int) -> Optional[Quote]:
        for quote in self._quotes:
            if quote.id == quote_id:
                return quote
        return None

    def ids(self) -> Set[int]:
        return {q.id for q in self._quotes}

    def snapshot(self) -> List[Quote]:
        """Copy of the current ordered sequence."""
        return list(self._quotes)

    def to_list(self) -> List[Dict[str, Any]]:
        return [q.to_dict() for q in self._quotes]

    def next_id(self, taken: Optional[Set[int]] = None) -> int:
        """Time-based identifier that never collides with an existing one."""
        used = self.ids() | (taken or set())
        candidate = self._clock()
        if used:
            candidate = max(candidate, max(used) + 1)
        while candidate in used:
            candidate += 1
        return candidate

    def add(self, text: str, category: str) -> Quote:
        clean_text = (text or "").strip()
        clean_category = (category or "").strip()
        if not clean_text or not clean_category:
            raise ValidationError("Both quote text and category are required.")

        quote = Quote(self.next_id(), clean_text, clean_category)
        self._quotes.append(quote)
        logger.info("Added quote %s (%s)", quote.id, quote.category)
        self._notify()
        return quote

    def replace(self, quote_id: int, quote: Quote) -> bool:
        """Replace the record at ``quote_id`` in place. Returns False if absent."""
        for index, existing in enumerate(self._quotes):
            if existing.id == quote_id:
                if quote.id != quote_id:
                    quote = Quote(quote_id, quote.text, quote.category)
                self._quotes[index] = quote
                self._notify()
                return True
        return False

    def import_batch(
        self,
        records: Sequence[Any],
        validate: bool = False,
    ) -> List[Quote]:
        """Append external records, assigning fresh ids where needed."""

        taken: Set[int] = set()
        existing = self.ids()
        imported: List[Quote] = []

        for index, record in enumerate(records):
            if not isinstance(record, Mapping):
                raise DecodeError(f"Import record {index} is not an object.")

            text = str(record.get("text") or "")
            category = str(record.get("category") or "")
            if validate and (not text.strip() or not category.strip()):
                raise ValidationError(
                    f"Import record {index} is missing text or category."
                )

            quote_id = _coerce_id(record.get("id"))
            if quote_id is None or quote_id in existing or quote_id in taken:
                quote_id = self.next_id(taken)
            taken.add(quote_id)
            imported.append(Quote(quote_id, text, category))

        if not imported:
            return []

        self._quotes.extend(imported)
        logger.info("Imported %d quote(s)", len(imported))
        self._notify()
        return imported

    def commit(self, quotes: Iterable[Quote]) -> None:
        """Swap in a whole new sequence (sync merge or resolution)."""
        self._quotes = []
        self._load(quotes)
        self._notify()

    def categories(self) -> List[str]:
        seen: Dict[str, None] = {}
        for quote in self._quotes:
            seen.setdefault(quote.category, None)
        return list(seen)

    def by_category(self, label: Optional[str]) -> List[Quote]:
        if not label or label.strip().lower() == ALL_CATEGORIES:
            return list(self._quotes)
        return [q for q in self._quotes if q.category == label]

    def _notify(self) -> None:
        if self.on_change:
            self.on_change(self)


def _coerce_id(raw: Any) -> Optional[int]:
    # bool is an int subclass; never treat true/false as an id
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str) and raw.strip().lstrip("-").isdigit():
        return int(raw.strip())
    return None


__all__ = ["Quote", "QuoteCollection", "DEFAULT_QUOTES", "ALL_CATEGORIES"]
