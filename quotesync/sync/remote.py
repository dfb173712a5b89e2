"""HTTP adapter for the remote quote source."""

from __future__ import annotations

import json
import logging
import socket
from dataclasses import dataclass
from typing import Any, Dict, List
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from ..errors import DecodeError, NetworkError
from ..quotes.models import Quote

logger = logging.getLogger("quotesync.sync.remote")

DEFAULT_REMOTE_URL = "https://jsonplaceholder.typicode.com/posts"
DEFAULT_CATEGORIES = ("Motivation", "Design", "Programming", "Inspiration", "Life")


@dataclass
class RemoteSettings:
    """Settings for the remote source."""

    url: str = DEFAULT_REMOTE_URL
    publish_url: str = ""
    timeout: float = 10.0
    limit: int = 5
    text_field: str = "title"
    categories: tuple = DEFAULT_CATEGORIES

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "RemoteSettings":
        raw = config.get("remote", {}) if config else {}
        return cls(
            url=str(raw.get("url", DEFAULT_REMOTE_URL)),
            publish_url=str(raw.get("publish_url", "") or ""),
            timeout=float(raw.get("timeout", 10.0)),
            limit=int(raw.get("limit", 5)),
            text_field=str(raw.get("text_field", "title")),
            categories=tuple(raw.get("categories") or DEFAULT_CATEGORIES),
        )

    @property
    def effective_publish_url(self) -> str:
        return self.publish_url or self.url


class RemoteSource:
    """Fetches remote snapshots and publishes single quotes."""

    def __init__(self, settings: RemoteSettings):
        self.settings = settings

    def fetch_snapshot(self) -> List[Quote]:
        """GET the remote list and map it onto quotes."""
        if not self.settings.url:
            raise NetworkError("No remote URL configured")

        req = Request(
            self.settings.url,
            headers={"Accept": "application/json"},
            method="GET",
        )
        body = self._open(req)

        try:
            payload = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise DecodeError(f"Remote payload is not valid JSON: {e}") from e

        snapshot = self.decode_snapshot(payload)
        logger.info("Fetched %d quote(s) from %s", len(snapshot), self.settings.url)
        return snapshot

    def decode_snapshot(self, payload: Any) -> List[Quote]:
        if not isinstance(payload, list):
            raise DecodeError("Remote payload must be a JSON list.")

        items = payload[: self.settings.limit] if self.settings.limit > 0 else payload
        categories = self.settings.categories or DEFAULT_CATEGORIES
        snapshot: List[Quote] = []

        for index, item in enumerate(items):
            if not isinstance(item, dict):
                raise DecodeError(f"Remote item {index} is not an object.")

            quote_id = item.get("id")
            if not isinstance(quote_id, int) or isinstance(quote_id, bool):
                raise DecodeError(f"Remote item {index} has no integer id.")

            text = item.get("text")
            if text is None:
                text = item.get(self.settings.text_field)
            if not isinstance(text, str):
                raise DecodeError(f"Remote item {index} has no text.")

            category = item.get("category")
            if category is None:
                category = categories[index % len(categories)]
            if not isinstance(category, str):
                raise DecodeError(f"Remote item {index} has a non-string category.")

            snapshot.append(Quote(quote_id, text, category))

        return snapshot

    def publish(self, quote: Quote) -> None:
        """POST a single quote. Raises NetworkError on failure."""
        url = self.settings.effective_publish_url
        if not url:
            raise NetworkError("No remote URL configured")

        data = json.dumps(
            {"id": quote.id, "title": quote.text, "category": quote.category}
        ).encode("utf-8")
        req = Request(
            url,
            data=data,
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        self._open(req)
        logger.info("Published quote %s to %s", quote.id, url)

    def _open(self, req: Request) -> bytes:
        try:
            with urlopen(req, timeout=self.settings.timeout) as resp:
                return resp.read()
        except HTTPError as e:
            raise NetworkError(f"HTTP error: {e.code} {e.reason}") from e
        except URLError as e:
            raise NetworkError(f"Connection error: {e.reason}") from e
        except (socket.timeout, TimeoutError) as e:
            raise NetworkError(f"Request timed out after {self.settings.timeout}s") from e
        except OSError as e:
            raise NetworkError(f"Transport failure: {e}") from e


__all__ = ["RemoteSource", "RemoteSettings", "DEFAULT_REMOTE_URL", "DEFAULT_CATEGORIES"]
