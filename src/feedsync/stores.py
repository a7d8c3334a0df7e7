"""Local collaborators of the sync engine.

The engine only needs the two narrow protocols below. ``JsonSettingsStore``
and ``MemoryStore`` are small implementations used by the server and the
tests. An application with a real database implements the protocols on
top of it.
"""

import json
import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

from .models import Item, Source

logger = logging.getLogger(__name__)


class SettingsStore(Protocol):
    """Key-value store persisting service settings between cycles."""

    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...


class ItemStore(Protocol):
    """Local item/source store used by the engine and the tool surface."""

    def add_sources(self, sources: Iterable[Source]) -> list[Source]: ...

    def sources(self) -> list[Source]: ...

    def get_source(self, sid: int) -> Source | None: ...

    def add_items(self, items: Iterable[Item]) -> int: ...

    def items(self) -> list[Item]: ...

    def get_item(self, service_ref: str) -> Item | None: ...

    def unread_refs(self, source_ids: Iterable[int], date: datetime, before: bool) -> list[str]: ...


class JsonSettingsStore:
    """Settings kept in a JSON object, flushed to ``path`` on every write.

    Without a path the values only live in memory.
    """

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path) if path else None
        self._values: dict[str, Any] = {}
        if self.path and self.path.exists():
            self._values = json.loads(self.path.read_text(encoding="utf-8"))
            logger.debug("Loaded %d settings from %s", len(self._values), self.path)

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value
        if self.path:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(self._values, indent=2), encoding="utf-8")


def _aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so they compare with remote dates."""
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class MemoryStore:
    """In-memory item/source store keyed by remote reference id."""

    def __init__(self):
        self._sources: dict[int, Source] = {}
        self._items: dict[str, Item] = {}
        self._next_sid = 1

    # --- Source operations ---

    def add_sources(self, sources: Iterable[Source]) -> list[Source]:
        """Insert sources, assigning local ids. A source whose
        ``service_ref`` is already known keeps its existing record."""
        added = []
        by_ref = self.source_lookup()
        for source in sources:
            if source.service_ref and source.service_ref in by_ref:
                continue
            source.sid = self._next_sid
            self._next_sid += 1
            self._sources[source.sid] = source
            if source.service_ref:
                by_ref[source.service_ref] = source
            added.append(source)
        return added

    def sources(self) -> list[Source]:
        return list(self._sources.values())

    def get_source(self, sid: int) -> Source | None:
        return self._sources.get(sid)

    def source_lookup(self) -> dict[str, Source]:
        """Sources that carry a remote ref, keyed by that ref."""
        return {s.service_ref: s for s in self._sources.values() if s.service_ref}

    # --- Item operations ---

    def add_items(self, items: Iterable[Item]) -> int:
        """Insert items not seen before. Returns the number inserted."""
        inserted = 0
        for item in items:
            if not item.service_ref or item.service_ref in self._items:
                continue
            self._items[item.service_ref] = item
            inserted += 1
        return inserted

    def items(self) -> list[Item]:
        return list(self._items.values())

    def get_item(self, service_ref: str) -> Item | None:
        return self._items.get(service_ref)

    def unread_refs(self, source_ids: Iterable[int], date: datetime, before: bool) -> list[str]:
        """Refs of unread items in ``source_ids`` dated on or before
        ``date`` (``before``) or on or after it (otherwise)."""
        sids = set(source_ids)
        boundary = _aware(date)
        refs = []
        for item in self._items.values():
            if item.source not in sids or item.has_read or not item.service_ref:
                continue
            item_date = _aware(item.date)
            if (item_date <= boundary) if before else (item_date >= boundary):
                refs.append(item.service_ref)
        return refs
