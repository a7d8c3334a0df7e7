"""Sync service interface and its Miniflux implementation."""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from .client import MinifluxClient, ServiceFailure
from .config import Config
from .mapper import map_entries
from .models import Catalog, Group, Item, PendingCommand, RemoteState, Source
from .pagination import fetch_entries
from .reconcile import reconcile_state
from .stores import ItemStore, SettingsStore

logger = logging.getLogger(__name__)

CURSOR_KEY = "miniflux.last_id"
NEW_ITEMS_QUERY = {"order": "id", "direction": "desc"}


class SyncService(ABC):
    """Capabilities shared by every remote sync backend.

    Commands produced while mapping (rule decisions to push back) are
    queued on ``pending`` and executed by ``run_pending``. ``sync_lock``
    serializes sync cycles; pages of one query never run concurrently.
    """

    def __init__(self):
        self.pending: list[PendingCommand] = []
        self.sync_lock = asyncio.Lock()

    @abstractmethod
    async def authenticate(self) -> bool: ...

    @abstractmethod
    async def import_catalog(self) -> Catalog: ...

    @abstractmethod
    async def fetch_new_items(self) -> list[Item]: ...

    @abstractmethod
    async def reconcile_state(self) -> RemoteState: ...

    @abstractmethod
    async def mark_read(self, item: Item) -> None: ...

    @abstractmethod
    async def mark_unread(self, item: Item) -> None: ...

    @abstractmethod
    async def star(self, item: Item) -> None: ...

    @abstractmethod
    async def unstar(self, item: Item) -> None: ...

    @abstractmethod
    async def mark_all_read(
        self,
        source_ids: Iterable[int],
        date: datetime | None = None,
        before: bool = True,
    ) -> None: ...

    async def run_pending(self) -> int:
        """Execute and clear queued commands. Returns how many succeeded."""
        commands, self.pending = self.pending, []
        done = 0
        for command in commands:
            try:
                await getattr(self, command.action)(command.item)
                done += 1
            except ServiceFailure as e:
                logger.warning("Pending %s for %s failed: %s", command.action, command.item.service_ref, e)
        return done

    async def aclose(self) -> None:
        """Release network resources."""


class MinifluxService(SyncService):
    """Sync backend for the Miniflux v1 API."""

    def __init__(
        self,
        config: Config,
        store: ItemStore,
        settings: SettingsStore | None = None,
        client: MinifluxClient | None = None,
    ):
        super().__init__()
        self.config = config
        self.store = store
        self.settings = settings
        self.client = client or MinifluxClient(config)
        self._fetch_lock = asyncio.Lock()
        if settings is not None:
            persisted = settings.get(CURSOR_KEY)
            if persisted is not None:
                config.last_id = int(persisted)

    async def _get_json(self, path: str) -> Any:
        response = await self.client.call(path)
        try:
            return response.json()
        except ValueError as e:
            raise ServiceFailure(f"Malformed response from {path}") from e

    @staticmethod
    def _status_body(refs: Iterable[str], status: str) -> dict:
        return {"entry_ids": [int(ref) for ref in refs], "status": status}

    def _advance_cursor(self, newest_id: int) -> None:
        current = self.config.last_id or 0
        if newest_id <= current:
            return
        self.config.last_id = newest_id
        if self.settings is not None:
            self.settings.set(CURSOR_KEY, newest_id)
        logger.info("Cursor advanced to %d", newest_id)

    async def authenticate(self) -> bool:
        return await self.client.authenticate()

    async def import_catalog(self) -> Catalog:
        """Import remote feeds as sources, with their categories if enabled.

        Raises:
            ServiceFailure: If either list is unavailable or malformed
        """
        groups: list[Group] = []
        if self.config.import_groups:
            categories = await self._get_json("categories")
            if not isinstance(categories, list):
                raise ServiceFailure("Malformed category list")
            try:
                groups = [Group(title=category["title"]) for category in categories]
            except (KeyError, TypeError) as e:
                raise ServiceFailure(f"Malformed category: {e!r}") from e

        feeds = await self._get_json("feeds")
        if not isinstance(feeds, list):
            raise ServiceFailure("Malformed feed list")

        sources: list[Source] = []
        mapping: dict[str, str] = {}
        try:
            for feed in feeds:
                ref = str(feed["id"])
                sources.append(
                    Source(url=feed.get("feed_url", ""), name=feed.get("title", ""), service_ref=ref)
                )
                category = feed.get("category") or {}
                if category.get("title"):
                    mapping[ref] = category["title"]
        except (KeyError, TypeError, AttributeError) as e:
            raise ServiceFailure(f"Malformed feed: {e!r}") from e

        logger.info("Imported %d feeds, %d groups", len(sources), len(groups))
        if not self.config.import_groups:
            return Catalog(sources=sources)

        by_title = {group.title: group for group in groups}
        for ref, title in mapping.items():
            group = by_title.get(title)
            if group is None:
                group = by_title[title] = Group(title=title)
                groups.append(group)
            group.service_refs.append(ref)
        return Catalog(sources=sources, groups=groups, group_mapping=mapping)

    async def fetch_new_items(self) -> list[Item]:
        """Fetch entries newer than the cursor and map them to items.

        The cursor moves to the newest id once the whole page set is in.
        Commands decided by source rules are queued on ``pending``.
        Concurrent calls are serialized so each one pages from the cursor
        the previous one left.
        """
        async with self._fetch_lock:
            previous = self.config.last_id or 0
            entries = await fetch_entries(
                self.client, NEW_ITEMS_QUERY, fetch_new=True, page_size=self.config.page_size
            )
            entries = [entry for entry in entries if int(entry["id"]) > previous]
            if not entries:
                logger.info("No new entries after %d", previous)
                return []

            self._advance_cursor(max(int(entry["id"]) for entry in entries))
            lookup = {source.service_ref: source for source in self.store.sources() if source.service_ref}
            items, commands = map_entries(entries, lookup, self.config.legacy_star_sync)
            self.pending.extend(commands)
        return items

    async def reconcile_state(self) -> RemoteState:
        return await reconcile_state(self.client)

    async def mark_read(self, item: Item) -> None:
        """Mark one entry read.

        Raises:
            ServiceFailure: On transport failure or any non-204 answer
        """
        if not item.service_ref:
            logger.debug("mark_read skipped, item %r was never synced", item.title)
            return
        response = await self.client.call("entries", "PUT", self._status_body([item.service_ref], "read"))
        if response.status_code != 204:
            raise ServiceFailure(f"Marking entry {item.service_ref} read failed: HTTP {response.status_code}")

    async def mark_unread(self, item: Item) -> None:
        if not item.service_ref:
            logger.debug("mark_unread skipped, item %r was never synced", item.title)
            return
        try:
            response = await self.client.call(
                "entries", "PUT", self._status_body([item.service_ref], "unread")
            )
        except ServiceFailure as e:
            logger.warning("Marking entry %s unread failed: %s", item.service_ref, e)
            return
        if response.status_code != 204:
            logger.warning("Marking entry %s unread got HTTP %d", item.service_ref, response.status_code)

    async def _set_starred(self, item: Item, starred: bool) -> None:
        """Bring the remote bookmark flag to ``starred``.

        Miniflux only offers a toggle, so the current flag is read first
        and the toggle is sent only when it differs.
        """
        if not item.service_ref:
            logger.debug("Star change skipped, item %r was never synced", item.title)
            return
        ref = item.service_ref
        try:
            response = await self.client.call(f"entries/{ref}")
            if response.status_code != 200:
                logger.warning("Cannot read entry %s: HTTP %d", ref, response.status_code)
                return
            entry = response.json()
            if not isinstance(entry, dict):
                logger.warning("Unexpected body for entry %s", ref)
                return
            if bool(entry.get("starred")) == starred:
                return
            response = await self.client.call(f"entries/{ref}/bookmark", "PUT")
        except (ServiceFailure, ValueError) as e:
            logger.warning("Setting starred=%s on entry %s failed: %s", starred, ref, e)
            return
        if response.status_code != 204:
            logger.warning("Bookmark toggle on entry %s got HTTP %d", ref, response.status_code)

    async def star(self, item: Item) -> None:
        await self._set_starred(item, True)

    async def unstar(self, item: Item) -> None:
        await self._set_starred(item, False)

    async def mark_all_read(
        self,
        source_ids: Iterable[int],
        date: datetime | None = None,
        before: bool = True,
    ) -> None:
        """Mark everything in the given sources read.

        With ``date``, only locally unread items dated on or before it
        (``before``) or on or after it are sent, in one bulk request.
        Without it, each source's remote feed is marked read as a whole.
        """
        source_ids = list(source_ids)
        if date is not None:
            refs = self.store.unread_refs(source_ids, date, before)
            if not refs:
                logger.debug("mark_all_read: nothing unread around %s", date)
                return
            await self.client.call("entries", "PUT", self._status_body(refs, "read"))
            logger.info("Marked %d entries read", len(refs))
            return

        refs = []
        for sid in source_ids:
            source = self.store.get_source(sid)
            if source is None or not source.service_ref:
                logger.debug("mark_all_read: source %s has no remote feed", sid)
                continue
            refs.append(source.service_ref)
        results = await asyncio.gather(
            *(self.client.call(f"feeds/{ref}/mark-all-as-read", "PUT") for ref in refs),
            return_exceptions=True,
        )
        failures = [r for r in results if isinstance(r, BaseException)]
        for failure in failures[1:]:
            logger.warning("mark_all_read: additional failure: %s", failure)
        if failures:
            raise failures[0]
        logger.info("Marked %d feeds read", len(refs))

    async def aclose(self) -> None:
        await self.client.aclose()
