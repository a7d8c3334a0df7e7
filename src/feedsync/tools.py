"""MCP tool definitions for feedsync.

Each tool maps onto one sync-service operation. All exceptions are
caught at the tool boundary and returned as "Error: ..." strings so the
MCP protocol never sees an uncaught exception.
"""

import logging
from datetime import datetime

from fastmcp import FastMCP

from .models import Item
from .scheduler import sync_once
from .service import SyncService
from .stores import ItemStore

logger = logging.getLogger(__name__)


def _lookup(store: ItemStore, service_refs: list[str]) -> list[Item]:
    items = []
    for ref in service_refs:
        item = store.get_item(ref)
        if item is None:
            raise KeyError(f"Unknown item {ref}")
        items.append(item)
    return items


def register_tools(mcp: FastMCP, service: SyncService, store: ItemStore) -> None:
    """Register all sync tools on the given MCP server instance."""

    @mcp.tool()
    async def authenticate() -> str:
        """Check that the configured Miniflux credentials are accepted.

        Returns "OK" or "Rejected".
        """
        try:
            return "OK" if await service.authenticate() else "Rejected"
        except Exception as e:
            logger.error("authenticate failed: %s", e, exc_info=True)
            return f"Error: {e}"

    @mcp.tool()
    async def import_catalog() -> str:
        """Import remote feeds (and categories, if enabled) as local sources.

        Returns a JSON-formatted list of the newly added sources.
        """
        try:
            catalog = await service.import_catalog()
            added = store.add_sources(catalog.sources)
            return str([s.to_dict() for s in added])
        except Exception as e:
            logger.error("import_catalog failed: %s", e, exc_info=True)
            return f"Error: {e}"

    @mcp.tool()
    async def sync_now() -> str:
        """Fetch new articles and reconcile read/starred state.

        Returns the number of new items stored.
        """
        try:
            count = await sync_once(service, store)
            return f"{count} new items"
        except Exception as e:
            logger.error("sync_now failed: %s", e, exc_info=True)
            return f"Error: {e}"

    @mcp.tool()
    async def list_items(limit: int = 20, unread_only: bool = True) -> str:
        """List locally stored items, newest first.

        Args:
            limit: Maximum number of items to return (default 20).
            unread_only: Only include unread items (default True).
        """
        try:
            items = [i for i in store.items() if not (unread_only and i.has_read)]
            items.sort(key=lambda i: int(i.service_ref or 0), reverse=True)
            return str([i.to_dict() for i in items[:limit]])
        except Exception as e:
            logger.error("list_items failed: %s", e, exc_info=True)
            return f"Error: {e}"

    @mcp.tool()
    async def mark_read(service_refs: list[str]) -> str:
        """Mark items read locally and on the service.

        Args:
            service_refs: Remote ids of the items.
        """
        try:
            for item in _lookup(store, service_refs):
                await service.mark_read(item)
                item.has_read = True
            return "OK"
        except Exception as e:
            logger.error("mark_read failed: %s", e, exc_info=True)
            return f"Error: {e}"

    @mcp.tool()
    async def mark_unread(service_refs: list[str]) -> str:
        """Mark items unread locally and on the service.

        Args:
            service_refs: Remote ids of the items.
        """
        try:
            for item in _lookup(store, service_refs):
                await service.mark_unread(item)
                item.has_read = False
            return "OK"
        except Exception as e:
            logger.error("mark_unread failed: %s", e, exc_info=True)
            return f"Error: {e}"

    @mcp.tool()
    async def star(service_ref: str) -> str:
        """Star an item locally and on the service."""
        try:
            (item,) = _lookup(store, [service_ref])
            await service.star(item)
            item.starred = True
            return "OK"
        except Exception as e:
            logger.error("star failed: %s", e, exc_info=True)
            return f"Error: {e}"

    @mcp.tool()
    async def unstar(service_ref: str) -> str:
        """Remove the star from an item locally and on the service."""
        try:
            (item,) = _lookup(store, [service_ref])
            await service.unstar(item)
            item.starred = False
            return "OK"
        except Exception as e:
            logger.error("unstar failed: %s", e, exc_info=True)
            return f"Error: {e}"

    @mcp.tool()
    async def mark_all_read(
        source_ids: list[int],
        date: str | None = None,
        before: bool = True,
    ) -> str:
        """Mark all items of the given sources read.

        Args:
            source_ids: Local source ids.
            date: Optional ISO 8601 boundary; only items on its ``before`` side are marked.
            before: With ``date``, mark items dated on or before it (default) or on or after it.
        """
        try:
            boundary = datetime.fromisoformat(date) if date else None
            refs = set(store.unread_refs(source_ids, boundary, before)) if boundary else None
            await service.mark_all_read(source_ids, boundary, before)
            for item in store.items():
                if item.source in source_ids and (refs is None or item.service_ref in refs):
                    item.has_read = True
            return "OK"
        except Exception as e:
            logger.error("mark_all_read failed: %s", e, exc_info=True)
            return f"Error: {e}"
