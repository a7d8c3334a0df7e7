"""Cursor-based retrieval of Miniflux entry pages.

One loop serves both sync modes. Incremental ("fetch new") mode seeds
the first request with ``after_entry_id`` from the persisted cursor and
then walks backwards with ``before_entry_id``, so every page stays inside
the window of entries newer than the cursor. Backlog mode walks backwards
from the newest entry.

The loop ends on an empty page, on a short page (reported total below
the page size) or once the overall fetch cap is reached. A page that
fails to load or decode also ends the loop: whatever was accumulated so
far is returned and the caller still advances its cursor to the newest
id it received. Entries behind a failed page, or beyond the fetch cap,
are therefore skipped for good; no later cycle goes back for them.
"""

import logging
from typing import Any

from .client import MinifluxClient, ServiceFailure

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 125


async def fetch_entries(
    client: MinifluxClient,
    query: dict[str, Any],
    fetch_new: bool = False,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> list[dict]:
    """Fetch entries page by page, newest first.

    Args:
        client: Transport carrying the config (cursor and overall cap)
        query: Base query parameters (filters, order, direction)
        fetch_new: Incremental mode, only entries newer than ``config.last_id``
        page_size: Entries requested per page

    Returns:
        Raw entry dicts. The count may overshoot ``fetch_limit`` by less
        than one page.
    """
    config = client.config
    params = dict(query)
    params["limit"] = page_size

    items: list[dict] = []
    cursor: int | None = None
    total = 0

    while True:
        if cursor is not None:
            params["before_entry_id"] = cursor
        elif fetch_new:
            params["after_entry_id"] = config.last_id or 0

        try:
            response = await client.call("entries", params=params)
            page = response.json()
            entries = page["entries"]
            total = int(page.get("total") or 0)
            if not entries:
                break
            items.extend(entries)
            if fetch_new:
                cursor = int(items[-1]["id"])
            else:
                cursor = int(entries[-1]["id"])
        except ServiceFailure as e:
            logger.warning("Stopping pagination after %d entries: %s", len(items), e)
            break
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Stopping pagination after %d entries, bad page: %r", len(items), e)
            break

        if total < page_size or len(items) >= config.fetch_limit:
            break

    logger.debug("Fetched %d entries (query=%s, fetch_new=%s)", len(items), query, fetch_new)
    return items
