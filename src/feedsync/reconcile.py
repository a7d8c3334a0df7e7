"""Remote read/starred truth sets and their diff against local items."""

import asyncio
import logging
from collections.abc import Iterable

from .client import MinifluxClient
from .models import Item, RemoteState, StateDrift
from .pagination import fetch_entries

logger = logging.getLogger(__name__)

UNREAD_QUERY = {"status": "unread", "order": "id", "direction": "desc"}
STARRED_QUERY = {"starred": "true", "order": "id", "direction": "desc"}


async def reconcile_state(client: MinifluxClient) -> RemoteState:
    """Collect the refs the service currently reports as unread and as starred.

    Both queries page in backlog mode and run concurrently.
    """
    page_size = client.config.page_size
    unread, starred = await asyncio.gather(
        fetch_entries(client, UNREAD_QUERY, page_size=page_size),
        fetch_entries(client, STARRED_QUERY, page_size=page_size),
    )
    state = RemoteState(
        unread_refs={str(entry["id"]) for entry in unread},
        starred_refs={str(entry["id"]) for entry in starred},
    )
    logger.info("Remote state: %d unread, %d starred", len(state.unread_refs), len(state.starred_refs))
    return state


def find_drift(items: Iterable[Item], state: RemoteState) -> StateDrift:
    """Local items whose read/starred flags disagree with ``state``.

    Items never synced to the service (no ``service_ref``) are ignored.
    """
    drift = StateDrift()
    for item in items:
        if not item.service_ref:
            continue
        remote_unread = item.service_ref in state.unread_refs
        if item.has_read and remote_unread:
            drift.to_unread.append(item)
        elif not item.has_read and not remote_unread:
            drift.to_read.append(item)

        remote_starred = item.service_ref in state.starred_refs
        if item.starred and not remote_starred:
            drift.to_unstar.append(item)
        elif not item.starred and remote_starred:
            drift.to_star.append(item)
    return drift
