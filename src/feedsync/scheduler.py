"""Sync cycle and background polling loop."""

import asyncio
import logging

from .client import ServiceFailure
from .models import StateDrift
from .reconcile import find_drift
from .service import SyncService
from .stores import ItemStore

logger = logging.getLogger(__name__)


def apply_drift(drift: StateDrift) -> None:
    """Flip local flags so they match the remote state."""
    for item in drift.to_read:
        item.has_read = True
    for item in drift.to_unread:
        item.has_read = False
    for item in drift.to_star:
        item.starred = True
    for item in drift.to_unstar:
        item.starred = False


async def sync_once(service: SyncService, store: ItemStore) -> int:
    """Run one sync cycle. Returns count of new items stored.

    New items are stored before their pending rule commands are pushed,
    and reconciliation runs last so it sees the pushed state. A call made
    while another cycle is running waits for it and returns 0 instead of
    paging the same queries again.
    """
    if service.sync_lock.locked():
        logger.info("Sync already in progress, waiting for it")
        async with service.sync_lock:
            return 0
    async with service.sync_lock:
        return await _run_cycle(service, store)


async def _run_cycle(service: SyncService, store: ItemStore) -> int:
    items = await service.fetch_new_items()
    inserted = store.add_items(items)
    if service.pending:
        pushed = await service.run_pending()
        logger.info("Pushed %d rule commands", pushed)

    state = await service.reconcile_state()
    drift = find_drift(store.items(), state)
    if drift:
        apply_drift(drift)
        logger.info(
            "Applied remote state: %d read, %d unread, %d starred, %d unstarred",
            len(drift.to_read),
            len(drift.to_unread),
            len(drift.to_star),
            len(drift.to_unstar),
        )
    return inserted


async def start_polling(service: SyncService, store: ItemStore, interval: int) -> None:
    """Run sync cycles indefinitely, ``interval`` seconds apart."""
    logger.info("Poller started (interval: %ds)", interval)

    while True:
        try:
            new_count = await sync_once(service, store)
            if new_count > 0:
                logger.info("Sync cycle complete: %d new items", new_count)
        except ServiceFailure as e:
            logger.error("Sync cycle failed: %s", e)

        await asyncio.sleep(interval)
