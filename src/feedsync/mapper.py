"""Conversion of raw Miniflux entries into local items.

Mapping does no I/O. When a source rule flips the read or starred flag
reported by the service, the mapper emits a ``PendingCommand`` so the
rule's decision can be pushed back to the service later.
"""

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup

from .models import Item, PendingCommand, Source
from .rules import apply_all

logger = logging.getLogger(__name__)


def _origin(link: str) -> str | None:
    parts = urlsplit(link or "")
    if not parts.scheme or not parts.netloc:
        return None
    return f"{parts.scheme}://{parts.netloc}"


def _parse_date(entry: dict) -> datetime | None:
    for key in ("published_at", "created_at"):
        value = entry.get(key)
        if not value:
            continue
        try:
            return datetime.fromisoformat(value)
        except (TypeError, ValueError):
            logger.debug("Unparseable %s on entry %s: %r", key, entry.get("id"), value)
    return None


def extract_thumbnail(soup: BeautifulSoup, link: str) -> str | None:
    """Return the absolute URL of the first image in the document.

    A ``<base>`` pointing at the article's origin is injected into the
    head first, so relative image paths resolve against the article's
    site. As in a browser, the first ``<base href>`` in document order
    wins.
    """
    origin = _origin(link)
    if origin:
        head = soup.head
        if head is None:
            head = soup.new_tag("head")
            soup.insert(0, head)
        head.append(soup.new_tag("base", href=origin))

    img = soup.find("img")
    src = img.get("src") if img else None
    if not src:
        return None

    base = soup.find("base", href=True)
    resolved = urljoin(base["href"], src) if base else src
    if not urlsplit(resolved).scheme:
        return None
    return resolved


def thumbnail_for(content: str, link: str) -> str | None:
    """Parse ``content`` as a standalone document and extract its thumbnail."""
    return extract_thumbnail(BeautifulSoup(content or "", "html.parser"), link)


def map_entry(
    entry: dict,
    source: Source,
    fetched_date: datetime | None = None,
    legacy_star_sync: bool = False,
) -> tuple[Item, list[PendingCommand]]:
    """Build an item from one entry and apply the source's rules.

    Args:
        entry: Raw Miniflux entry
        source: Local source owning the entry
        fetched_date: Fetch timestamp, defaults to now
        legacy_star_sync: Push starred-flag changes made by rules as
            ``mark_unread`` instead of ``star``/``unstar``

    Returns:
        The mapped item and the remote commands its rules call for
    """
    fetched_date = fetched_date or datetime.now(timezone.utc)
    content = entry.get("content") or ""
    link = entry.get("url") or ""
    soup = BeautifulSoup(content, "html.parser")
    remote_read = entry.get("status") == "read"
    remote_starred = bool(entry.get("starred"))

    item = Item(
        source=source.sid,
        title=entry.get("title") or "",
        link=link,
        date=_parse_date(entry) or fetched_date,
        fetched_date=fetched_date,
        content=content,
        snippet=soup.get_text().strip(),
        creator=entry.get("author") or "",
        has_read=remote_read,
        starred=remote_starred,
        service_ref=str(entry["id"]),
    )
    item.thumb = extract_thumbnail(soup, link)

    commands: list[PendingCommand] = []
    if not source.rules:
        return item, commands

    item = apply_all(source.rules, item)
    if item.has_read != remote_read:
        commands.append(PendingCommand("mark_read" if item.has_read else "mark_unread", item))
    if item.starred != remote_starred:
        if legacy_star_sync:
            commands.append(PendingCommand("mark_unread", item))
        else:
            commands.append(PendingCommand("star" if item.starred else "unstar", item))
    return item, commands


def map_entries(
    entries: list[dict],
    source_lookup: Mapping[str, Source],
    legacy_star_sync: bool = False,
) -> tuple[list[Item], list[PendingCommand]]:
    """Map entries to items, resolving each entry's source by remote feed id.

    Entries whose feed has no local source are skipped.
    """
    fetched_date = datetime.now(timezone.utc)
    items: list[Item] = []
    commands: list[PendingCommand] = []
    for entry in entries:
        feed = entry.get("feed") or {}
        feed_id = feed.get("id", entry.get("feed_id"))
        source = source_lookup.get(str(feed_id))
        if source is None:
            logger.warning("Skipping entry %s: no local source for feed %s", entry.get("id"), feed_id)
            continue
        item, item_commands = map_entry(entry, source, fetched_date, legacy_star_sync)
        items.append(item)
        commands.extend(item_commands)

    logger.info("Mapped %d of %d entries (%d pending commands)", len(items), len(entries), len(commands))
    return items, commands
