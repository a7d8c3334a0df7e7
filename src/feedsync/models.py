"""Data models for feedsync."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .rules import SourceRule


@dataclass
class Source:
    """A local feed record, correlated to a remote feed by ``service_ref``."""

    url: str
    name: str
    service_ref: str | None = None
    sid: int | None = None
    rules: list[SourceRule] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "sid": self.sid,
            "url": self.url,
            "name": self.name,
            "service_ref": self.service_ref,
        }


@dataclass
class Group:
    """A category label and the remote refs of the feeds filed under it."""

    title: str
    service_refs: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"title": self.title, "service_refs": list(self.service_refs)}


@dataclass
class Catalog:
    """Result of a catalog import.

    ``group_mapping`` maps remote feed id to category title and is ``None``
    when group import is disabled.
    """

    sources: list[Source]
    groups: list[Group] = field(default_factory=list)
    group_mapping: dict[str, str] | None = None


@dataclass
class Item:
    """A local article built from a remote entry."""

    source: int | None
    title: str
    link: str
    date: datetime
    fetched_date: datetime
    content: str
    snippet: str
    creator: str
    has_read: bool = False
    starred: bool = False
    hidden: bool = False
    notify: bool = False
    service_ref: str | None = None
    thumb: str | None = None

    def to_dict(self) -> dict:
        return {
            "source": self.source,
            "title": self.title,
            "link": self.link,
            "date": self.date.isoformat(),
            "fetched_date": self.fetched_date.isoformat(),
            "snippet": self.snippet,
            "creator": self.creator,
            "has_read": self.has_read,
            "starred": self.starred,
            "hidden": self.hidden,
            "notify": self.notify,
            "service_ref": self.service_ref,
            "thumb": self.thumb,
        }


@dataclass
class PendingCommand:
    """A remote mutation decided locally (by a rule) and not yet pushed."""

    action: str  # mark_read | mark_unread | star | unstar
    item: Item


@dataclass
class RemoteState:
    """Remote truth sets at reconciliation time."""

    unread_refs: set[str] = field(default_factory=set)
    starred_refs: set[str] = field(default_factory=set)


@dataclass
class StateDrift:
    """Local items whose flags disagree with the remote state."""

    to_read: list[Item] = field(default_factory=list)
    to_unread: list[Item] = field(default_factory=list)
    to_star: list[Item] = field(default_factory=list)
    to_unstar: list[Item] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.to_read) + len(self.to_unread) + len(self.to_star) + len(self.to_unstar)
