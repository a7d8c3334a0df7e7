"""Per-source automation rules.

A rule pairs a search pattern with flag actions. When the pattern's
match result equals ``match`` the actions are applied. Application is a
pure transform: the input item is never modified and a new one is
returned.
"""

import logging
import re
from dataclasses import dataclass, replace

from .models import Item

logger = logging.getLogger(__name__)

SEARCHABLE_FIELDS = ("title", "snippet", "creator")


@dataclass
class SourceRule:
    """Pattern-triggered flag changes for items of one source.

    Actions left as ``None`` do not touch the corresponding flag.
    """

    pattern: str
    match: bool = True
    fields: tuple[str, ...] = ("title",)
    has_read: bool | None = None
    starred: bool | None = None
    hidden: bool | None = None
    notify: bool | None = None

    def __post_init__(self) -> None:
        unknown = [f for f in self.fields if f not in SEARCHABLE_FIELDS]
        if unknown:
            raise ValueError(f"Unsupported rule fields: {', '.join(unknown)}")

    def _compiled(self) -> re.Pattern:
        try:
            return re.compile(self.pattern, re.IGNORECASE)
        except re.error:
            # not a regex, match literally
            return re.compile(re.escape(self.pattern), re.IGNORECASE)

    def matches(self, item: Item) -> bool:
        regex = self._compiled()
        return any(regex.search(getattr(item, name) or "") for name in self.fields)

    def apply(self, item: Item) -> Item:
        if self.matches(item) != self.match:
            return item
        changes = {}
        for name in ("has_read", "starred", "hidden", "notify"):
            value = getattr(self, name)
            if value is not None:
                changes[name] = value
        if not changes:
            return item
        logger.debug("Rule %r applied to %r: %s", self.pattern, item.title, changes)
        return replace(item, **changes)


def apply_all(rules: list[SourceRule], item: Item) -> Item:
    """Apply rules in order; later rules see the result of earlier ones."""
    for rule in rules:
        item = rule.apply(item)
    return item
