"""feedsync: keeps a local article store in sync with a Miniflux service."""

from .client import MinifluxClient, ServiceFailure
from .models import Catalog, Group, Item, RemoteState, Source
from .rules import SourceRule, apply_all
from .server import main
from .service import MinifluxService, SyncService

__all__ = [
    "main",
    "MinifluxClient",
    "MinifluxService",
    "SyncService",
    "ServiceFailure",
    "SourceRule",
    "apply_all",
    "Catalog",
    "Group",
    "Item",
    "RemoteState",
    "Source",
]

__version__ = "0.1.0"
