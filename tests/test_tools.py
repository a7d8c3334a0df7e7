"""Tests for tools.py — tool registration and error boundaries.

These tests verify that:
1. Tools catch all exceptions and return 'Error: ...' strings
2. Tools keep the local store in step with the remote commands
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from feedsync.client import ServiceFailure
from feedsync.models import Catalog, Item, Source
from feedsync.service import MinifluxService
from feedsync.stores import MemoryStore
from feedsync.tools import register_tools

# We don't need a real FastMCP server — we just need to capture the
# registered tool functions so we can call them directly.


class FakeMCP:
    """Minimal stand-in that captures tool registrations."""

    def __init__(self):
        self.tools: dict[str, object] = {}

    def tool(self):
        def decorator(fn):
            self.tools[fn.__name__] = fn
            return fn

        return decorator


def _item(ref, day=1, has_read=False, starred=False):
    date = datetime(2024, 3, day, tzinfo=timezone.utc)
    return Item(
        source=1,
        title=f"Item {ref}",
        link="",
        date=date,
        fetched_date=date,
        content="",
        snippet="",
        creator="",
        has_read=has_read,
        starred=starred,
        service_ref=ref,
    )


@pytest.fixture
def store():
    store = MemoryStore()
    store.add_sources([Source(url="https://a.example/rss", name="Feed A", service_ref="1")])
    store.add_items([_item("1", day=1), _item("2", day=9), _item("3", day=2, has_read=True)])
    return store


@pytest.fixture
def service(config, store, client):
    return MinifluxService(config, store, client=client)


@pytest.fixture
def tools(service, store):
    """Register tools on a fake MCP and return them as a dict."""
    fake_mcp = FakeMCP()
    register_tools(fake_mcp, service, store)
    return fake_mcp.tools


def test_all_operations_registered(tools):
    assert set(tools) == {
        "authenticate",
        "import_catalog",
        "sync_now",
        "list_items",
        "mark_read",
        "mark_unread",
        "star",
        "unstar",
        "mark_all_read",
    }


@pytest.mark.asyncio
async def test_authenticate_ok(tools, service):
    service.authenticate = AsyncMock(return_value=True)
    assert await tools["authenticate"]() == "OK"


@pytest.mark.asyncio
async def test_authenticate_rejected(tools, service):
    service.authenticate = AsyncMock(return_value=False)
    assert await tools["authenticate"]() == "Rejected"


@pytest.mark.asyncio
async def test_authenticate_error_returns_string(tools, service):
    service.authenticate = AsyncMock(side_effect=ServiceFailure("unreachable"))
    result = await tools["authenticate"]()
    assert result.startswith("Error:")
    assert "unreachable" in result


@pytest.mark.asyncio
async def test_import_catalog_adds_new_sources(tools, service, store):
    service.import_catalog = AsyncMock(
        return_value=Catalog(
            sources=[
                Source(url="https://a.example/rss", name="Feed A", service_ref="1"),
                Source(url="https://b.example/rss", name="Feed B", service_ref="2"),
            ]
        )
    )

    result = await tools["import_catalog"]()

    assert "Feed B" in result
    assert "Feed A" not in result
    assert len(store.sources()) == 2


@pytest.mark.asyncio
async def test_sync_now_error_returns_string(tools, service):
    service.fetch_new_items = AsyncMock(side_effect=ServiceFailure("timeout"))
    result = await tools["sync_now"]()
    assert result.startswith("Error:")


@pytest.mark.asyncio
async def test_list_items_unread_only(tools):
    result = await tools["list_items"]()
    assert "Item 1" in result
    assert "Item 2" in result
    assert "Item 3" not in result
    assert result.index("Item 2") < result.index("Item 1")


@pytest.mark.asyncio
async def test_mark_read_updates_local_flag(tools, service, store):
    service.mark_read = AsyncMock()

    assert await tools["mark_read"](service_refs=["1", "2"]) == "OK"
    assert service.mark_read.await_count == 2
    assert store.get_item("1").has_read is True


@pytest.mark.asyncio
async def test_mark_read_failure_keeps_local_flag(tools, service, store):
    service.mark_read = AsyncMock(side_effect=ServiceFailure("HTTP 500"))

    result = await tools["mark_read"](service_refs=["1"])

    assert result.startswith("Error:")
    assert store.get_item("1").has_read is False


@pytest.mark.asyncio
async def test_mark_read_unknown_item(tools):
    result = await tools["mark_read"](service_refs=["404"])
    assert result.startswith("Error:")
    assert "404" in result


@pytest.mark.asyncio
async def test_mark_unread(tools, service, store):
    service.mark_unread = AsyncMock()
    assert await tools["mark_unread"](service_refs=["3"]) == "OK"
    assert store.get_item("3").has_read is False


@pytest.mark.asyncio
async def test_star_and_unstar(tools, service, store):
    service.star = AsyncMock()
    service.unstar = AsyncMock()

    assert await tools["star"](service_ref="1") == "OK"
    assert store.get_item("1").starred is True
    assert await tools["unstar"](service_ref="1") == "OK"
    assert store.get_item("1").starred is False


@pytest.mark.asyncio
async def test_mark_all_read_with_date(tools, service, store):
    service.mark_all_read = AsyncMock()

    result = await tools["mark_all_read"](source_ids=[1], date="2024-03-05T00:00:00+00:00")

    assert result == "OK"
    _, boundary, before = service.mark_all_read.await_args[0]
    assert boundary == datetime(2024, 3, 5, tzinfo=timezone.utc)
    assert before is True
    assert store.get_item("1").has_read is True
    assert store.get_item("2").has_read is False


@pytest.mark.asyncio
async def test_mark_all_read_without_date(tools, service, store):
    service.mark_all_read = AsyncMock()

    assert await tools["mark_all_read"](source_ids=[1]) == "OK"
    assert all(i.has_read for i in store.items())


@pytest.mark.asyncio
async def test_mark_all_read_bad_date(tools, service):
    service.mark_all_read = AsyncMock()
    result = await tools["mark_all_read"](source_ids=[1], date="yesterday")
    assert result.startswith("Error:")
    service.mark_all_read.assert_not_called()
