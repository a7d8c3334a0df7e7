"""Shared test fixtures for feedsync tests."""

import asyncio
import os
from unittest.mock import MagicMock

import pytest

from feedsync.client import MinifluxClient, ServiceFailure
from feedsync.config import Config


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Remove all MINIFLUX/FEEDSYNC/MCP env vars before each test."""
    for key in list(os.environ):
        if key.startswith(("MINIFLUX_", "FEEDSYNC_", "MCP_SERVER_")):
            monkeypatch.delenv(key, raising=False)


def build_response(json_data=None, status_code=200):
    """Mock httpx.Response. Pass an exception as ``json_data`` to make
    ``.json()`` raise it."""
    response = MagicMock()
    response.status_code = status_code
    if isinstance(json_data, Exception):
        response.json.side_effect = json_data
    else:
        response.json.return_value = json_data
    return response


def build_entry(
    entry_id,
    feed_id=1,
    status="unread",
    starred=False,
    content="<p>Hello &amp; welcome</p>",
    published_at="2024-05-01T10:00:00Z",
):
    return {
        "id": entry_id,
        "status": status,
        "title": f"Entry {entry_id}",
        "url": f"https://blog.example/posts/{entry_id}",
        "published_at": published_at,
        "created_at": "2024-05-01T09:00:00Z",
        "content": content,
        "author": "Ada",
        "starred": starred,
        "feed_id": feed_id,
        "feed": {
            "id": feed_id,
            "title": f"Feed {feed_id}",
            "feed_url": f"https://blog.example/{feed_id}.xml",
            "category": {"title": "Tech"},
        },
    }


class FakeMiniflux:
    """In-memory stand-in for the Miniflux v1 API.

    Plug ``handle`` in as ``client.call``; every request is recorded in ``calls``.
    """

    def __init__(self, entries=(), feeds=(), categories=()):
        self.entries = {e["id"]: dict(e) for e in entries}
        self.feeds = list(feeds)
        self.categories = list(categories)
        self.calls = []
        self.failing = set()

    def requests(self, method, path):
        return [c for c in self.calls if c[0] == method and c[1] == path]

    async def handle(self, path="", method="GET", body=None, params=None):
        self.calls.append((method, path, body, dict(params or {})))
        # yield like a real request so concurrent callers interleave
        await asyncio.sleep(0)
        if path in self.failing:
            raise ServiceFailure(f"boom on {path}")

        if method == "GET" and path == "me":
            return build_response({"id": 1, "username": "admin"})
        if method == "GET" and path == "feeds":
            return build_response(self.feeds)
        if method == "GET" and path == "categories":
            return build_response(self.categories)
        if method == "GET" and path == "entries":
            return self._list_entries(params or {})
        if method == "PUT" and path == "entries":
            for entry_id in body["entry_ids"]:
                if entry_id in self.entries:
                    self.entries[entry_id]["status"] = body["status"]
            return build_response(None, 204)

        parts = path.split("/")
        if parts[0] == "entries" and len(parts) == 2 and method == "GET":
            entry = self.entries.get(int(parts[1]))
            return build_response(entry, 200) if entry else build_response({"error_message": "not found"}, 404)
        if parts[0] == "entries" and parts[2:] == ["bookmark"] and method == "PUT":
            entry = self.entries[int(parts[1])]
            entry["starred"] = not entry["starred"]
            return build_response(None, 204)
        if parts[0] == "feeds" and parts[2:] == ["mark-all-as-read"] and method == "PUT":
            for entry in self.entries.values():
                if entry["feed_id"] == int(parts[1]):
                    entry["status"] = "read"
            return build_response(None, 204)
        return build_response({"error_message": "route not found"}, 404)

    def _list_entries(self, params):
        selected = sorted(self.entries.values(), key=lambda e: e["id"], reverse=True)
        if "status" in params:
            selected = [e for e in selected if e["status"] == params["status"]]
        if params.get("starred") == "true":
            selected = [e for e in selected if e["starred"]]
        if "after_entry_id" in params:
            selected = [e for e in selected if e["id"] > int(params["after_entry_id"])]
        if "before_entry_id" in params:
            selected = [e for e in selected if e["id"] < int(params["before_entry_id"])]
        page = selected[: int(params.get("limit", 100))]
        return build_response({"total": len(selected), "entries": page})


@pytest.fixture
def config():
    return Config(
        MINIFLUX_ENDPOINT="https://rss.example.com",
        MINIFLUX_AUTH_KEY="secret-token",
    )


@pytest.fixture
def client(config):
    return MinifluxClient(config)


@pytest.fixture
def make_response():
    return build_response


@pytest.fixture
def make_entry():
    return build_entry


@pytest.fixture
def fake_api():
    return FakeMiniflux
