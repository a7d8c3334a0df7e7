"""MCP server entry point for feedsync.

Serves the sync tools over Streamable HTTP and, when a sync interval is
configured, polls the Miniflux service in the same event loop.
"""

import asyncio
import logging
import sys

from fastmcp import FastMCP

from .config import Config, load_config
from .scheduler import start_polling
from .service import MinifluxService
from .stores import JsonSettingsStore, MemoryStore
from .tools import register_tools

logging.basicConfig(
    stream=sys.stderr,
    level=logging.INFO,
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)
logger = logging.getLogger(__name__)


async def serve(config: Config) -> None:
    """Run the MCP server and the poller until cancelled."""
    store = MemoryStore()
    service = MinifluxService(config, store, JsonSettingsStore(config.state_file))

    mcp = FastMCP("feedsync")
    register_tools(mcp, service, store)

    tasks = [
        mcp.run_async(
            transport="streamable-http",
            host=config.server_host,
            port=config.server_port,
        )
    ]
    if config.sync_interval:
        tasks.append(start_polling(service, store, config.sync_interval))

    try:
        await asyncio.gather(*tasks)
    finally:
        logger.info("Closing connections...")
        await service.aclose()


def main() -> None:
    """Run the feedsync MCP server."""
    config = load_config()
    logger.info(
        "Starting feedsync MCP server on %s:%d (streamable-http)",
        config.server_host,
        config.server_port,
    )
    try:
        asyncio.run(serve(config))
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
        sys.exit(0)


if __name__ == "__main__":
    main()
