"""Memory Lane gateway entry point."""

import asyncio
import logging

from memory_lane.config import settings

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level),
)
logger = logging.getLogger(__name__)


async def _serve() -> None:
    from memory_lane.server import GatewayServer

    server = GatewayServer()
    await server.start()
    try:
        await asyncio.Event().wait()
    finally:
        await server.stop()


def main() -> None:
    """Run the gateway until interrupted."""
    logger.info(
        "Starting Memory Lane gateway (chat=%s, router=%s)...",
        settings.chat_model,
        settings.router_model,
    )
    try:
        asyncio.run(_serve())
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")


if __name__ == "__main__":
    main()
