# sosmeet/main.py
# Run: python -m sosmeet   (listens on $PORT, default 3000)

import asyncio
import logging

from sosmeet.config import settings
from sosmeet.server.transport import RelayServer

logger = logging.getLogger(__name__)


async def main() -> None:
    server = RelayServer.from_settings(settings)
    await server.start()
    logger.info("SOS Meet relay running on ws://localhost:%d", server.port)
    try:
        await server.serve_forever()
    finally:
        logger.info("Shutting down relay...")
        await server.stop()


def run() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
