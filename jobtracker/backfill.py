"""Renumber every board column by creation time.

Run once after importing rows that predate column ordering:

    python -m jobtracker.backfill
"""

import asyncio
import logging

from jobtracker.models.database import async_session, engine
from jobtracker.services.application_store import backfill_order

logger = logging.getLogger(__name__)


async def run() -> dict[str, int]:
    async with async_session() as session:
        sizes = await backfill_order(session)
    await engine.dispose()
    return sizes


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    sizes = asyncio.run(run())
    logger.info("Backfill complete: %s", sizes)


if __name__ == "__main__":
    main()
