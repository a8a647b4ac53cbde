import asyncio
import logging

from storefront.database import AsyncSessionLocal
from storefront.infrastructure.unit_of_work import UnitOfWork
from storefront.application.book_stats import RecomputeAllBookStatsUseCase
from storefront.config import settings

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


async def stats_worker():
    """Periodically rebuilds the average rating of every book"""
    logger.info(f"Stats worker started, interval {settings.STATS_RECOMPUTE_INTERVAL_SECONDS}s")

    while True:
        try:
            use_case = RecomputeAllBookStatsUseCase(UnitOfWork(AsyncSessionLocal))
            recomputed = await use_case()
            logger.info(f"Recomputed stats for {recomputed} book(s)")
        except Exception as e:
            logger.error(f"Stats worker error: {e}", exc_info=True)

        await asyncio.sleep(settings.STATS_RECOMPUTE_INTERVAL_SECONDS)


async def main():
    await stats_worker()


if __name__ == "__main__":
    asyncio.run(main())
