import asyncio
import logging

from storefront.database import AsyncSessionLocal
from storefront.infrastructure.unit_of_work import UnitOfWork
from storefront.infrastructure.kafka_producer import KafkaProducerClient
from storefront.application.process_outbox import ProcessOutboxEventsUseCase
from storefront.config import settings

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 3
ERROR_BACKOFF_SECONDS = 10
BATCH_SIZE = 5


async def outbox_worker():
    """Publishes order and payment events written by the API"""
    logger.info("Outbox worker started")

    kafka_producer = KafkaProducerClient(settings.KAFKA_BOOTSTRAP_SERVERS, settings.KAFKA_PAYMENT_EVENTS_TOPIC)
    await kafka_producer.start()

    try:
        while True:
            try:
                uow = UnitOfWork(AsyncSessionLocal)
                use_case = ProcessOutboxEventsUseCase(unit_of_work=uow, event_publisher=kafka_producer)

                published = await use_case(limit=BATCH_SIZE)
                if published:
                    logger.info(f"Published {published} outbox event(s)")

                await asyncio.sleep(POLL_INTERVAL_SECONDS)

            except Exception as e:
                logger.error(f"Outbox worker error: {e}", exc_info=True)
                await asyncio.sleep(ERROR_BACKOFF_SECONDS)
    finally:
        await kafka_producer.stop()


async def main():
    await outbox_worker()


if __name__ == "__main__":
    asyncio.run(main())
