import json
import logging
from aiokafka import AIOKafkaProducer

from storefront.application.interfaces import EventPublisher

logger = logging.getLogger(__name__)


class KafkaProducerClient(EventPublisher):
    """Publishes storefront events drained from the outbox.

    Each message is one flat JSON object: ``event_type`` (``order.created``,
    ``payment.proof_uploaded``, ``payment.confirmed``, ``payment.rejected``,
    ``payment.cancelled``) merged with the event data stored in the outbox row,
    e.g. order id, reference, notification id, amounts and the acting admin.
    The order id is the message key so every event of one order lands on the
    same partition and is consumed in order. The event type is repeated in a
    header for consumers that route without parsing the body.
    """

    def __init__(self, bootstrap_servers: str, topic: str, client_id: str = "storefront-outbox"):
        self._bootstrap_servers = bootstrap_servers
        self._topic = topic
        self._client_id = client_id
        self._producer: AIOKafkaProducer | None = None

    async def start(self):
        if not self._producer:
            self._producer = AIOKafkaProducer(
                bootstrap_servers=self._bootstrap_servers,
                client_id=self._client_id,
                acks="all"
            )
            await self._producer.start()
            logger.info(f"Kafka producer started, topic {self._topic}")

    async def stop(self):
        if self._producer:
            await self._producer.stop()
            self._producer = None
            logger.info("Kafka producer stopped")

    async def publish(self, event_type: str, event_data: dict, key: str) -> bool:
        if not self._producer:
            logger.error("Kafka producer not started")
            return False

        message = {"event_type": event_type, **event_data}
        try:
            await self._producer.send_and_wait(
                topic=self._topic,
                key=key.encode(),
                value=json.dumps(message, default=str).encode(),
                headers=[("event_type", event_type.encode())]
            )
        except Exception as e:
            # the outbox row stays pending and is retried on the next poll
            logger.error(f"Failed to publish {event_type} for order {key}: {e}")
            return False

        logger.info(f"Published {event_type} for order {key}")
        return True
