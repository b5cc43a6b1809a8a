import logging

from settlement.application.fulfill_order import FulfillOrderUseCase
from settlement.core.models import EventTypeEnum
from settlement.infrastructure.kafka_consumer import KafkaEventConsumer

logger = logging.getLogger(__name__)


class FulfillmentWorker:
    def __init__(
        self,
        fulfill_order_use_case: FulfillOrderUseCase,
        bootstrap_servers: str,
        topic: str,
        group_id: str,
    ):
        self._fulfill_order_use_case = fulfill_order_use_case
        self._consumer = KafkaEventConsumer(
            bootstrap_servers=bootstrap_servers,
            topics=[topic],
            group_id=group_id,
            process_message_callback=self.process_message,
        )

    async def process_message(self, message_id: str, event_data: dict, topic: str):
        event_type = event_data.get("event_type")
        if event_type != EventTypeEnum.ORDER_PAID:
            logger.debug(f"Ignoring {event_type} message {message_id} on {topic}")
            return

        await self._fulfill_order_use_case(
            message_id=message_id, payload=event_data.get("payload") or {}
        )

    async def run(self):
        await self._consumer.start()
        try:
            await self._consumer.consume()
        finally:
            await self._consumer.stop()
