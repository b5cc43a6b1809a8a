import asyncio
import json
import logging
from typing import Awaitable, Callable

from aiokafka import AIOKafkaConsumer

logger = logging.getLogger(__name__)

MessageCallback = Callable[..., Awaitable[None]]


class KafkaEventConsumer:
    """
    Consumes settlement events at least once.

    Offsets are committed only after the callback returns, so a crash
    mid-message leads to redelivery; callbacks dedupe by message id.
    """

    def __init__(
        self,
        bootstrap_servers: str,
        topics: list[str],
        group_id: str,
        process_message_callback: MessageCallback,
    ):
        self._bootstrap_servers = bootstrap_servers
        self._topics = topics
        self._group_id = group_id
        self._process_message = process_message_callback
        self._consumer: AIOKafkaConsumer | None = None

    async def start(self):
        self._consumer = AIOKafkaConsumer(
            *self._topics,
            bootstrap_servers=self._bootstrap_servers,
            group_id=self._group_id,
            auto_offset_reset="earliest",
            enable_auto_commit=False,
            value_deserializer=lambda m: json.loads(m.decode("utf-8")),
        )
        await self._consumer.start()

    async def stop(self):
        if self._consumer:
            await self._consumer.stop()
            self._consumer = None

    async def consume(self):
        if not self._consumer:
            raise RuntimeError("Consumer not started")

        logger.info(f"Started consuming from topics: {self._topics}")

        try:
            async for message in self._consumer:
                message_id = message.key.decode("utf-8") if message.key else None
                if message_id is None:
                    logger.warning(
                        f"Skipping message without key at {message.topic}:{message.offset}"
                    )
                    await self._consumer.commit()
                    continue

                try:
                    await self._process_message(
                        message_id=message_id,
                        event_data=message.value,
                        topic=message.topic,
                    )
                except Exception as e:
                    logger.error(
                        f"Error processing message {message_id}: {e}", exc_info=True
                    )

                await self._consumer.commit()

        except asyncio.CancelledError:
            logger.info("Consumer cancelled")
            raise
