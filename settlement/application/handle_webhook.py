import logging

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from settlement.core.errors import PersistenceError
from settlement.core.events import PaymentIntent, classify
from settlement.core.models import EventTypeEnum, OrderStatusEnum
from settlement.infrastructure.repositories import OutboxRepository
from settlement.infrastructure.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class WebhookResult(BaseModel):
    message: str
    status: OrderStatusEnum | None = None
    settled: bool = False


class HandleWebhookUseCase:
    def __init__(self, unit_of_work: UnitOfWork, receipt_prefix: str = "order_"):
        self._unit_of_work = unit_of_work
        self._receipt_prefix = receipt_prefix

    async def __call__(self, event: dict) -> WebhookResult:
        intent = classify(event, receipt_prefix=self._receipt_prefix)
        if intent is None:
            logger.info(f"Unhandled webhook event type: {event.get('event')}")
            return WebhookResult(message="Event type not handled")

        try:
            return await self._apply(intent)
        except SQLAlchemyError as e:
            logger.error(
                f"Failed to apply {intent.event_type} to order {intent.order_id}: {e}",
                exc_info=True,
            )
            raise PersistenceError() from e

    async def _apply(self, intent: PaymentIntent) -> WebhookResult:
        transition = intent.transition

        async with self._unit_of_work() as uow:
            order = await uow.orders.find(intent.order_id)
            if order is None:
                logger.warning(
                    f"{intent.event_type} references unknown order {intent.order_id}"
                )
                return WebhookResult(message="Order not found, event acknowledged")

            if (
                transition.target == OrderStatusEnum.PAID
                and order.status == OrderStatusEnum.PAID
                and order.payment_id == intent.payment_id
            ):
                logger.info(
                    f"Payment already processed: order {order.id}, payment {intent.payment_id}"
                )
                return WebhookResult(message="Payment already processed", status=order.status)

            applied = await uow.orders.transition(
                order_id=order.id,
                expected=transition.expected,
                target=transition.target,
                payment_id=intent.payment_id if transition.writes_payment_id else None,
            )
            if not applied:
                logger.info(
                    f"Skipping {intent.event_type} for order {order.id}: "
                    f"status is {order.status}, expected {transition.expected}"
                )
                return WebhookResult(
                    message="Event already applied or superseded", status=order.status
                )

            if transition.triggers_fulfillment:
                await uow.outbox.create(
                    OutboxRepository.CreateDTO(
                        event_type=EventTypeEnum.ORDER_PAID,
                        payload={
                            "order_id": order.id,
                            "payment_id": intent.payment_id,
                            "source": intent.event_type,
                        },
                    )
                )

            await uow.commit()

        logger.info(
            f"Webhook processed: {intent.event_type} order={order.id} "
            f"payment={intent.payment_id} status={transition.target}"
        )
        return WebhookResult(
            message="Webhook processed successfully",
            status=transition.target,
            settled=transition.triggers_fulfillment,
        )
