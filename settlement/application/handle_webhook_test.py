from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from settlement.application.handle_webhook import HandleWebhookUseCase
from settlement.core.errors import MissingOrderId, MissingPaymentId
from settlement.core.models import EventTypeEnum, OrderStatusEnum
from settlement.infrastructure.repositories import OrderRepository, OutboxRepository
from settlement.infrastructure.unit_of_work import UnitOfWork


@pytest.fixture
async def handle_webhook_use_case(
    session_factory: async_sessionmaker[AsyncSession],
) -> HandleWebhookUseCase:
    return HandleWebhookUseCase(unit_of_work=UnitOfWork(session_factory))


def payment_event(event_type: str, order_id: str, payment_id: str = "pay_1") -> dict:
    return {
        "event": event_type,
        "payload": {
            "payment": {
                "entity": {
                    "id": payment_id,
                    "amount": 49900,
                    "notes": {"orderId": order_id},
                }
            }
        },
    }


def refund_event(event_type: str, order_id: str, payment_id: str = "pay_1") -> dict:
    return {
        "event": event_type,
        "payload": {
            "refund": {
                "entity": {
                    "id": "rfnd_1",
                    "payment_id": payment_id,
                    "notes": {"orderId": order_id},
                }
            }
        },
    }


class TestHandleWebhookUseCase:
    async def test_captured_payment_settles_order(
        self,
        handle_webhook_use_case: HandleWebhookUseCase,
        order_factory,
        order_repo: OrderRepository,
        outbox_repo: OutboxRepository,
    ):
        # Given
        order = await order_factory(total=Decimal("499.00"))

        # When
        result = await handle_webhook_use_case(payment_event("payment.captured", order.id))

        # Then
        assert result.message == "Webhook processed successfully"
        assert result.settled is True
        settled = await order_repo.get_by_id(order.id)
        assert settled.status == OrderStatusEnum.PAID
        assert settled.payment_id == "pay_1"

        events = await outbox_repo.get_pending_events()
        assert len(events) == 1
        assert events[0].event_type == EventTypeEnum.ORDER_PAID
        assert events[0].payload["order_id"] == order.id
        assert events[0].payload["payment_id"] == "pay_1"

    async def test_duplicate_delivery_settles_once(
        self,
        handle_webhook_use_case: HandleWebhookUseCase,
        order_factory,
        order_repo: OrderRepository,
        outbox_repo: OutboxRepository,
    ):
        # Given
        order = await order_factory()
        event = payment_event("payment.captured", order.id)
        await handle_webhook_use_case(event)

        # When
        result = await handle_webhook_use_case(event)

        # Then
        assert result.message == "Payment already processed"
        assert result.settled is False
        assert (await order_repo.get_by_id(order.id)).status == OrderStatusEnum.PAID
        assert len(await outbox_repo.get_pending_events()) == 1

    async def test_order_paid_after_payment_captured_is_noop(
        self,
        handle_webhook_use_case: HandleWebhookUseCase,
        order_factory,
        outbox_repo: OutboxRepository,
    ):
        # Given
        order = await order_factory()
        await handle_webhook_use_case(payment_event("payment.captured", order.id))

        # When
        result = await handle_webhook_use_case(payment_event("order.paid", order.id))

        # Then
        assert result.settled is False
        assert len(await outbox_repo.get_pending_events()) == 1

    async def test_failed_payment_cancels_pending_order(
        self,
        handle_webhook_use_case: HandleWebhookUseCase,
        order_factory,
        order_repo: OrderRepository,
        outbox_repo: OutboxRepository,
    ):
        # Given
        order = await order_factory()

        # When
        await handle_webhook_use_case(payment_event("payment.failed", order.id, "pay_2"))

        # Then
        cancelled = await order_repo.get_by_id(order.id)
        assert cancelled.status == OrderStatusEnum.CANCELLED
        assert cancelled.payment_id == "pay_2"
        assert await outbox_repo.get_pending_events() == []

    async def test_failure_after_capture_does_not_regress_paid_order(
        self,
        handle_webhook_use_case: HandleWebhookUseCase,
        order_factory,
        order_repo: OrderRepository,
    ):
        # Given
        order = await order_factory()
        await handle_webhook_use_case(payment_event("payment.captured", order.id))

        # When
        result = await handle_webhook_use_case(
            payment_event("payment.failed", order.id, "pay_3")
        )

        # Then
        assert result.message == "Event already applied or superseded"
        unchanged = await order_repo.get_by_id(order.id)
        assert unchanged.status == OrderStatusEnum.PAID
        assert unchanged.payment_id == "pay_1"

    async def test_capture_after_cancel_does_not_resurrect_order(
        self,
        handle_webhook_use_case: HandleWebhookUseCase,
        order_factory,
        order_repo: OrderRepository,
        outbox_repo: OutboxRepository,
    ):
        # Given
        order = await order_factory(status=OrderStatusEnum.CANCELLED)

        # When
        await handle_webhook_use_case(payment_event("payment.captured", order.id))

        # Then
        assert (await order_repo.get_by_id(order.id)).status == OrderStatusEnum.CANCELLED
        assert await outbox_repo.get_pending_events() == []

    async def test_refund_moves_paid_order_to_refunded(
        self,
        handle_webhook_use_case: HandleWebhookUseCase,
        order_factory,
        order_repo: OrderRepository,
    ):
        # Given
        order = await order_factory()
        await handle_webhook_use_case(payment_event("payment.captured", order.id))

        # When
        await handle_webhook_use_case(refund_event("refund.processed", order.id))

        # Then
        assert (await order_repo.get_by_id(order.id)).status == OrderStatusEnum.REFUNDED

    async def test_refund_of_pending_order_is_ignored(
        self,
        handle_webhook_use_case: HandleWebhookUseCase,
        order_factory,
        order_repo: OrderRepository,
    ):
        # Given
        order = await order_factory()

        # When
        await handle_webhook_use_case(refund_event("refund.created", order.id))

        # Then
        assert (await order_repo.get_by_id(order.id)).status == OrderStatusEnum.PENDING

    async def test_authorized_payment_keeps_order_pending(
        self,
        handle_webhook_use_case: HandleWebhookUseCase,
        order_factory,
        order_repo: OrderRepository,
    ):
        # Given
        order = await order_factory()

        # When
        await handle_webhook_use_case(payment_event("payment.authorized", order.id))

        # Then
        updated = await order_repo.get_by_id(order.id)
        assert updated.status == OrderStatusEnum.PENDING
        assert updated.payment_id == "pay_1"

    async def test_unknown_event_is_acknowledged(
        self, handle_webhook_use_case: HandleWebhookUseCase
    ):
        # When
        result = await handle_webhook_use_case(
            {"event": "payment.dispute.created", "payload": {}}
        )

        # Then
        assert result.message == "Event type not handled"

    async def test_unknown_order_is_acknowledged(
        self, handle_webhook_use_case: HandleWebhookUseCase
    ):
        # When
        result = await handle_webhook_use_case(
            payment_event("payment.captured", "6b7c1f0e-0000-4000-8000-000000000000")
        )

        # Then
        assert result.message == "Order not found, event acknowledged"

    async def test_missing_order_id_is_rejected(
        self, handle_webhook_use_case: HandleWebhookUseCase
    ):
        # Given
        event = payment_event("payment.captured", "")

        # When / Then
        with pytest.raises(MissingOrderId):
            await handle_webhook_use_case(event)

    async def test_missing_payment_id_is_rejected(
        self, handle_webhook_use_case: HandleWebhookUseCase, order_factory
    ):
        # Given
        order = await order_factory()
        event = {
            "event": "payment.captured",
            "payload": {"payment": {"entity": {"notes": {"orderId": order.id}}}},
        }

        # When / Then
        with pytest.raises(MissingPaymentId):
            await handle_webhook_use_case(event)
