from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from settlement.core.models import EventTypeEnum, OrderStatusEnum
from settlement.infrastructure.repositories import (
    DoesNotExist,
    InboxRepository,
    OrderRepository,
    OutboxRepository,
    ProductRepository,
)
from settlement.infrastructure.unit_of_work import UnitOfWork


@pytest.fixture
async def uow(session_factory: async_sessionmaker[AsyncSession]) -> UnitOfWork:
    return UnitOfWork(session_factory)


def new_order(item_factory) -> OrderRepository.CreateDTO:
    return OrderRepository.CreateDTO(
        user_id="user_1",
        items=[item_factory()],
        total=Decimal("10.50"),
    )


class TestUnitOfWork:
    async def test_provides_repositories(self, uow: UnitOfWork):
        # Given/When
        async with uow() as unit:
            # Then
            assert isinstance(unit.orders, OrderRepository)
            assert isinstance(unit.products, ProductRepository)
            assert isinstance(unit.outbox, OutboxRepository)
            assert isinstance(unit.inbox, InboxRepository)

    async def test_commit_persists_changes(self, uow: UnitOfWork, item_factory):
        # When
        async with uow() as unit:
            order = await unit.orders.create(new_order(item_factory))
            await unit.commit()

        # Then - verify order persisted in new session
        async with uow() as unit:
            persisted = await unit.orders.get_by_id(order.id)
            assert persisted.id == order.id
            assert len(persisted.items) == 1

    async def test_rollback_on_exception(self, uow: UnitOfWork, item_factory):
        # When
        with pytest.raises(RuntimeError, match="Test error"):
            async with uow() as unit:
                order = await unit.orders.create(new_order(item_factory))
                raise RuntimeError("Test error")

        # Then
        async with uow() as unit:
            with pytest.raises(DoesNotExist):
                await unit.orders.get_by_id(order.id)

    async def test_uncommitted_changes_are_discarded(self, uow: UnitOfWork, item_factory):
        # When - create order but don't commit
        async with uow() as unit:
            order = await unit.orders.create(new_order(item_factory))

        # Then
        async with uow() as unit:
            assert await unit.orders.find(order.id) is None

    async def test_status_change_and_outbox_event_commit_together(
        self, uow: UnitOfWork, order_factory
    ):
        # Given
        order = await order_factory()

        # When
        with pytest.raises(RuntimeError):
            async with uow() as unit:
                await unit.orders.transition(
                    order_id=order.id,
                    expected=OrderStatusEnum.PENDING,
                    target=OrderStatusEnum.PAID,
                    payment_id="pay_1",
                )
                await unit.outbox.create(
                    OutboxRepository.CreateDTO(
                        event_type=EventTypeEnum.ORDER_PAID,
                        payload={"order_id": order.id},
                    )
                )
                raise RuntimeError("crash before commit")

        # Then - neither the status nor the event survived
        async with uow() as unit:
            persisted = await unit.orders.get_by_id(order.id)
            assert persisted.status == OrderStatusEnum.PENDING
            assert await unit.outbox.get_pending_events() == []

    async def test_same_repositories_within_transaction(self, uow: UnitOfWork):
        async with uow() as unit:
            assert unit.orders is unit.orders
