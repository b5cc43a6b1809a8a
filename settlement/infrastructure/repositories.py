import uuid
from decimal import Decimal

from pydantic import BaseModel
from sqlalchemy import Row, func, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from settlement.core.models import (
    EventTypeEnum,
    InboxEvent,
    InboxEventStatus,
    Order,
    OrderItem,
    OrderStatusEnum,
    OutboxEvent,
    OutboxEventStatus,
    Product,
    ShipmentStatusEnum,
    ShippingAddress,
    ShippingInfo,
)
from settlement.infrastructure.db_schema import (
    inbox_tbl,
    order_items_tbl,
    orders_tbl,
    outbox_tbl,
    products_tbl,
)


class DoesNotExist(Exception):
    pass


class OrderRepository:
    class CreateDTO(BaseModel):
        user_id: str
        items: list[OrderItem]
        total: Decimal
        status: OrderStatusEnum = OrderStatusEnum.PENDING
        shipping_address: ShippingAddress | None = None
        shipping_info: ShippingInfo | None = None

    def __init__(self, session: AsyncSession):
        self._session = session

    @staticmethod
    def _construct(row: Row | None, items: list[OrderItem]) -> Order:
        if row is None:
            raise DoesNotExist

        return Order(
            id=row._mapping["id"],
            user_id=row._mapping["user_id"],
            items=items,
            total=row._mapping["total"],
            status=row._mapping["status"],
            payment_id=row._mapping["payment_id"],
            shipping_address=row._mapping["shipping_address"],
            shipping_info=row._mapping["shipping_info"],
            tracking_number=row._mapping["tracking_number"],
            shipment_id=row._mapping["shipment_id"],
            shipment_status=row._mapping["shipment_status"],
            shipment_status_description=row._mapping["shipment_status_description"],
            created_at=row._mapping["created_at"],
            updated_at=row._mapping["updated_at"],
        )

    async def create(self, order: CreateDTO) -> Order:
        order_id = str(uuid.uuid4())
        await self._session.execute(
            insert(orders_tbl).values(
                {
                    "id": order_id,
                    "user_id": order.user_id,
                    "total": order.total,
                    "status": order.status,
                    "shipping_address": (
                        order.shipping_address.model_dump(mode="json")
                        if order.shipping_address
                        else None
                    ),
                    "shipping_info": (
                        order.shipping_info.model_dump(mode="json")
                        if order.shipping_info
                        else None
                    ),
                }
            )
        )

        if order.items:
            await self._session.execute(
                insert(order_items_tbl),
                [
                    {
                        "order_id": order_id,
                        "product_id": item.product_id,
                        "quantity": item.quantity,
                        "price": item.price,
                    }
                    for item in order.items
                ],
            )

        return await self.get_by_id(order_id)

    async def get_items(self, order_id: str) -> list[OrderItem]:
        stmt = (
            select(order_items_tbl)
            .where(order_items_tbl.c.order_id == order_id)
            .order_by(order_items_tbl.c.id)
        )
        result = await self._session.execute(stmt)

        return [
            OrderItem(
                product_id=row._mapping["product_id"],
                quantity=row._mapping["quantity"],
                price=row._mapping["price"],
            )
            for row in result.fetchall()
        ]

    async def find(self, order_id: str) -> Order | None:
        stmt = select(orders_tbl).where(orders_tbl.c.id == order_id)
        result = await self._session.execute(stmt)
        row = result.fetchone()

        if row is None:
            return None

        return self._construct(row, await self.get_items(order_id))

    async def get_by_id(self, order_id: str) -> Order:
        order = await self.find(order_id)

        if order is None:
            raise DoesNotExist(f"Order with id {order_id} not found")

        return order

    async def transition(
        self,
        order_id: str,
        expected: OrderStatusEnum,
        target: OrderStatusEnum,
        payment_id: str | None = None,
    ) -> bool:
        """
        Compare-and-swap on the order status.

        The row is only written while its stored status still equals
        ``expected``. Returns False when nothing matched, i.e. another
        delivery already moved the order on.
        """
        values = {"status": target, "updated_at": func.now()}
        if payment_id is not None:
            values["payment_id"] = payment_id

        stmt = (
            orders_tbl.update()
            .where(orders_tbl.c.id == order_id, orders_tbl.c.status == expected)
            .values(values)
        )
        result = await self._session.execute(stmt)

        return result.rowcount == 1

    async def set_shipment(
        self,
        order_id: str,
        tracking_number: str | None,
        shipment_id: str | None,
        status: str = ShipmentStatusEnum.CREATED,
    ) -> None:
        stmt = (
            orders_tbl.update()
            .where(orders_tbl.c.id == order_id)
            .values(
                tracking_number=tracking_number,
                shipment_id=shipment_id,
                shipment_status=status,
                updated_at=func.now(),
            )
        )
        await self._session.execute(stmt)

    async def set_shipment_status(
        self, order_id: str, status: str | None, description: str | None
    ) -> None:
        stmt = (
            orders_tbl.update()
            .where(orders_tbl.c.id == order_id)
            .values(
                shipment_status=status,
                shipment_status_description=description,
                updated_at=func.now(),
            )
        )
        await self._session.execute(stmt)


class ProductRepository:
    class CreateDTO(BaseModel):
        name: str
        inventory: int = 0

    def __init__(self, session: AsyncSession):
        self._session = session

    @staticmethod
    def _construct(row: Row | None) -> Product:
        if row is None:
            raise DoesNotExist

        return Product(
            id=row._mapping["id"],
            name=row._mapping["name"],
            inventory=row._mapping["inventory"],
        )

    async def create(self, product: CreateDTO) -> Product:
        product_id = str(uuid.uuid4())
        await self._session.execute(
            insert(products_tbl).values(
                {"id": product_id, "name": product.name, "inventory": product.inventory}
            )
        )

        return await self.get_by_id(product_id)

    async def get_by_id(self, product_id: str) -> Product:
        stmt = select(products_tbl).where(products_tbl.c.id == product_id)
        result = await self._session.execute(stmt)
        row = result.fetchone()

        if row is None:
            raise DoesNotExist(f"Product with id {product_id} not found")

        return self._construct(row)

    async def set_inventory(self, product_id: str, inventory: int) -> None:
        stmt = (
            products_tbl.update()
            .where(products_tbl.c.id == product_id)
            .values(inventory=inventory, updated_at=func.now())
        )
        await self._session.execute(stmt)


class OutboxRepository:
    class CreateDTO(BaseModel):
        event_type: EventTypeEnum
        payload: dict

    def __init__(self, session: AsyncSession):
        self._session = session

    @staticmethod
    def _construct(row: Row | None) -> OutboxEvent:
        if row is None:
            raise DoesNotExist

        return OutboxEvent(
            id=row._mapping["id"],
            event_type=row._mapping["event_type"],
            payload=row._mapping["payload"],
            status=row._mapping["status"],
            created_at=row._mapping["created_at"],
        )

    async def create(self, event: CreateDTO) -> OutboxEvent:
        event_id = str(uuid.uuid4())
        await self._session.execute(
            insert(outbox_tbl).values(
                {
                    "id": event_id,
                    "event_type": event.event_type,
                    "payload": event.payload,
                    "status": OutboxEventStatus.PENDING,
                }
            )
        )

        return await self.get_by_id(event_id)

    async def get_pending_events(self, limit: int = 100) -> list[OutboxEvent]:
        stmt = (
            select(outbox_tbl)
            .where(outbox_tbl.c.status == OutboxEventStatus.PENDING)
            .order_by(outbox_tbl.c.created_at)
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        rows = result.fetchall()

        return [self._construct(row) for row in rows]

    async def get_by_id(self, event_id: str) -> OutboxEvent:
        stmt = select(outbox_tbl).where(outbox_tbl.c.id == event_id)
        result = await self._session.execute(stmt)
        row = result.fetchone()

        return self._construct(row)

    async def mark_as_sent(self, event_id: str) -> None:
        stmt = (
            outbox_tbl.update()
            .where(outbox_tbl.c.id == event_id)
            .values(status=OutboxEventStatus.SENT)
        )
        await self._session.execute(stmt)


class InboxRepository:
    class CreateDTO(BaseModel):
        message_id: str
        event_type: str
        payload: dict

    def __init__(self, session: AsyncSession):
        self._session = session

    @staticmethod
    def _construct(row: Row | None) -> InboxEvent:
        if row is None:
            raise DoesNotExist

        return InboxEvent(
            id=row._mapping["id"],
            message_id=row._mapping["message_id"],
            event_type=row._mapping["event_type"],
            payload=row._mapping["payload"],
            status=row._mapping["status"],
            created_at=row._mapping["created_at"],
        )

    async def exists(self, message_id: str) -> bool:
        """Check if message was already claimed"""
        stmt = select(inbox_tbl.c.id).where(inbox_tbl.c.message_id == message_id)
        result = await self._session.execute(stmt)
        return result.fetchone() is not None

    async def create(self, event: CreateDTO) -> InboxEvent:
        event_id = str(uuid.uuid4())
        await self._session.execute(
            insert(inbox_tbl).values(
                {
                    "id": event_id,
                    "message_id": event.message_id,
                    "event_type": event.event_type,
                    "payload": event.payload,
                    "status": InboxEventStatus.PENDING,
                }
            )
        )

        return await self.get_by_message_id(event.message_id)

    async def get_by_message_id(self, message_id: str) -> InboxEvent:
        stmt = select(inbox_tbl).where(inbox_tbl.c.message_id == message_id)
        result = await self._session.execute(stmt)
        row = result.fetchone()

        return self._construct(row)

    async def mark_as_processed(self, event_id: str) -> None:
        stmt = (
            inbox_tbl.update()
            .where(inbox_tbl.c.id == event_id)
            .values(status=InboxEventStatus.PROCESSED)
        )
        await self._session.execute(stmt)
