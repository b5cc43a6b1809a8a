from decimal import Decimal

from pydantic import BaseModel, Field

from settlement.core.models import (
    Order,
    OrderItem,
    OrderStatusEnum,
    ShippingAddress,
    ShippingInfo,
)
from settlement.infrastructure.repositories import OrderRepository
from settlement.infrastructure.unit_of_work import UnitOfWork


class OrderDTO(BaseModel):
    user_id: str
    items: list[OrderItem] = Field(default_factory=list)
    shipping_address: ShippingAddress | None = None
    shipping_info: ShippingInfo | None = None


class CreateOrderUseCase:
    def __init__(
        self,
        unit_of_work: UnitOfWork,
    ):
        self._unit_of_work = unit_of_work

    async def __call__(self, order: OrderDTO) -> Order:
        async with self._unit_of_work() as uow:
            total = sum(
                (item.price * item.quantity for item in order.items), start=Decimal("0")
            )
            created = await uow.orders.create(
                order=OrderRepository.CreateDTO(
                    user_id=order.user_id,
                    items=order.items,
                    total=total,
                    status=OrderStatusEnum.PENDING,
                    shipping_address=order.shipping_address,
                    shipping_info=order.shipping_info,
                )
            )
            await uow.commit()
            return created
