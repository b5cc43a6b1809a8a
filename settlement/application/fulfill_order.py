"""
Post-settlement side effects for a paid order.

Runs once per ``ORDER.PAID`` message: the message id is claimed in the
inbox before anything else, so redelivery of the same message never
decrements stock twice or books a second shipment. The two effects are
independent and best-effort; the order stays ``paid`` whatever happens
here, and failures are left in the logs for manual or scheduled follow-up.
"""

import logging

from sqlalchemy.exc import IntegrityError

from settlement.core.models import EventTypeEnum, Order, OrderItem, ShipmentStatusEnum
from settlement.infrastructure.repositories import InboxRepository
from settlement.infrastructure.shiprocket_client import ShiprocketClient, ShipmentRequest
from settlement.infrastructure.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class FulfillOrderUseCase:
    def __init__(
        self,
        unit_of_work: UnitOfWork,
        shiprocket_client: ShiprocketClient,
        default_pickup_pincode: str = "110001",
    ):
        self._unit_of_work = unit_of_work
        self._shiprocket_client = shiprocket_client
        self._default_pickup_pincode = default_pickup_pincode

    async def __call__(self, message_id: str, payload: dict) -> None:
        order_id = payload.get("order_id")
        if not order_id:
            logger.warning(f"Message {message_id} carries no order_id, skipping")
            return

        inbox_event_id = await self._claim(message_id, payload)
        if inbox_event_id is None:
            return

        async with self._unit_of_work() as uow:
            order = await uow.orders.find(order_id)

        if order is None:
            logger.error(f"Paid order {order_id} not found, nothing to fulfill")
        else:
            await self.decrement_inventory(order)
            await self.create_shipment(order)

        async with self._unit_of_work() as uow:
            await uow.inbox.mark_as_processed(inbox_event_id)
            await uow.commit()

    async def _claim(self, message_id: str, payload: dict) -> str | None:
        try:
            async with self._unit_of_work() as uow:
                if await uow.inbox.exists(message_id):
                    logger.info(f"Message {message_id} already handled")
                    return None

                inbox_event = await uow.inbox.create(
                    InboxRepository.CreateDTO(
                        message_id=message_id,
                        event_type=EventTypeEnum.ORDER_PAID,
                        payload=payload,
                    )
                )
                await uow.commit()
                return inbox_event.id
        except IntegrityError:
            logger.info(f"Message {message_id} claimed by another consumer")
            return None

    async def decrement_inventory(self, order: Order) -> None:
        if not order.items:
            logger.info(f"No order items found for inventory update on {order.id}")
            return

        for item in order.items:
            if not item.product_id or item.quantity <= 0:
                logger.warning(f"Skipping invalid order item on {order.id}: {item}")
                continue

            try:
                await self._decrement_item(item)
            except Exception as e:
                logger.error(
                    f"Failed to update inventory for product {item.product_id} "
                    f"on order {order.id}: {e}",
                    exc_info=True,
                )

    async def _decrement_item(self, item: OrderItem) -> None:
        async with self._unit_of_work() as uow:
            product = await uow.products.get_by_id(item.product_id)
            inventory = max(0, product.inventory - item.quantity)
            await uow.products.set_inventory(product.id, inventory)
            await uow.commit()

        logger.info(
            f"Inventory for {product.name}: {product.inventory} -> {inventory} "
            f"(decrement: {item.quantity})"
        )

    async def create_shipment(self, order: Order) -> None:
        if order.shipping_address is None or order.shipping_info is None:
            logger.info(
                f"Order {order.id} missing shipping information, skipping shipment creation"
            )
            return

        if order.shipment_id:
            logger.info(f"Order {order.id} already has shipment {order.shipment_id}")
            return

        address = order.shipping_address
        request = ShipmentRequest(
            order_id=order.id,
            courier_id=order.shipping_info.courier_id,
            pickup_pincode=order.shipping_info.pickup_pincode
            or self._default_pickup_pincode,
            delivery_pincode=address.postal_code,
            customer_name=address.name,
            customer_phone=address.phone,
            customer_address=address.line1,
            customer_city=address.city,
            customer_state=address.state,
            customer_pincode=address.postal_code,
            customer_country=address.country,
        )

        try:
            shipment = await self._shiprocket_client.create_shipment(request)
            async with self._unit_of_work() as uow:
                await uow.orders.set_shipment(
                    order_id=order.id,
                    tracking_number=shipment.tracking_number,
                    shipment_id=shipment.shipment_id,
                    status=ShipmentStatusEnum.CREATED,
                )
                await uow.commit()
        except Exception as e:
            logger.error(f"Error creating shipment for order {order.id}: {e}", exc_info=True)
            return

        logger.info(
            f"Shipment {shipment.shipment_id} created for order {order.id}, "
            f"tracking {shipment.tracking_number}"
        )
