from datetime import datetime
from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel


class OrderStatusEnum(StrEnum):
    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"

    @property
    def is_terminal(self) -> bool:
        return self is not OrderStatusEnum.PENDING


class ShipmentStatusEnum(StrEnum):
    CREATED = "created"


class OrderItem(BaseModel):
    product_id: str
    quantity: int
    price: Decimal


class ShippingAddress(BaseModel):
    name: str
    phone: str
    line1: str
    city: str
    state: str
    postal_code: str
    country: str = "India"


class ShippingInfo(BaseModel):
    courier_id: int
    courier_name: str | None = None
    pickup_pincode: str | None = None
    rate: Decimal | None = None


class Order(BaseModel):
    id: str
    user_id: str
    items: list[OrderItem]
    total: Decimal
    status: OrderStatusEnum
    payment_id: str | None = None
    shipping_address: ShippingAddress | None = None
    shipping_info: ShippingInfo | None = None
    tracking_number: str | None = None
    shipment_id: str | None = None
    shipment_status: str | None = None
    shipment_status_description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Product(BaseModel):
    id: str
    name: str
    inventory: int


class EventTypeEnum(StrEnum):
    ORDER_PAID = "ORDER.PAID"


class OutboxEventStatus(StrEnum):
    PENDING = "PENDING"
    SENT = "SENT"


class OutboxEvent(BaseModel):
    id: str
    event_type: EventTypeEnum
    payload: dict
    status: OutboxEventStatus
    created_at: datetime


class InboxEventStatus(StrEnum):
    PENDING = "PENDING"
    PROCESSED = "PROCESSED"


class InboxEvent(BaseModel):
    id: str
    message_id: str
    event_type: str
    payload: dict
    status: InboxEventStatus
    created_at: datetime
