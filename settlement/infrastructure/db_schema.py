import uuid

from sqlalchemy import (
    DECIMAL,
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    Table,
    Text,
    func,
)

metadata = MetaData()


def _new_id() -> str:
    return str(uuid.uuid4())


orders_tbl = Table(
    "orders",
    metadata,
    Column("id", Text, primary_key=True, default=_new_id),
    Column("user_id", Text, nullable=False),
    Column("total", DECIMAL(10, 2), nullable=False),
    Column("status", Text, nullable=False, index=True),
    Column("payment_id", Text, nullable=True),
    Column("shipping_address", JSON, nullable=True),
    Column("shipping_info", JSON, nullable=True),
    Column("tracking_number", Text, nullable=True),
    Column("shipment_id", Text, nullable=True),
    Column("shipment_status", Text, nullable=True),
    Column("shipment_status_description", Text, nullable=True),
    Column("created_at", DateTime, server_default=func.now()),
    Column("updated_at", DateTime, server_default=func.now()),
)

order_items_tbl = Table(
    "order_items",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("order_id", Text, ForeignKey("orders.id"), nullable=False, index=True),
    Column("product_id", Text, nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("price", DECIMAL(10, 2), nullable=False),
)

products_tbl = Table(
    "products",
    metadata,
    Column("id", Text, primary_key=True, default=_new_id),
    Column("name", Text, nullable=False),
    Column("inventory", Integer, nullable=False, default=0),
    Column("updated_at", DateTime, server_default=func.now()),
)

outbox_tbl = Table(
    "outbox",
    metadata,
    Column("id", Text, primary_key=True, default=_new_id),
    Column("event_type", Text, nullable=False),
    Column("payload", JSON, nullable=False),
    Column("status", Text, nullable=False),
    Column("created_at", DateTime, server_default=func.now()),
)

inbox_tbl = Table(
    "inbox",
    metadata,
    Column("id", Text, primary_key=True, default=_new_id),
    Column("message_id", Text, nullable=False, unique=True, index=True),
    Column("event_type", Text, nullable=False),
    Column("payload", JSON, nullable=False),
    Column("status", Text, nullable=False),
    Column("created_at", DateTime, server_default=func.now()),
)
