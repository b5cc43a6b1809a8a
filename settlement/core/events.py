"""
Classification of Razorpay webhook events.

An inbound envelope ``{"event": ..., "payload": {...}}`` is mapped to a
``PaymentIntent``: which order, which payment and which status transition.
Ids are looked up through ordered extractor lists; the first non-empty string
wins. Event types missing from ``TRANSITIONS`` are ignored, not rejected, so
new provider event types are acknowledged without touching orders.
"""

from typing import Any, Callable

from pydantic import BaseModel

from settlement.core.errors import MalformedPayload, MissingOrderId, MissingPaymentId
from settlement.core.models import OrderStatusEnum

Extractor = Callable[[dict], Any]


class Transition(BaseModel):
    target: OrderStatusEnum
    expected: OrderStatusEnum
    writes_payment_id: bool = True
    triggers_fulfillment: bool = False


class PaymentIntent(BaseModel):
    event_type: str
    order_id: str
    payment_id: str | None
    transition: Transition


_KEEP_PENDING = Transition(
    target=OrderStatusEnum.PENDING, expected=OrderStatusEnum.PENDING
)
_SETTLE = Transition(
    target=OrderStatusEnum.PAID,
    expected=OrderStatusEnum.PENDING,
    triggers_fulfillment=True,
)
_CANCEL = Transition(
    target=OrderStatusEnum.CANCELLED, expected=OrderStatusEnum.PENDING
)
_REFUND = Transition(target=OrderStatusEnum.REFUNDED, expected=OrderStatusEnum.PAID)

TRANSITIONS: dict[str, Transition] = {
    "order.created": _KEEP_PENDING.model_copy(update={"writes_payment_id": False}),
    "payment.authorized": _KEEP_PENDING,
    "payment.captured": _SETTLE,
    "order.paid": _SETTLE,
    "payment.failed": _CANCEL,
    "order.payment_failed": _CANCEL,
    "payment.captured.failed": _CANCEL,
    "refund.created": _REFUND,
    "refund.processed": _REFUND,
}


def _path(*keys: str) -> Extractor:
    def extract(payload: dict) -> Any:
        node: Any = payload
        for key in keys:
            if not isinstance(node, dict):
                return None
            node = node.get(key)
        return node

    return extract


def _without_prefix(extractor: Extractor, prefix: str) -> Extractor:
    def extract(payload: dict) -> Any:
        value = extractor(payload)
        if isinstance(value, str):
            return value.removeprefix(prefix)
        return value

    return extract


def order_id_extractors(receipt_prefix: str = "order_") -> list[Extractor]:
    return [
        _path("order", "entity", "notes", "orderId"),
        _path("payment", "entity", "notes", "orderId"),
        _without_prefix(_path("order", "entity", "receipt"), receipt_prefix),
        _path("payment", "entity", "order_id"),
        _path("refund", "entity", "notes", "orderId"),
    ]


PAYMENT_ID_EXTRACTORS: list[Extractor] = [
    _path("payment", "entity", "id"),
    _path("refund", "entity", "payment_id"),
]


def first_present(payload: dict, extractors: list[Extractor]) -> str | None:
    for extract in extractors:
        value = extract(payload)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def classify(event: Any, receipt_prefix: str = "order_") -> PaymentIntent | None:
    """Return the intent for a parsed webhook envelope, or None when the event is ignored."""
    if not isinstance(event, dict):
        raise MalformedPayload("Webhook body must be a JSON object")

    event_type = event.get("event")
    if not isinstance(event_type, str) or not event_type:
        raise MalformedPayload("Webhook event type is missing")

    transition = TRANSITIONS.get(event_type)
    if transition is None:
        return None

    payload = event.get("payload") or {}
    if not isinstance(payload, dict):
        raise MalformedPayload("Webhook payload must be a JSON object")

    order_id = first_present(payload, order_id_extractors(receipt_prefix))
    if order_id is None:
        raise MissingOrderId(f"Could not extract order ID from {event_type} event")

    payment_id = first_present(payload, PAYMENT_ID_EXTRACTORS)
    if payment_id is None:
        raise MissingPaymentId(f"Could not extract payment ID from {event_type} event")

    return PaymentIntent(
        event_type=event_type,
        order_id=order_id,
        payment_id=payment_id,
        transition=transition,
    )
