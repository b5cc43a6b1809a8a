import logging
from typing import Any

from pydantic import BaseModel, Field

from settlement.infrastructure.razorpay_client import RazorpayClient

logger = logging.getLogger(__name__)


class PaymentOrderDTO(BaseModel):
    amount: int = Field(gt=0, description="Amount in the smallest currency unit")
    currency: str = Field(min_length=3, max_length=3)
    receipt: str = Field(min_length=1)
    notes: dict[str, Any] = Field(default_factory=dict)


class PaymentOrder(BaseModel):
    id: str
    entity: str | None = None
    amount: int
    amount_paid: int | None = None
    amount_due: int | None = None
    currency: str
    receipt: str | None = None
    status: str | None = None
    created_at: int | None = None
    razorpay_order_id: str
    key: str


class CreatePaymentOrderUseCase:
    """Opens a Razorpay order that the checkout widget pays against."""

    def __init__(self, razorpay_client: RazorpayClient):
        self._razorpay_client = razorpay_client

    async def __call__(self, request: PaymentOrderDTO) -> PaymentOrder:
        created = await self._razorpay_client.create_order(
            amount=request.amount,
            currency=request.currency,
            receipt=request.receipt,
            notes=request.notes,
        )
        logger.info(
            f"Razorpay order {created.get('id')} created for receipt {request.receipt}"
        )

        return PaymentOrder(
            id=created["id"],
            entity=created.get("entity"),
            amount=created.get("amount", request.amount),
            amount_paid=created.get("amount_paid"),
            amount_due=created.get("amount_due"),
            currency=created.get("currency", request.currency),
            receipt=created.get("receipt"),
            status=created.get("status"),
            created_at=created.get("created_at"),
            razorpay_order_id=created["id"],
            key=self._razorpay_client.key_id,
        )
