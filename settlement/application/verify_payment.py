import logging
import re

from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError

from settlement.core.amounts import reconcile
from settlement.core.errors import (
    AmountMismatch,
    OrderAlreadyProcessed,
    OrderNotFound,
    PersistenceError,
    SignatureInvalid,
)
from settlement.core.models import EventTypeEnum, Order, OrderStatusEnum
from settlement.core.signature import verify_payment_signature
from settlement.infrastructure.razorpay_client import RazorpayClient
from settlement.infrastructure.repositories import OutboxRepository
from settlement.infrastructure.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


class VerifyPaymentDTO(BaseModel):
    razorpay_payment_id: str
    razorpay_order_id: str
    razorpay_signature: str
    order_id: str

    @field_validator(
        "razorpay_payment_id", "razorpay_order_id", "razorpay_signature", "order_id"
    )
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Missing required fields")
        return value

    @field_validator("order_id")
    @classmethod
    def _canonical_uuid(cls, value: str) -> str:
        if not UUID_PATTERN.match(value):
            raise ValueError("Invalid order ID format")
        return value


class VerificationResult(BaseModel):
    message: str
    already_processed: bool = False


class VerifyPaymentUseCase:
    """
    Client-initiated settlement after Razorpay checkout.

    Checks run in order: order exists, checkout signature, duplicate call,
    order still pending, provider reports the payment captured for exactly
    the order total. Only then is ``pending -> paid`` committed, together
    with the outbox event that drives fulfillment.
    """

    def __init__(
        self,
        unit_of_work: UnitOfWork,
        razorpay_client: RazorpayClient,
        key_secret: str,
        currency_exponent: int = 2,
    ):
        self._unit_of_work = unit_of_work
        self._razorpay_client = razorpay_client
        self._key_secret = key_secret
        self._currency_exponent = currency_exponent

    async def __call__(self, request: VerifyPaymentDTO) -> VerificationResult:
        order = await self._load_order(request.order_id)

        if not self._key_secret:
            logger.error("Razorpay key secret is not configured, rejecting verification")

        if not verify_payment_signature(
            request.razorpay_order_id,
            request.razorpay_payment_id,
            request.razorpay_signature,
            self._key_secret,
        ):
            logger.warning(
                f"Invalid payment signature for order {order.id}, "
                f"payment {request.razorpay_payment_id}"
            )
            raise SignatureInvalid("Invalid payment signature")

        if self._already_settled(order, request.razorpay_payment_id):
            logger.info(f"Duplicate verification for order {order.id}")
            return VerificationResult(
                message="Payment already verified", already_processed=True
            )

        if order.status != OrderStatusEnum.PENDING:
            raise OrderAlreadyProcessed(
                f"Order already processed. Current status: {order.status}"
            )

        payment = await self._razorpay_client.fetch_payment(request.razorpay_payment_id)
        try:
            reconcile(
                payment_status=payment.get("status"),
                captured_amount=payment.get("amount"),
                order_total=order.total,
                exponent=self._currency_exponent,
            )
        except AmountMismatch:
            logger.error(
                f"Payment amount mismatch for order {order.id}: "
                f"paid {payment.get('amount')}, order total {order.total}"
            )
            raise

        return await self._settle(order.id, request.razorpay_payment_id)

    async def _load_order(self, order_id: str) -> Order:
        try:
            async with self._unit_of_work() as uow:
                order = await uow.orders.find(order_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load order {order_id}: {e}", exc_info=True)
            raise PersistenceError("Failed to load order") from e

        if order is None:
            raise OrderNotFound()
        return order

    async def _settle(self, order_id: str, payment_id: str) -> VerificationResult:
        try:
            async with self._unit_of_work() as uow:
                applied = await uow.orders.transition(
                    order_id=order_id,
                    expected=OrderStatusEnum.PENDING,
                    target=OrderStatusEnum.PAID,
                    payment_id=payment_id,
                )
                if not applied:
                    current = await uow.orders.get_by_id(order_id)
                    if self._already_settled(current, payment_id):
                        logger.info(f"Order {order_id} was settled concurrently")
                        return VerificationResult(
                            message="Payment already verified", already_processed=True
                        )
                    raise OrderAlreadyProcessed(
                        f"Order already processed. Current status: {current.status}"
                    )

                await uow.outbox.create(
                    OutboxRepository.CreateDTO(
                        event_type=EventTypeEnum.ORDER_PAID,
                        payload={
                            "order_id": order_id,
                            "payment_id": payment_id,
                            "source": "verification",
                        },
                    )
                )
                await uow.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to settle order {order_id}: {e}", exc_info=True)
            raise PersistenceError(
                "Payment verified but failed to update order status"
            ) from e

        logger.info(f"Payment verified, order {order_id} settled with {payment_id}")
        return VerificationResult(message="Payment verified successfully")

    @staticmethod
    def _already_settled(order: Order, payment_id: str) -> bool:
        return order.status == OrderStatusEnum.PAID and order.payment_id == payment_id
