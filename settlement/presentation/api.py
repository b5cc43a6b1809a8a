import json
import logging
from http import HTTPStatus

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse, Response

from settlement.application.container import ApplicationContainer
from settlement.application.create_order import CreateOrderUseCase, OrderDTO
from settlement.application.create_payment_order import (
    CreatePaymentOrderUseCase,
    PaymentOrder,
    PaymentOrderDTO,
)
from settlement.application.handle_webhook import HandleWebhookUseCase
from settlement.application.quote_shipping import QuoteShippingUseCase
from settlement.application.track_shipment import TrackingDTO, TrackShipmentUseCase
from settlement.application.verify_payment import VerifyPaymentDTO, VerifyPaymentUseCase
from settlement.core.errors import (
    MalformedPayload,
    OrderNotFound,
    RateLimited,
    SettlementError,
    SignatureInvalid,
)
from settlement.core.models import Order
from settlement.core.signature import verify_webhook_signature
from settlement.infrastructure.rate_limiter import FixedWindowRateLimiter
from settlement.infrastructure.shiprocket_client import ServiceabilityRequest
from settlement.infrastructure.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

router = APIRouter()


class OrderCreateRequest(OrderDTO):
    pass


class OrderResponseModel(Order):
    pass


class VerifyPaymentRequest(VerifyPaymentDTO):
    pass


def error_response(error: SettlementError) -> JSONResponse:
    return JSONResponse(
        content={"success": False, "message": error.message},
        status_code=error.status_code,
    )


def client_address(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    if request.client and request.client.host:
        return request.client.host

    return "unknown"


@router.post("/webhooks/razorpay", status_code=HTTPStatus.OK)
@inject
async def razorpay_webhook(
    request: Request,
    x_razorpay_signature: str | None = Header(default=None),
    handle_webhook_use_case: HandleWebhookUseCase = Depends(
        Provide[ApplicationContainer.handle_webhook_use_case]
    ),
    rate_limiter: FixedWindowRateLimiter = Depends(
        Provide[ApplicationContainer.infrastructure_container.rate_limiter]
    ),
    webhook_secret: str | None = Depends(
        Provide[ApplicationContainer.config.infrastructure.razorpay.webhook_secret]
    ),
):
    address = client_address(request)
    if not rate_limiter.allow(address):
        logger.warning(f"Rate limit exceeded for {address}")
        return error_response(RateLimited())

    # The signature covers the exact bytes sent, so verify before parsing
    body = await request.body()
    if not verify_webhook_signature(body, x_razorpay_signature, webhook_secret):
        logger.warning(
            f"Invalid webhook signature from {address}: "
            f"received {(x_razorpay_signature or '')[:10]}..."
        )
        return error_response(SignatureInvalid())

    try:
        event = json.loads(body)
    except (ValueError, RecursionError) as e:
        logger.error(f"Failed to parse webhook payload from {address}: {e}")
        return error_response(MalformedPayload())

    event_type = event.get("event") if isinstance(event, dict) else None
    logger.info(f"Processing webhook event {event_type} from {address}")

    try:
        result = await handle_webhook_use_case(event)
    except SettlementError as e:
        logger.warning(f"Webhook {event_type} rejected: {e.message}")
        return error_response(e)
    except Exception:
        logger.exception(f"Webhook processing error for {event_type} from {address}")
        return error_response(SettlementError())

    return {"success": True, "message": result.message}


@router.post("/payments/razorpay/verify", status_code=HTTPStatus.OK)
@inject
async def verify_razorpay_payment(
    request: VerifyPaymentRequest,
    verify_payment_use_case: VerifyPaymentUseCase = Depends(
        Provide[ApplicationContainer.verify_payment_use_case]
    ),
):
    logger.info(
        f"Verifying payment {request.razorpay_payment_id} for order {request.order_id}"
    )
    try:
        result = await verify_payment_use_case(request)
    except SettlementError as e:
        return error_response(e)
    except Exception:
        logger.exception(f"Error verifying payment for order {request.order_id}")
        return error_response(SettlementError())

    return {"success": True, "message": result.message}


@router.post("/payments/razorpay/orders", response_model=PaymentOrder)
@inject
async def create_razorpay_order(
    request: PaymentOrderDTO,
    create_payment_order_use_case: CreatePaymentOrderUseCase = Depends(
        Provide[ApplicationContainer.create_payment_order_use_case]
    ),
):
    try:
        return await create_payment_order_use_case(request)
    except SettlementError as e:
        return error_response(e)
    except Exception:
        logger.exception(f"Error creating Razorpay order for receipt {request.receipt}")
        return error_response(SettlementError())


@router.post(
    "/orders",
    status_code=HTTPStatus.CREATED,
    response_model=OrderResponseModel,
)
@inject
async def create_order(
    order: OrderCreateRequest,
    create_order_use_case: CreateOrderUseCase = Depends(
        Provide[ApplicationContainer.create_order_use_case]
    ),
):
    try:
        return await create_order_use_case(order=order)
    except Exception:
        logger.exception("Error creating order")
        return error_response(SettlementError("Internal server error while creating order"))


@router.get(
    "/orders/{order_id}",
    status_code=HTTPStatus.OK,
    response_model=OrderResponseModel,
)
@inject
async def get_order(
    order_id: str,
    unit_of_work: UnitOfWork = Depends(
        Provide[ApplicationContainer.infrastructure_container.unit_of_work]
    ),
):
    try:
        async with unit_of_work() as uow:
            order = await uow.orders.find(order_id)
    except Exception:
        logger.exception(f"Error loading order {order_id}")
        return error_response(SettlementError())

    if order is None:
        return error_response(OrderNotFound(f"Order {order_id} not found"))
    return order


@router.post("/shipping/charges", status_code=HTTPStatus.OK)
@inject
async def get_shipping_charges(
    request: ServiceabilityRequest,
    quote_shipping_use_case: QuoteShippingUseCase = Depends(
        Provide[ApplicationContainer.quote_shipping_use_case]
    ),
):
    try:
        options = await quote_shipping_use_case(request)
    except SettlementError as e:
        return error_response(e)
    except Exception:
        logger.exception("Shipping calculation error")
        return error_response(SettlementError("Failed to calculate shipping charges"))

    return {
        "success": True,
        "message": "Shipping charges calculated successfully",
        "data": {
            "available_courier_companies": [
                option.model_dump(mode="json") for option in options
            ]
        },
    }


@router.post("/shipping/tracking", status_code=HTTPStatus.OK)
@inject
async def get_tracking_status(
    request: TrackingDTO,
    track_shipment_use_case: TrackShipmentUseCase = Depends(
        Provide[ApplicationContainer.track_shipment_use_case]
    ),
):
    try:
        tracking = await track_shipment_use_case(request)
    except SettlementError as e:
        return error_response(e)
    except Exception:
        logger.exception(f"Tracking status error for {request.tracking_number}")
        return error_response(SettlementError("Failed to get tracking status"))

    return {
        "success": True,
        "message": "Tracking status retrieved successfully",
        "data": tracking.model_dump(mode="json"),
    }


@router.options("/{path:path}", status_code=HTTPStatus.OK)
async def preflight(path: str):
    return Response(status_code=HTTPStatus.OK)
