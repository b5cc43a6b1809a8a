from http import HTTPStatus


class SettlementError(Exception):
    status_code: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class SignatureInvalid(SettlementError):
    status_code = HTTPStatus.BAD_REQUEST
    default_message = "Invalid signature"


class MalformedPayload(SettlementError):
    status_code = HTTPStatus.BAD_REQUEST
    default_message = "Invalid JSON payload"


class MissingOrderId(MalformedPayload):
    default_message = "Could not extract order information"


class MissingPaymentId(MalformedPayload):
    default_message = "Could not extract payment information"


class OrderNotFound(SettlementError):
    status_code = HTTPStatus.NOT_FOUND
    default_message = "Order not found"


class OrderAlreadyProcessed(SettlementError):
    status_code = HTTPStatus.BAD_REQUEST
    default_message = "Order already processed"


class AmountMismatch(SettlementError):
    status_code = HTTPStatus.BAD_REQUEST
    default_message = "Payment amount does not match order total"


class PaymentNotCaptured(SettlementError):
    status_code = HTTPStatus.BAD_REQUEST
    default_message = "Payment not captured"


class RateLimited(SettlementError):
    status_code = HTTPStatus.TOO_MANY_REQUESTS
    default_message = "Rate limit exceeded"


class DownstreamProviderError(SettlementError):
    status_code = HTTPStatus.BAD_GATEWAY
    default_message = "Payment or shipping provider request failed"


class PersistenceError(SettlementError):
    status_code = HTTPStatus.INTERNAL_SERVER_ERROR
    default_message = "Failed to update order status"
