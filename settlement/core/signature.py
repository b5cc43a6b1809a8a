"""
Razorpay signature schemes.

Webhook callbacks are signed with base64(HMAC-SHA256(secret, raw_body)).
Checkout verification calls are signed with
hex(HMAC-SHA256(secret, "{razorpay_order_id}|{razorpay_payment_id}")).
Both checks fail closed.
"""

import base64
import hashlib
import hmac


def _digest(secret: str, message: bytes) -> bytes:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).digest()


def sign_webhook_body(body: bytes, secret: str) -> str:
    return base64.b64encode(_digest(secret, body)).decode("ascii")


def verify_webhook_signature(body: bytes, signature: str | None, secret: str | None) -> bool:
    """Check the X-Razorpay-Signature header against the raw request body."""
    if not secret or not signature:
        return False

    expected = sign_webhook_body(body, secret)
    try:
        received = signature.encode("ascii")
    except UnicodeEncodeError:
        return False

    return hmac.compare_digest(expected.encode("ascii"), received)


def sign_payment(razorpay_order_id: str, razorpay_payment_id: str, secret: str) -> str:
    message = f"{razorpay_order_id}|{razorpay_payment_id}".encode("utf-8")
    return _digest(secret, message).hex()


def verify_payment_signature(
    razorpay_order_id: str,
    razorpay_payment_id: str,
    signature: str | None,
    secret: str | None,
) -> bool:
    if not secret or not signature:
        return False

    expected = sign_payment(razorpay_order_id, razorpay_payment_id, secret)
    try:
        received = signature.encode("ascii")
    except UnicodeEncodeError:
        return False

    return hmac.compare_digest(expected.encode("ascii"), received)
