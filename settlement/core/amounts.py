from decimal import ROUND_HALF_UP, Decimal

from settlement.core.errors import AmountMismatch, PaymentNotCaptured

CAPTURED = "captured"


def to_minor_units(amount: Decimal, exponent: int = 2) -> int:
    """499.00 -> 49900 for a two-decimal currency."""
    scaled = Decimal(amount) * (Decimal(10) ** exponent)
    return int(scaled.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def reconcile(
    payment_status: str | None,
    captured_amount: int | None,
    order_total: Decimal,
    exponent: int = 2,
) -> None:
    if payment_status != CAPTURED:
        raise PaymentNotCaptured(f"Payment not captured. Status: {payment_status}")

    expected = to_minor_units(order_total, exponent)
    if captured_amount != expected:
        raise AmountMismatch(
            f"Payment amount does not match order total "
            f"(paid {captured_amount}, expected {expected})"
        )
