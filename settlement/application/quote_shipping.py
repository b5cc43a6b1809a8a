from datetime import datetime, timedelta, timezone
from decimal import Decimal

from settlement.infrastructure.shiprocket_client import (
    CourierOption,
    ServiceabilityRequest,
    ShiprocketClient,
)


class QuoteShippingUseCase:
    FALLBACK_DELIVERY_DAYS = 5

    def __init__(self, shiprocket_client: ShiprocketClient):
        self._shiprocket_client = shiprocket_client

    async def __call__(self, request: ServiceabilityRequest) -> list[CourierOption]:
        options = await self._shiprocket_client.get_courier_options(request)
        if options:
            return options

        # No courier serves the route; offer a flat-rate standard delivery
        eta = datetime.now(timezone.utc) + timedelta(days=self.FALLBACK_DELIVERY_DAYS)
        return [
            CourierOption(
                courier_id=1,
                courier_name="Standard Delivery",
                rate=Decimal("50"),
                estimated_delivery_days=str(self.FALLBACK_DELIVERY_DAYS),
                estimated_delivery_date=eta.isoformat(),
                cod_available=True,
                pickup_pincode=request.pickup_pincode,
                delivery_pincode=request.delivery_pincode,
            )
        ]
