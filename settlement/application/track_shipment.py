import logging

from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError

from settlement.infrastructure.shiprocket_client import ShiprocketClient, TrackingStatus
from settlement.infrastructure.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class TrackingDTO(BaseModel):
    tracking_number: str = Field(min_length=1)
    order_id: str | None = None


class TrackShipmentUseCase:
    def __init__(self, unit_of_work: UnitOfWork, shiprocket_client: ShiprocketClient):
        self._unit_of_work = unit_of_work
        self._shiprocket_client = shiprocket_client

    async def __call__(self, request: TrackingDTO) -> TrackingStatus:
        tracking = await self._shiprocket_client.track(request.tracking_number)

        if request.order_id:
            try:
                async with self._unit_of_work() as uow:
                    await uow.orders.set_shipment_status(
                        order_id=request.order_id,
                        status=tracking.current_status,
                        description=tracking.current_status_description,
                    )
                    await uow.commit()
            except SQLAlchemyError as e:
                logger.error(
                    f"Error updating shipment status for order {request.order_id}: {e}",
                    exc_info=True,
                )

        return tracking
