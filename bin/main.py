import asyncio
import logging

import uvicorn

from settlement.presentation.app import build_api
from settlement.presentation.container import PresentationContainer
from settlement.presentation.fulfillment_worker import FulfillmentWorker
from settlement.presentation.outbox_worker import OutboxWorker


async def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    presentation_container = PresentationContainer()
    presentation_container.config.from_yaml("settlement/config.yaml", required=True)

    app = build_api(presentation_container.application)

    outbox_worker: OutboxWorker = presentation_container.outbox_worker()
    fulfillment_worker: FulfillmentWorker = presentation_container.fulfillment_worker()

    api_task = asyncio.create_task(
        uvicorn.Server(
            uvicorn.Config(app, host="0.0.0.0", port=8000, log_level="info")
        ).serve()
    )

    outbox_task = asyncio.create_task(outbox_worker.run())

    fulfillment_task = asyncio.create_task(fulfillment_worker.run())

    await asyncio.gather(api_task, outbox_task, fulfillment_task)


if __name__ == "__main__":
    asyncio.run(main())
