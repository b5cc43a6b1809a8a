from dependency_injector import containers, providers

from settlement.application.container import ApplicationContainer
from settlement.presentation.fulfillment_worker import FulfillmentWorker
from settlement.presentation.outbox_worker import OutboxWorker


class PresentationContainer(containers.DeclarativeContainer):
    config = providers.Configuration()
    application = providers.Container[ApplicationContainer](
        ApplicationContainer, config=config
    )

    outbox_worker = providers.Singleton[OutboxWorker](
        OutboxWorker, use_case=application.process_outbox_events_use_case
    )
    fulfillment_worker = providers.Singleton[FulfillmentWorker](
        FulfillmentWorker,
        fulfill_order_use_case=application.fulfill_order_use_case,
        bootstrap_servers=config.infrastructure.kafka.bootstrap_servers,
        topic=config.infrastructure.kafka.topic,
        group_id=config.infrastructure.kafka.group_id,
    )
