from dependency_injector import containers, providers

from settlement.application.create_order import CreateOrderUseCase
from settlement.application.create_payment_order import CreatePaymentOrderUseCase
from settlement.application.fulfill_order import FulfillOrderUseCase
from settlement.application.handle_webhook import HandleWebhookUseCase
from settlement.application.process_outbox_events import ProcessOutboxEventsUseCase
from settlement.application.quote_shipping import QuoteShippingUseCase
from settlement.application.track_shipment import TrackShipmentUseCase
from settlement.application.verify_payment import VerifyPaymentUseCase
from settlement.infrastructure.container import InfrastructureContainer


class ApplicationContainer(containers.DeclarativeContainer):
    config = providers.Configuration()
    infrastructure_container = providers.Container[InfrastructureContainer](
        InfrastructureContainer,
        config=config.infrastructure,
    )

    create_order_use_case = providers.Singleton[CreateOrderUseCase](
        CreateOrderUseCase, unit_of_work=infrastructure_container.unit_of_work
    )
    create_payment_order_use_case = providers.Singleton[CreatePaymentOrderUseCase](
        CreatePaymentOrderUseCase,
        razorpay_client=infrastructure_container.razorpay_client,
    )
    handle_webhook_use_case = providers.Singleton[HandleWebhookUseCase](
        HandleWebhookUseCase,
        unit_of_work=infrastructure_container.unit_of_work,
        receipt_prefix=config.settlement.receipt_prefix,
    )
    verify_payment_use_case = providers.Singleton[VerifyPaymentUseCase](
        VerifyPaymentUseCase,
        unit_of_work=infrastructure_container.unit_of_work,
        razorpay_client=infrastructure_container.razorpay_client,
        key_secret=config.infrastructure.razorpay.key_secret,
        currency_exponent=config.settlement.currency_exponent,
    )
    fulfill_order_use_case = providers.Singleton[FulfillOrderUseCase](
        FulfillOrderUseCase,
        unit_of_work=infrastructure_container.unit_of_work,
        shiprocket_client=infrastructure_container.shiprocket_client,
        default_pickup_pincode=config.settlement.default_pickup_pincode,
    )
    process_outbox_events_use_case = providers.Singleton[ProcessOutboxEventsUseCase](
        ProcessOutboxEventsUseCase,
        unit_of_work=infrastructure_container.unit_of_work,
        kafka_producer=infrastructure_container.kafka_producer,
        batch_size=config.settlement.outbox_batch_size,
    )
    quote_shipping_use_case = providers.Singleton[QuoteShippingUseCase](
        QuoteShippingUseCase,
        shiprocket_client=infrastructure_container.shiprocket_client,
    )
    track_shipment_use_case = providers.Singleton[TrackShipmentUseCase](
        TrackShipmentUseCase,
        unit_of_work=infrastructure_container.unit_of_work,
        shiprocket_client=infrastructure_container.shiprocket_client,
    )
