import uuid
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from settlement.application.container import ApplicationContainer
from settlement.core.models import Order, OrderItem, OrderStatusEnum, Product
from settlement.infrastructure.db_schema import metadata
from settlement.infrastructure.repositories import (
    OrderRepository,
    OutboxRepository,
    ProductRepository,
)
from settlement.presentation.app import build_api

WEBHOOK_SECRET = "test_webhook_secret"
KEY_SECRET = "test_key_secret"


@pytest.fixture()
async def container(tmp_path) -> ApplicationContainer:
    container = ApplicationContainer()
    container.config.from_yaml("settlement/config.yaml", required=True)
    container.config.infrastructure.db.dsn.from_value(
        f"sqlite+aiosqlite:///{tmp_path}/settlement.db"
    )
    container.config.infrastructure.razorpay.key_id.from_value("rzp_test_key")
    container.config.infrastructure.razorpay.key_secret.from_value(KEY_SECRET)
    container.config.infrastructure.razorpay.webhook_secret.from_value(WEBHOOK_SECRET)
    return container


@pytest.fixture()
async def session_factory(
    container: ApplicationContainer,
) -> async_sessionmaker[AsyncSession]:
    return container.infrastructure_container.session_factory()


@pytest_asyncio.fixture()
async def session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncSession:
    async with session_factory() as session:
        yield session


@pytest.fixture()
def fast_api_app(container: ApplicationContainer):
    return build_api(container)


@pytest_asyncio.fixture(autouse=True)
async def setup_database(container: ApplicationContainer):
    engine = container.infrastructure_container.async_engine()
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    yield

    async with engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture()
async def test_async_client(fast_api_app) -> AsyncClient:
    async with AsyncClient(
        transport=ASGITransport(app=fast_api_app),
        base_url="http://test.com",
    ) as client:
        client.app = fast_api_app
        yield client


@pytest.fixture
def item_factory():
    def _create_item(**kwargs):
        defaults = {
            "product_id": str(uuid.uuid4()),
            "quantity": 1,
            "price": Decimal("10.50"),
        }
        defaults.update(kwargs)
        return OrderItem(**defaults)

    return _create_item


@pytest.fixture
def order_factory(session: AsyncSession):
    async def _create_order(**kwargs) -> Order:
        defaults = {
            "user_id": str(uuid.uuid4()),
            "items": [],
            "total": Decimal("499.00"),
            "status": OrderStatusEnum.PENDING,
        }
        defaults.update(kwargs)
        order = await OrderRepository(session).create(
            OrderRepository.CreateDTO(**defaults)
        )
        await session.commit()
        return order

    return _create_order


@pytest.fixture
def product_factory(session: AsyncSession):
    async def _create_product(**kwargs) -> Product:
        defaults = {"name": "Test product", "inventory": 10}
        defaults.update(kwargs)
        product = await ProductRepository(session).create(
            ProductRepository.CreateDTO(**defaults)
        )
        await session.commit()
        return product

    return _create_product


@pytest.fixture
async def order_repo(session: AsyncSession) -> OrderRepository:
    return OrderRepository(session)


@pytest.fixture
async def product_repo(session: AsyncSession) -> ProductRepository:
    return ProductRepository(session)


@pytest.fixture
async def outbox_repo(session: AsyncSession) -> OutboxRepository:
    return OutboxRepository(session)
