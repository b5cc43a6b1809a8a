from typing import Callable

from dependency_injector import containers, providers
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from settlement.infrastructure.kafka_producer import KafkaProducer
from settlement.infrastructure.rate_limiter import FixedWindowRateLimiter
from settlement.infrastructure.razorpay_client import RazorpayClient
from settlement.infrastructure.shiprocket_client import ShiprocketClient
from settlement.infrastructure.unit_of_work import UnitOfWork


class InfrastructureContainer(containers.DeclarativeContainer):
    config = providers.Configuration()
    async_engine = providers.Singleton[AsyncEngine](
        create_async_engine,
        config.db.dsn,
        pool_size=config.db.pool_size,
        pool_recycle=config.db.pool_recycle,
        future=True,
    )
    session_factory: Callable[..., AsyncSession] = providers.Factory(
        sessionmaker, async_engine, expire_on_commit=False, class_=AsyncSession
    )
    unit_of_work = providers.Singleton[UnitOfWork](
        UnitOfWork, session_factory=session_factory
    )
    kafka_producer = providers.Singleton[KafkaProducer](
        KafkaProducer,
        bootstrap_servers=config.kafka.bootstrap_servers,
        topic=config.kafka.topic,
    )
    razorpay_client = providers.Singleton[RazorpayClient](
        RazorpayClient,
        base_url=config.razorpay.base_url,
        key_id=config.razorpay.key_id,
        key_secret=config.razorpay.key_secret,
        timeout=config.razorpay.timeout,
    )
    shiprocket_client = providers.Singleton[ShiprocketClient](
        ShiprocketClient,
        base_url=config.shiprocket.base_url,
        email=config.shiprocket.email,
        password=config.shiprocket.password,
        timeout=config.shiprocket.timeout,
    )
    rate_limiter = providers.Singleton[FixedWindowRateLimiter](
        FixedWindowRateLimiter,
        max_requests=config.rate_limit.max_requests,
        window_seconds=config.rate_limit.window_seconds,
    )
