"""
Service container.
Builds repositories, providers and domain services once at application
start-up and releases their connections at shutdown.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

import redis
from fastapi import Request

from api.config.settings import Settings, get_settings
from src.cache.cache_service import CacheService
from src.governance.audit_trail import AuditTrail
from src.governance.policy_engine import MarketplacePolicy
from src.notifications.dispatcher import NotificationDispatcher
from src.notifications.providers import SmtpEmailProvider, ExpoPushProvider, TwilioSmsProvider
from src.notifications.queue import EmailQueue, QueuedEmailProvider
from src.notifications.templates import TemplateRegistry
from src.orders.gateway import PaymentGateway
from src.orders.service import OrderService
from src.persistence.interfaces import (
    TradeRepository,
    OrderRepository,
    RatingRepository,
    NotificationRepository,
    AuditLogRepository,
    UserDirectory,
    ProductCatalog,
)
from src.persistence.memory import (
    InMemoryTradeRepository,
    InMemoryOrderRepository,
    InMemoryRatingRepository,
    InMemoryNotificationRepository,
    InMemoryAuditLogRepository,
    InMemoryUserDirectory,
    InMemoryProductCatalog,
)
from src.ratings.service import RatingService
from src.trading.service import TradeService

logger = logging.getLogger(__name__)


class ServiceContainer:
    """Explicitly wired services shared by all requests of one app instance."""

    def __init__(
        self,
        trades: TradeRepository,
        orders: OrderRepository,
        ratings: RatingRepository,
        notifications: NotificationRepository,
        audit_logs: AuditLogRepository,
        users: UserDirectory,
        catalog: ProductCatalog,
        policy: Optional[MarketplacePolicy] = None,
        templates: Optional[TemplateRegistry] = None,
        cache: Optional[CacheService] = None,
        email_provider=None,
        push_provider: Optional[ExpoPushProvider] = None,
        sms_provider: Optional[TwilioSmsProvider] = None,
        gateway: Optional[PaymentGateway] = None,
        webhook_secret: Optional[str] = None,
        redis_client: Optional["redis.Redis"] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.trades = trades
        self.orders = orders
        self.ratings = ratings
        self.notifications = notifications
        self.audit_logs = audit_logs
        self.users = users
        self.catalog = catalog
        self.redis_client = redis_client

        self.policy = policy or MarketplacePolicy()
        self.templates = templates or TemplateRegistry()
        self.cache = cache

        self.dispatcher = NotificationDispatcher(
            repository=notifications,
            users=users,
            templates=self.templates,
            email_provider=email_provider,
            push_provider=push_provider,
            sms_provider=sms_provider,
            policy=self.policy,
            clock=clock,
        )
        self.audit = AuditTrail(audit_logs, policy=self.policy, clock=clock)

        self.trade_service = TradeService(
            trades, catalog, users,
            dispatcher=self.dispatcher, audit=self.audit, policy=self.policy, clock=clock,
        )
        self.rating_service = RatingService(
            ratings, orders, trades, users,
            cache=cache, catalog=catalog, dispatcher=self.dispatcher, policy=self.policy, clock=clock,
        )
        self.order_service = OrderService(
            orders, catalog,
            dispatcher=self.dispatcher, gateway=gateway, policy=self.policy,
            webhook_secret=webhook_secret, clock=clock,
        )

    @classmethod
    def in_memory(cls, **overrides) -> "ServiceContainer":
        """Container over in-memory repositories, for local runs and tests."""
        components = dict(
            trades=InMemoryTradeRepository(),
            orders=InMemoryOrderRepository(),
            ratings=InMemoryRatingRepository(),
            notifications=InMemoryNotificationRepository(),
            audit_logs=InMemoryAuditLogRepository(),
            users=InMemoryUserDirectory(),
            catalog=InMemoryProductCatalog(),
        )
        components.update(overrides)
        return cls(**components)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ServiceContainer":
        """
        Build the container selected by PERSISTENCE_BACKEND.

        Raises:
            ValueError: If the backend name is unknown
        """
        settings = settings or get_settings()

        if settings.persistence_backend == "supabase":
            from api.daos import (
                TradeDAO, OrderDAO, RatingDAO, NotificationDAO, AuditLogDAO, UserDAO, ProductDAO,
            )
            repositories = dict(
                trades=TradeDAO(),
                orders=OrderDAO(),
                ratings=RatingDAO(),
                notifications=NotificationDAO(),
                audit_logs=AuditLogDAO(),
                users=UserDAO(),
                catalog=ProductDAO(),
            )
        elif settings.persistence_backend == "memory":
            repositories = dict(
                trades=InMemoryTradeRepository(),
                orders=InMemoryOrderRepository(),
                ratings=InMemoryRatingRepository(),
                notifications=InMemoryNotificationRepository(),
                audit_logs=InMemoryAuditLogRepository(),
                users=InMemoryUserDirectory(),
                catalog=InMemoryProductCatalog(),
            )
        else:
            raise ValueError(f"Unknown PERSISTENCE_BACKEND: {settings.persistence_backend}")

        cache = CacheService(redis_url=settings.redis_url or "")

        email_provider = SmtpEmailProvider.from_env()
        if settings.email_queue_enabled and cache.enabled:
            email_provider = QueuedEmailProvider(EmailQueue(cache.client))
            logger.info("Emails will be sent through the Redis job queue")

        logger.info(f"Service container ready (persistence={settings.persistence_backend})")
        return cls(
            **repositories,
            policy=MarketplacePolicy(settings.marketplace_rules_path),
            templates=TemplateRegistry(settings.notification_templates_path),
            cache=cache,
            email_provider=email_provider,
            push_provider=ExpoPushProvider.from_env(),
            sms_provider=TwilioSmsProvider.from_env(),
            webhook_secret=settings.payment_webhook_secret,
            redis_client=cache.client,
        )

    def close(self) -> None:
        """Release external connections."""
        if self.redis_client is not None:
            try:
                self.redis_client.close()
            except redis.RedisError as e:
                logger.warning(f"Error closing Redis connection: {str(e)}")
            self.redis_client = None


def get_container(request: Request) -> ServiceContainer:
    """FastAPI dependency returning the container attached at start-up."""
    return request.app.state.container
