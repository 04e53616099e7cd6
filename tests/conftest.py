"""
Shared fixtures: a fixed clock, seeded users and products, and services
wired over the in-memory repositories.
"""

import pytest

from src.governance.audit_trail import AuditTrail
from src.governance.policy_engine import MarketplacePolicy
from src.models.catalog import Product, UserContact, UserRole
from src.notifications.dispatcher import NotificationDispatcher
from src.notifications.templates import TemplateRegistry
from src.orders.service import OrderService
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

from tests.factories import ALICE, BOB, CAROL, ADMIN, FakeClock, RecordingEmailProvider


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def policy():
    return MarketplacePolicy()


@pytest.fixture
def templates():
    return TemplateRegistry()


@pytest.fixture
def users():
    return InMemoryUserDirectory([
        UserContact(id=ALICE, email="alice@example.com", phone="+905551112233", display_name="Alice"),
        UserContact(id=BOB, email="bob@example.com", display_name="Bob"),
        UserContact(id=CAROL, email="carol@example.com"),
        UserContact(id=ADMIN, email="admin@tarodan.com", role=UserRole.ADMIN),
    ])


@pytest.fixture
def catalog():
    return InMemoryProductCatalog([
        Product(id="p1", seller_id=ALICE, title="Hot Wheels '67 Camaro", price=450.0),
        Product(id="p2", seller_id=BOB, title="Matchbox Land Rover", price=300.0),
        Product(id="p3", seller_id=BOB, title="Tomica Skyline GT-R", price=200.0),
        Product(id="p4", seller_id=CAROL, title="Maisto Ferrari F40", price=900.0),
        Product(id="p5", seller_id=ALICE, title="Minichamps Porsche 911", price=1200.0,
                is_trade_enabled=False),
    ])


@pytest.fixture
def trade_repo():
    return InMemoryTradeRepository()


@pytest.fixture
def order_repo():
    return InMemoryOrderRepository()


@pytest.fixture
def rating_repo():
    return InMemoryRatingRepository()


@pytest.fixture
def notification_repo():
    return InMemoryNotificationRepository()


@pytest.fixture
def audit_repo():
    return InMemoryAuditLogRepository()


@pytest.fixture
def email_provider():
    return RecordingEmailProvider()


@pytest.fixture
def dispatcher(notification_repo, users, templates, email_provider, policy, clock):
    return NotificationDispatcher(
        repository=notification_repo,
        users=users,
        templates=templates,
        email_provider=email_provider,
        policy=policy,
        clock=clock,
    )


@pytest.fixture
def audit(audit_repo, policy, clock):
    return AuditTrail(audit_repo, policy=policy, clock=clock)


@pytest.fixture
def trade_service(trade_repo, catalog, users, dispatcher, audit, policy, clock):
    return TradeService(trade_repo, catalog, users, dispatcher=dispatcher, audit=audit,
                        policy=policy, clock=clock)


@pytest.fixture
def order_service(order_repo, catalog, dispatcher, policy, clock):
    return OrderService(order_repo, catalog, dispatcher=dispatcher, policy=policy,
                        webhook_secret="whsec_test", clock=clock)


@pytest.fixture
def rating_service(rating_repo, order_repo, trade_repo, users, dispatcher, policy, clock):
    return RatingService(rating_repo, order_repo, trade_repo, users,
                         dispatcher=dispatcher, policy=policy, clock=clock)
