from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

import src.domain  # noqa: F401  (registers all tables on SQLModel.metadata)
from config import ApplicationConfig
from src.adapter.services.webhook_verifier import StripeWebhookVerifier
from src.app.services.notification_service import NotificationService, UnresolvedEventAlert
from src.app.services.payment_gateway import (
    CheckoutSessionCreated,
    CheckoutSessionRequest,
    PaymentGateway,
    PaymentGatewayError,
)
from src.depends import (
    get_notification_service,
    get_payment_gateway,
    get_pricing_catalog,
    get_session,
    get_webhook_verifier,
)
from src.domain.catalog import PricingCatalog
from src.domain.stripe_event import StripeCheckoutSessionObject, StripeSubscriptionObject
from tests.fixtures import stripe_events as se


class IntegrationConfig(ApplicationConfig):
    API_PREFIX = "/api"
    ENABLE_SENTRY = 0
    ENABLE_LOGGING_MIDDLEWARE = False


class FakePaymentGateway(PaymentGateway):
    """In-memory Stripe: subscriptions, customers and checkout sessions keyed by id"""

    def __init__(self):
        self.subscriptions: Dict[str, Dict[str, Any]] = {}
        self.customer_emails: Dict[str, str] = {}
        self.checkout_sessions: Dict[str, Dict[str, Any]] = {}
        self.checkout_requests: List[CheckoutSessionRequest] = []
        self.fail = False

    def _check(self):
        if self.fail:
            raise PaymentGatewayError("Stripe subscription retrieve failed: connection reset")

    async def get_customer_email(self, customer_id: str) -> Optional[str]:
        self._check()
        return self.customer_emails.get(customer_id)

    async def get_subscription(self, subscription_id: str) -> Optional[StripeSubscriptionObject]:
        self._check()
        data = self.subscriptions.get(subscription_id)
        return StripeSubscriptionObject.model_validate(data) if data else None

    async def get_checkout_session(self, session_id: str) -> Optional[StripeCheckoutSessionObject]:
        self._check()
        data = self.checkout_sessions.get(session_id)
        return StripeCheckoutSessionObject.model_validate(data) if data else None

    async def create_checkout_session(self, request: CheckoutSessionRequest) -> CheckoutSessionCreated:
        self._check()
        self.checkout_requests.append(request)
        session_id = f"cs_test_{len(self.checkout_requests)}"
        return CheckoutSessionCreated(session_id=session_id, url=f"https://checkout.stripe.com/c/pay/{session_id}")


class RecordingNotificationService(NotificationService):
    def __init__(self):
        self.alerts: List[UnresolvedEventAlert] = []

    async def send_unresolved_event_alert(self, alert: UnresolvedEventAlert) -> bool:
        self.alerts.append(alert)
        return True


@pytest_asyncio.fixture(scope="function")
async def engine():
    """Fresh in-memory SQLite database per test"""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine):
    """Create a new database session for each test"""
    Session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    async with Session() as session:
        yield session


@pytest.fixture
def payment_gateway():
    return FakePaymentGateway()


@pytest.fixture
def notifier():
    return RecordingNotificationService()


@pytest.fixture
def catalog():
    return PricingCatalog(
        {
            "credit-5": {"name": "Starter Pack", "credits": 5, "price_id": "price_credit_5"},
            "credit-15": {"name": "Creator Pack", "credits": 15, "bonus": 2, "price_id": "price_credit_15"},
            "credit-30": {"name": "Pro Pack", "credits": 30, "bonus": 5},
        },
        {
            "basic": {"name": "Basic", "images_per_month": 100, "price_id": "price_basic"},
            "premium": {"name": "Premium", "images_per_month": 1000, "price_id": "price_premium"},
        },
    )


@pytest.fixture
def app(db_session, payment_gateway, notifier, catalog):
    """Application with database session and Stripe overrides"""
    from src.api.app import create_app

    app = create_app(IntegrationConfig)

    # Override the session dependency to use test session
    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_payment_gateway] = lambda: payment_gateway
    app.dependency_overrides[get_webhook_verifier] = lambda: StripeWebhookVerifier(se.WEBHOOK_SECRET)
    app.dependency_overrides[get_notification_service] = lambda: notifier
    app.dependency_overrides[get_pricing_catalog] = lambda: catalog
    return app


@pytest_asyncio.fixture
async def client(app):
    # Use ASGITransport for httpx AsyncClient
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
