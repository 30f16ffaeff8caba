from functools import lru_cache
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession
from config import ApplicationConfig
from src.adapter.services.notification_service import create_notification_service
from src.adapter.services.stripe_gateway import StripePaymentGateway
from src.adapter.services.webhook_verifier import StripeWebhookVerifier
from src.app.services.notification_service import NotificationService
from src.app.services.payment_gateway import PaymentGateway
from src.app.services.webhook_verifier import WebhookVerifier
from src.domain.catalog import PricingCatalog

engine = create_async_engine(ApplicationConfig.DB_URI, echo=False, future=True)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)


async def get_session() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session


# Process-wide services, built on first use; tests swap them via dependency_overrides


@lru_cache
def get_pricing_catalog() -> PricingCatalog:
    return PricingCatalog.from_config(ApplicationConfig)


@lru_cache
def get_payment_gateway() -> PaymentGateway:
    return StripePaymentGateway(
        api_key=ApplicationConfig.STRIPE_SECRET_KEY,
        max_attempts=ApplicationConfig.STRIPE_MAX_ATTEMPTS,
        backoff_seconds=ApplicationConfig.STRIPE_RETRY_BACKOFF_SECONDS,
    )


@lru_cache
def get_webhook_verifier() -> WebhookVerifier:
    return StripeWebhookVerifier(
        secret=ApplicationConfig.STRIPE_WEBHOOK_SECRET,
        tolerance=ApplicationConfig.STRIPE_WEBHOOK_TOLERANCE,
    )


@lru_cache
def get_notification_service() -> NotificationService:
    return create_notification_service(
        ApplicationConfig.ALERT_WEBHOOK_URL, timeout=ApplicationConfig.ALERT_WEBHOOK_TIMEOUT_SECONDS
    )
