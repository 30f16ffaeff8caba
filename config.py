import os
import yaml

ROOT_PATH = os.path.dirname(__file__)
CONFIG_FILE_PATH = os.path.join(ROOT_PATH, "env.yaml")

if os.path.exists(CONFIG_FILE_PATH):
    with open(CONFIG_FILE_PATH, "r") as r_file:
        data = yaml.safe_load(r_file) or dict()
else:
    data = dict()


DEFAULT_CREDIT_PACKAGES = {
    "credit-5": {"name": "Starter Pack", "credits": 5, "bonus": 0, "price_id": None},
    "credit-15": {"name": "Creator Pack", "credits": 15, "bonus": 2, "price_id": None},
    "credit-30": {"name": "Pro Pack", "credits": 30, "bonus": 5, "price_id": None},
}

DEFAULT_SUBSCRIPTION_PLANS = {
    "basic": {"name": "Basic", "images_per_month": 100, "price_id": None},
    "premium": {"name": "Premium", "images_per_month": 1000, "price_id": None},
    "enterprise": {"name": "Enterprise", "images_per_month": 10000, "price_id": None},
}


class ApplicationConfig:
    DB_URI = data.get("DB_URI", "sqlite+aiosqlite:///./test.db")
    API_PREFIX = data.get("API_PREFIX", "/api")
    API_PORT = data.get("API_PORT", 8000)
    API_HOST = data.get("API_HOST", "0.0.0.0")
    CORS_ORIGINS = data.get("CORS_ORIGINS", [])
    CORS_ALLOW_CREDENTIALS = data.get("CORS_ALLOW_CREDENTIALS", True)
    LOG_LEVEL = data.get("LOG_LEVEL", "INFO")
    ENABLE_LOGGING_MIDDLEWARE = bool(data.get("ENABLE_LOGGING_MIDDLEWARE", 1))
    ENABLE_SENTRY = data.get("ENABLE_SENTRY", 0)
    DSN_SENTRY = data.get("DSN_SENTRY", "")
    SENTRY_ENVIRONMENT = data.get("SENTRY_ENVIRONMENT", "dev")

    # Stripe
    STRIPE_SECRET_KEY = data.get("STRIPE_SECRET_KEY", os.environ.get("STRIPE_SECRET_KEY", ""))
    STRIPE_WEBHOOK_SECRET = data.get("STRIPE_WEBHOOK_SECRET", os.environ.get("STRIPE_WEBHOOK_SECRET", ""))
    STRIPE_WEBHOOK_TOLERANCE = data.get("STRIPE_WEBHOOK_TOLERANCE", 300)  # Seconds
    STRIPE_MAX_ATTEMPTS = data.get("STRIPE_MAX_ATTEMPTS", 2)  # One call + one retry
    STRIPE_RETRY_BACKOFF_SECONDS = data.get("STRIPE_RETRY_BACKOFF_SECONDS", 0.25)

    # Pricing catalog (package id -> credits, plan id -> Stripe price)
    CREDIT_PACKAGES = data.get("CREDIT_PACKAGES", DEFAULT_CREDIT_PACKAGES)
    SUBSCRIPTION_PLANS = data.get("SUBSCRIPTION_PLANS", DEFAULT_SUBSCRIPTION_PLANS)

    # Operator alerts for events that cannot be matched to an account
    ALERT_WEBHOOK_URL = data.get("ALERT_WEBHOOK_URL", None)
    ALERT_WEBHOOK_TIMEOUT_SECONDS = data.get("ALERT_WEBHOOK_TIMEOUT_SECONDS", 2.0)

    # Ledger Reconciliation Configuration
    RECONCILIATION_ENABLED = bool(data.get("RECONCILIATION_ENABLED", True))
    RECONCILIATION_INTERVAL_SECONDS = data.get("RECONCILIATION_INTERVAL_SECONDS", 86400)  # Daily
