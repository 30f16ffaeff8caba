import logging
import time
import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from src.api.error import (
    ClientError,
    client_error_handler,
    http_error_handler,
    validation_error_handler,
)
from src.api.routes import billing, stripe_webhook

logger = logging.getLogger(__name__)


def _configure_logging(config):
    logging.basicConfig(
        level=getattr(logging, str(config.LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _configure_sentry(config):
    if config.ENABLE_SENTRY and config.DSN_SENTRY:
        sentry_sdk.init(
            dsn=config.DSN_SENTRY,
            environment=config.SENTRY_ENVIRONMENT,
            traces_sample_rate=0.1,
        )
        logger.info(f"Sentry enabled ({config.SENTRY_ENVIRONMENT})")


async def log_requests(request: Request, call_next):
    started = time.monotonic()
    response = await call_next(request)
    elapsed_ms = int((time.monotonic() - started) * 1000)
    logger.info(f"{request.method} {request.url.path} {response.status_code} {elapsed_ms}ms")
    return response


def create_app(config) -> FastAPI:
    _configure_logging(config)
    _configure_sentry(config)

    app = FastAPI(
        title="Billing Service",
        description="Stripe webhook reconciliation and credit ledger",
        version="1.0.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=config.CORS_ALLOW_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    if config.ENABLE_LOGGING_MIDDLEWARE:
        app.middleware("http")(log_requests)

    app.add_exception_handler(ClientError, client_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)

    app.include_router(stripe_webhook.router, prefix=config.API_PREFIX)
    app.include_router(billing.router, prefix=config.API_PREFIX)

    @app.get("/health", tags=["Health"])
    async def health():
        return {"status": "ok"}

    return app
