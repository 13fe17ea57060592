"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance, wires the registry
store, payment processor and domain services, and registers the domain
error handler.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from psycopg_pool import ConnectionPool

from soulmark.adapters.processor import StripeCheckoutProcessor
from soulmark.adapters.store import (
    InMemoryRegistryStore,
    JsonFileRegistryStore,
    PostgresRegistryStore,
    run_migrations,
)
from soulmark.api.errors import register_exception_handlers
from soulmark.api.v1 import router as v1_router
from soulmark.config.settings import Settings, get_settings
from soulmark.domain.identity import IdentityRegistry
from soulmark.domain.ledger import DonationLedger
from soulmark.domain.orders import OrderEngine
from soulmark.domain.ports import PaymentProcessor, RegistryStore

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "v1",
        "description": "Soulmark Registry API v1 - Donations, marks, handles and orders",
    },
]


def install_services(app: FastAPI, settings: Settings, store: RegistryStore, processor: PaymentProcessor) -> None:
    """Build the domain services and store them in app state."""
    ledger = DonationLedger(
        store=store,
        processor=processor,
        secret=settings.soulmark_secret,
        currency=settings.currency,
        success_url=settings.success_url,
        cancel_url=settings.cancel_url,
    )
    app.state.store = store
    app.state.ledger = ledger
    app.state.identity_registry = IdentityRegistry(
        store=store,
        disposable_domains=settings.disposable_domains,
        handle_policy=settings.handle_policy,
    )
    app.state.order_engine = OrderEngine(
        store=store,
        processor=processor,
        ledger=ledger,
        currency=settings.currency,
        success_url=settings.success_url,
        cancel_url=settings.cancel_url,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Opens the configured registry store (and runs migrations for Postgres)
    - Wires the payment processor and domain services
    - Closes the connection pool on shutdown
    """
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)

    logger.info("Starting application with %s registry backend", settings.registry_backend)

    pool = None
    if settings.registry_backend == "postgres":
        pool = ConnectionPool(
            conninfo=settings.database_url,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
        )
        logger.info("Running database migrations...")
        run_migrations(pool)
        store: RegistryStore = PostgresRegistryStore(pool)
    elif settings.registry_backend == "memory":
        store = InMemoryRegistryStore()
    else:
        store = JsonFileRegistryStore(settings.registry_path)

    # Initializes or repairs the registry before the first request
    store.load()

    if not settings.stripe_secret_key:
        logger.warning("STRIPE_SECRET_KEY is not set; payment calls will fail")
    install_services(app, settings, store, StripeCheckoutProcessor(settings.stripe_secret_key))

    logger.info("Application startup complete")

    yield

    logger.info("Shutting down application...")
    if pool is not None:
        pool.close()
        logger.info("Database connection pool closed")


app = FastAPI(
    title="soulmark-registry",
    description="Identity & Ledger Registry - payment-anchored marks bound to permanent handles",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

register_exception_handlers(app)

# Include v1 API routes
app.include_router(v1_router, prefix="/v1")


@app.get("/health")
def health_check(request: Request) -> dict[str, str]:
    """
    Health check endpoint with registry validation.

    Returns 200 OK if the registry loads. A StorageError becomes a 503.
    """
    request.app.state.store.load()
    return {"status": "healthy"}
