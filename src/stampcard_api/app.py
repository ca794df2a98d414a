from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from stampcard_api.core.settings import settings
from stampcard_api.db.session import async_session
from .api.routes import api_router
from .core.logging import configure_logging
from .observability.tracing import configure_tracing
from .services.stampcard import OfferRegistry


APP_VERSION = "0.1.0"


async def bootstrap_default_offer() -> None:
    async with async_session() as session:
        offer = await OfferRegistry(session).ensure_default_offer()
        await session.commit()
    logger.info("Default offer ready", offer_id=offer.offer_id, is_active=offer.is_active)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.bootstrap_default_offer:
        await bootstrap_default_offer()
    else:
        logger.info(
            "Default offer bootstrap disabled",
            reason="bootstrap_default_offer is false",
        )
    yield


def create_app() -> FastAPI:
    """Application factory for the stampcard FastAPI service."""
    configure_logging(
        service_name="stampcard-api",
        environment=settings.environment,
        version=APP_VERSION,
        level=settings.log_level,
    )

    app = FastAPI(
        title="Stampcard API",
        version=APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    configure_tracing(
        app,
        service_name="stampcard-api",
        service_version=APP_VERSION,
        environment=settings.environment,
    )

    app.include_router(api_router)

    @app.get("/healthz", tags=["Health"])
    async def health_check() -> dict[str, str]:
        return {
            "status": "ok",
            "environment": settings.environment,
            "version": APP_VERSION,
        }

    return app
