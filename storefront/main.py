"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from storefront.api.middleware.error_handler import error_handler_middleware
from storefront.api.middleware.latency_logging import latency_logging_middleware
from storefront.api.routes import addresses, cart, checkout, health, orders, products, seller
from storefront.core.config import get_settings
from storefront.core.session import SessionLocks

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Storefront first, back-office last; all under /api/v1
API_V1_ROUTERS = (
    products.router,
    cart.router,
    addresses.router,
    checkout.router,
    orders.router,
    seller.router,
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings = get_settings()
    if settings.is_remote_configured:
        logger.info("Starting %s (%s); local fallback at %s", settings.app_name, settings.app_env, settings.local_storage_dir)
    else:
        logger.warning(
            "Starting %s (%s) without Supabase; orders and products live in %s",
            settings.app_name,
            settings.app_env,
            settings.local_storage_dir,
        )
    yield
    logger.info("Shutting down %s", settings.app_name)


def create_app() -> FastAPI:
    """Build the application: middleware, session locks and routers.

    API docs are only served in debug mode.
    """
    settings = get_settings()
    docs_enabled = settings.debug

    app = FastAPI(
        title="Storefront API",
        description="Catalog, cart, checkout and order back-office",
        version="0.1.0",
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
        lifespan=lifespan,
    )
    app.state.session_locks = SessionLocks()

    # Browsers must be able to read a reissued session token
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Session-Token"],
    )
    app.add_middleware(BaseHTTPMiddleware, dispatch=error_handler_middleware)
    app.add_middleware(BaseHTTPMiddleware, dispatch=latency_logging_middleware)

    app.include_router(health.router)
    api_v1 = APIRouter(prefix="/api/v1")
    for router in API_V1_ROUTERS:
        api_v1.include_router(router)
    app.include_router(api_v1)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("storefront.main:app", host=settings.host, port=settings.port, reload=settings.debug)
