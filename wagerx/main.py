"""
WAGERX - Wager escrow gateway.

FastAPI application factory and routers.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from wagerx.config import settings
from wagerx.db import init_db
from wagerx.api.routes_wagers import router as wagers_router
from wagerx.api.routes_charity import router as charity_router
from wagerx.api.routes_relay import router as relay_router
from wagerx.api.routes_accounts import router as accounts_router
from wagerx.api.routes_health import router as health_router
from wagerx.services.escrow import get_escrow_client

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    client = get_escrow_client()
    logger.info(
        f"Escrow {settings.escrow_variant} deployed at {client.contract_address} "
        f"(chain {settings.chain_id}, track_funding={settings.track_funding})"
    )
    yield


def create_app(init_database: bool = True) -> FastAPI:
    """
    Create FastAPI application.

    Args:
        init_database: Create mirror tables and deploy the escrow on startup

    Returns:
        FastAPI app instance
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="WAGERX",
        description="Peer-to-peer wager escrow with optional charity donations.",
        version="0.1.0",
        default_response_class=ORJSONResponse,
        lifespan=lifespan if init_database else None,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(wagers_router)
    app.include_router(charity_router)
    app.include_router(relay_router)
    app.include_router(accounts_router)
    app.include_router(health_router)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": "WAGERX",
            "version": "0.1.0",
            "description": "Stake, settle, and optionally give a cut to charity.",
            "variant": settings.escrow_variant,
        }

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("wagerx.main:app", host=settings.host, port=settings.port, reload=False)
