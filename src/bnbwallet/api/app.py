"""FastAPI application factory."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bnbwallet import __version__
from bnbwallet.config import get_settings
from bnbwallet.operations.service import WalletService, create_wallet_service


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    yield
    # Shutdown: wipe the session's secrets
    await app.state.wallet_service.close()


def create_app(wallet_service: Optional[WalletService] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        wallet_service: Pre-built service (tests); built from settings otherwise
    """
    settings = get_settings()

    app = FastAPI(
        title="BNB Wallet API",
        description="Single-session BNB Chain wallet control service",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.wallet_service = wallet_service or create_wallet_service(settings)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routes
    from bnbwallet.api.routers import wallet
    from bnbwallet.api.routes import health

    app.include_router(health.router, tags=["Health"])
    app.include_router(wallet.router, tags=["Wallet"])

    return app
