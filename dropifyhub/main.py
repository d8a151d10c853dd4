"""
DropifyHub Backend - Main Application
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from .config import settings
from .dependencies import init_dependencies, close_dependencies
from .auth import OAuthError
from .routes import auth_router, push_router
from .routes.auth import error_response

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    logger.info("Starting DropifyHub backend...")
    await init_dependencies()
    logger.info("Application ready")
    yield
    logger.info("Shutting down...")
    await close_dependencies()


# Create app
app = FastAPI(
    title="DropifyHub Backend",
    description="Shopify app install flow and theme/product push",
    version="1.0.0",
    lifespan=lifespan
)

# Include routers
app.include_router(auth_router)
app.include_router(push_router)


@app.exception_handler(OAuthError)
async def oauth_error_handler(request: Request, exc: OAuthError):
    """Map handshake errors to their status and error kind."""
    return error_response(exc)


@app.get("/", response_class=PlainTextResponse)
async def root():
    """Liveness text."""
    return "DropifyHub backend running"


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "dropifyhub.main:app",
        host=settings.host,
        port=settings.port,
        reload=True
    )
