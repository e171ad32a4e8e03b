"""
Main FastAPI application
FLUX LoRA training and generation backend
"""
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import Optional
import json
import logging
import uvicorn
from fluxlora.config import configure_logging, settings
from fluxlora.context import AppContext, build_context
from fluxlora.database import create_tables
from fluxlora.api.endpoints import build_router
# Configure logging
configure_logging(settings)
logger = logging.getLogger(__name__)


def create_app(context: Optional[AppContext] = None) -> FastAPI:
    """Build the application around a context (one is built from settings if omitted)"""
    ctx = context or build_context(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager"""
        logger.info("Starting FLUX LoRA backend...")
        ctx.settings.validate_required()
        if ctx.settings.CREATE_TABLES:
            try:
                create_tables(ctx.store.resource, ctx.settings)
                logger.info("Tables initialized successfully")
            except Exception as e:
                logger.error(f"Table initialization failed: {e}")
                raise
        logger.info("Service startup completed")
        yield
        logger.info("Shutting down FLUX LoRA backend...")

    app = FastAPI(
        title=ctx.settings.API_TITLE,
        version=ctx.settings.API_VERSION,
        description="""
        Backend for training personalised FLUX LoRA models and generating images from them:
        - Account registration and JWT sessions
        - Training model records and their training images
        - Generated image gallery
        - User settings with encrypted third-party API keys
        - Presigned direct uploads to S3
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    app.state.context = ctx
    app.include_router(build_router(ctx))

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc: Exception):
        """Errors escaping the adapter itself; the pipeline handles everything else"""
        logger.error(f"Unhandled exception: {exc}")
        response = ctx.envelope.internal_error()
        return JSONResponse(status_code=response.status_code, content=json.loads(response.body),
                            headers=ctx.envelope.cors.headers())

    # Root endpoint
    @app.get("/")
    async def root():
        """Root endpoint with service information"""
        return {
            "service": ctx.settings.API_TITLE,
            "version": ctx.settings.API_VERSION,
            "docs": "/docs",
            "health": "/health"
        }

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "fluxlora.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.API_RELOAD,
        log_level=settings.LOG_LEVEL.lower()
    )
