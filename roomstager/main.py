"""
FastAPI main application for Roomstager
"""
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from roomstager.core.config import settings
from roomstager.core.logging import setup_logging
from roomstager.middleware.logging_middleware import RequestLoggingMiddleware
from roomstager.routers import composition, products

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info(f"Starting {settings.app_name}...")

    google_key = settings.google_ai_api_key
    if google_key:
        key_preview = f"{google_key[:7]}...{google_key[-4:]}" if len(google_key) > 11 else "***"
        logger.info(f"✅ GOOGLE_AI_API_KEY is set: {key_preview}")
    else:
        logger.error("❌ GOOGLE_AI_API_KEY is NOT set - image composition will not work!")

    logger.info(
        f"Composition canvas {settings.composition_dimension}px, model {settings.google_ai_image_model}, "
        f"timeout {settings.google_ai_timeout_seconds or 'none'}"
    )

    yield

    logger.info(f"Shutting down {settings.app_name}...")


app = FastAPI(
    title=settings.app_name,
    description="Product placement composition API",
    version=settings.version,
    lifespan=lifespan,
    docs_url="/docs" if settings.environment == "development" else None,
    redoc_url="/redoc" if settings.environment == "development" else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(composition.router, prefix="/api")
app.include_router(products.router, prefix="/api")


@app.get("/health")
async def health_check():
    """Health check endpoint for load balancers"""
    return {
        "status": "healthy",
        "timestamp": time.time(),
        "version": settings.version,
        "image_generation": "configured" if settings.google_ai_api_key else "not configured",
    }


@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "name": settings.app_name,
        "version": settings.version,
        "description": "Product placement composition API",
        "docs": "/docs" if settings.environment == "development" else None,
        "endpoints": {
            "compose": "/api/composition/compose",
            "compose_sequence": "/api/composition/compose-sequence",
            "products": "/api/products",
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("roomstager.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
