"""
M3U Catalog - FastAPI Backend

Loads an IPTV playlist, sorts it into movies, series and channels,
and serves filtered pages to the player frontend.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from m3u_catalog.config import get_settings
from m3u_catalog.errors import (
    BackgroundParseError,
    CatalogNotLoaded,
    FeedUnavailable,
    LoadInProgress,
)
from m3u_catalog.services.catalog_service import CatalogService, get_catalog_service
from m3u_catalog.routers import catalog

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

settings = get_settings()

# Rate limiter
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[f"{settings.rate_limit_per_minute}/minute"],
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    logger.info("Starting M3U Catalog backend...")
    service = get_catalog_service()

    if settings.load_on_startup:
        try:
            summary = await service.load_feed()
            logger.info(f"Initial load complete: {summary.counts} (from cache: {summary.from_cache})")
        except (FeedUnavailable, BackgroundParseError) as e:
            logger.error(f"Initial playlist load failed: {e}")

    yield

    logger.info("Shutting down M3U Catalog backend...")
    await service.shutdown()


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Playlist catalog for the IPTV player",
    lifespan=lifespan
)

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(catalog.router)


# API endpoints
@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": settings.app_version}


@app.get("/api/stats")
async def get_stats(service: CatalogService = Depends(get_catalog_service)):
    """Catalog statistics."""
    return service.stats()


# Error handlers
@app.exception_handler(FeedUnavailable)
async def feed_unavailable_handler(request: Request, exc: FeedUnavailable):
    return JSONResponse(
        status_code=503,
        content={
            "detail": "Erro ao carregar a lista M3U",
            "sources": [{"source": source, "reason": reason} for source, reason in exc.failures],
        }
    )


@app.exception_handler(BackgroundParseError)
async def parse_error_handler(request: Request, exc: BackgroundParseError):
    return JSONResponse(status_code=500, content={"detail": "Erro ao processar a lista M3U"})


@app.exception_handler(LoadInProgress)
async def load_in_progress_handler(request: Request, exc: LoadInProgress):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(CatalogNotLoaded)
async def not_loaded_handler(request: Request, exc: CatalogNotLoaded):
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "m3u_catalog.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
