"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from src.api import auth, comments, contact, posts, subscribe, upload
from src.config import get_settings
from src.database import check_database_connection, get_db
from src.errors import register_exception_handlers
from src.services.page_cache import PageCache
from src.services.rate_limit import build_rate_limiter

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown events."""
    app.state.rate_limiter = build_rate_limiter(settings)
    app.state.page_cache = PageCache(
        max_entries=settings.page_cache_max_entries,
        ttl_seconds=settings.page_cache_ttl_seconds,
    )
    logger.info(f"Starting Tuning CMS API ({settings.environment})")
    yield
    app.state.page_cache.clear()


app = FastAPI(
    title="Tuning CMS API",
    description="Single-author blog with moderated comments, contact form and newsletter",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware for development
if settings.is_development:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:3000",
            "http://localhost:3001",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

register_exception_handlers(app)

# Register routers
app.include_router(auth.router)
app.include_router(posts.router)
app.include_router(comments.router)
app.include_router(contact.router)
app.include_router(subscribe.router)
app.include_router(upload.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "environment": settings.environment}


@app.get("/api/health")
async def database_health(db: Annotated[Session, Depends(get_db)]):
    """Readiness check including a database round trip."""
    database = check_database_connection(db)
    if not database["connected"]:
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "database": database},
        )
    return {"status": "healthy", "database": database}
