"""
Bridge Needs FastAPI Application - Main entry point.

Bridge Needs connects donors with organizations and their campaigns. Donors
give money through the cash donation flow or offer items as physical
donations; both appear in one unified donation history.

Endpoints live under /api/v1/:
- /auth - Registration and login
- /donations - Unified history, stats, dashboard, search and cash donations
- /physical-donations - In-kind donations and their coordination
- /organizations - Organization donation statistics
- /api/health - Health check
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bridgeneeds.core.config import settings
from bridgeneeds.core.logging import setup_logging
from bridgeneeds.db.base import init_db
from bridgeneeds.schemas.common import HealthResponse
from bridgeneeds.api.v1 import api_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    setup_logging()
    # Note: In production, use Alembic migrations instead
    await init_db()
    logger.info(f"{settings.APP_NAME} started ({settings.APP_ENV})")
    yield


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description="""
Bridge Needs - donations for organizations and campaigns.

## Modules

- **Donations**: Cash donations, unified cash + physical history, statistics and dashboards
- **Physical donations**: Item offers, pickup coordination and status workflow
- **Organizations**: Received-donation statistics for organization owners
    """,
    lifespan=lifespan,
    docs_url="/api/docs" if settings.DEBUG else None,
    redoc_url="/api/redoc" if settings.DEBUG else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# HEALTH CHECK
# ============================================================================

@app.get("/api/health", response_model=HealthResponse, tags=["health"])
async def health_check():
    """Health check endpoint."""
    return HealthResponse(code=200, message="API is healthy.")


# ============================================================================
# V1 API ENDPOINTS
# ============================================================================

app.include_router(
    api_router,
    prefix=settings.API_V1_PREFIX,
)


# ============================================================================
# ERROR HANDLERS
# ============================================================================

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    if settings.DEBUG:
        return JSONResponse(
            status_code=500,
            content={"detail": str(exc)}
        )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "bridgeneeds.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
