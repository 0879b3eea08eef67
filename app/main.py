"""
SafeMed - Main FastAPI Application
Medication safety dashboard on top of a remote EMR/AI API
"""

import logging
from datetime import datetime
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn

from app.config import settings
from app.schemas import HealthResponse
from app.services.emr_gateway import EMRGateway
from app.services.mock_store import MockEMRStore
from app.routes import patients as patient_routes, webhooks as webhook_routes

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


# =============================================================================
# Application Lifecycle
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    logger.info("Starting SafeMed dashboard...")
    logger.info(f"Environment: {settings.environment}")
    logger.info("MOCK MODE ACTIVE" if settings.mock_api else f"Real API mode: {settings.emr_base_url}")

    app.state.store = MockEMRStore(seed_demo_data=settings.mock_seed_demo_data)
    app.state.gateway = EMRGateway(settings, app.state.store)

    yield

    # Shutdown
    logger.info("Shutting down SafeMed dashboard...")
    await app.state.gateway.close()


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="SafeMed",
    description="Patient and encounter creation via an EMR/AI API, with allergy and drug-interaction alerts",
    version=settings.app_version,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(patient_routes.router)
app.include_router(webhook_routes.router)


# =============================================================================
# Health Check Endpoints
# =============================================================================

@app.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check():
    """Health check endpoint"""
    return HealthResponse(
        status="healthy",
        mode=settings.mode,
        timestamp=datetime.now(),
        version=settings.app_version
    )


@app.get("/health/ready", tags=["health"])
async def readiness_check():
    """Readiness check endpoint"""
    if not settings.mock_api and not settings.emr_api_token:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="API token not configured for real API mode"
        )

    return {
        "status": "ready",
        "mode": settings.mode,
        "timestamp": datetime.now().isoformat()
    }


# =============================================================================
# Error Handlers
# =============================================================================

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request, exc):
    """Handle HTTP exceptions"""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.detail,
            "timestamp": datetime.now().isoformat()
        },
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(Exception)
async def general_exception_handler(request, exc):
    """Handle general exceptions"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "detail": str(exc) if settings.debug else "An error occurred",
            "timestamp": datetime.now().isoformat()
        }
    )


# =============================================================================
# Main Entry Point
# =============================================================================

if __name__ == "__main__":
    uvicorn.run(
        "app.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        log_level=settings.log_level.lower()
    )
