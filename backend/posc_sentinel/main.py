import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .config import get_settings
from .database import Base, SessionLocal, engine
from .logging_config import configure_logging
from .routes.analytics import router as analytics_router
from .routes.monitoring import router as monitoring_router
from .routes.startups import router as startups_router
from .services.monitoring_service import MonitoringService
from .services.scheduler import MonitoringScheduler
from .services.sources import SqlSignupEventSource
from .services.stripe_source import get_transaction_source

logger = logging.getLogger(__name__)


def build_scheduler(settings) -> MonitoringScheduler:
    """Wire the monitoring service to the configured data sources."""
    service = MonitoringService(
        session_factory=SessionLocal,
        event_source=SqlSignupEventSource(SessionLocal),
        transaction_source=get_transaction_source(
            settings.stripe_api_key, settings.stripe_api_base, SessionLocal
        ),
        settings=settings,
    )
    return MonitoringScheduler(service, settings.monitoring_interval_seconds)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings.log_level)

    # Startup
    logger.info("Starting PoSC Sentinel %s", __version__)
    logger.info("   Database:    %s", settings.database_url.split("@")[-1])
    logger.info("   Stripe key:  %s", "configured" if settings.stripe_api_key else "not set")
    logger.info("   Interval:    %ds", settings.monitoring_interval_seconds)

    Base.metadata.create_all(bind=engine)
    app.state.scheduler = build_scheduler(settings)
    if settings.monitoring_autostart:
        app.state.scheduler.start()

    yield

    app.state.scheduler.close()
    logger.info("Shutting down PoSC Sentinel")


app = FastAPI(
    title="PoSC Sentinel - growth monitoring and funding triggers",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",      # Next.js dev server
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(startups_router)
app.include_router(monitoring_router)
app.include_router(analytics_router)


@app.get(
    "/health",
    summary="Global Health Check",
    description="Check if the API server is running",
    tags=["General"]
)
async def health():
    """Global health check endpoint."""
    return {
        "status": "healthy",
        "service": "posc-sentinel",
        "version": __version__,
    }


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler for unhandled errors."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal server error",
            "detail": str(exc) if get_settings().debug else "An unexpected error occurred"
        }
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "posc_sentinel.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        reload=get_settings().debug,
    )
