# blverse/main.py
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging
from typing import Any, Dict

from fastapi import APIRouter, FastAPI, Response

from .core.config import is_running_tests, settings
from .core.constants import API_DESCRIPTION, API_TITLE, API_VERSION, BRAND_NAME
from .database import SessionLocal, init_db
from .errors import register_error_handlers
from .monitoring.prometheus_metrics import prometheus_metrics
from .routes.v1 import engagement as engagement_v1
from .routes.v1 import messages as messages_v1
from .routes.v1 import notifications as notifications_v1
from .routes.v1 import realtime as realtime_v1
from .services.media_storage import build_media_store
from .services.messaging import ConnectionDirectory

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Create per-process realtime state on startup and release it on shutdown."""
    logger.info(f"{BRAND_NAME} API starting up...")
    logger.info(f"Environment: {settings.environment}")
    if is_running_tests():
        logger.info("Running under pytest (test mode active)")

    init_db()
    app.state.session_factory = SessionLocal
    app.state.connection_directory = ConnectionDirectory(stream_queue_size=settings.sse_queue_size)
    app.state.media_store = build_media_store(settings)
    logger.info(f"Media storage backend: {settings.media_storage_backend}")

    yield

    logger.info(f"{BRAND_NAME} API shutting down...")
    await app.state.connection_directory.close()


app = FastAPI(
    title=API_TITLE,
    description=API_DESCRIPTION,
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=app_lifespan,
)
register_error_handlers(app)

# Create API v1 router
api_v1 = APIRouter(prefix="/api/v1")

api_v1.include_router(messages_v1.router, prefix="/messages")
api_v1.include_router(realtime_v1.router)
api_v1.include_router(engagement_v1.community_router, prefix="/community")
api_v1.include_router(engagement_v1.stories_router, prefix="/stories")
api_v1.include_router(engagement_v1.works_router, prefix="/works")
api_v1.include_router(notifications_v1.router, prefix="/notifications")
api_v1.include_router(notifications_v1.users_router, prefix="/users")

app.include_router(api_v1)


@app.get("/health", tags=["health"])
async def health_check() -> Dict[str, Any]:
    directory = getattr(app.state, "connection_directory", None)
    return {
        "status": "healthy",
        "service": f"{BRAND_NAME.lower()}-realtime",
        "version": API_VERSION,
        "environment": settings.environment,
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "streams": directory.stream_count() if directory is not None else 0,
    }


@app.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    """Prometheus scrape endpoint (public, no auth)."""
    return Response(
        content=prometheus_metrics.get_metrics(),
        media_type=prometheus_metrics.get_content_type(),
    )
