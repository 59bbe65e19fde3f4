"""Main FastAPI application for the Pulse planner backend."""
import logging

from fastapi import FastAPI, Request

from pulse.api.routes.planner import router as planner_router
from pulse.api.routes.preferences import router as preferences_router
from pulse.core.config import settings
from pulse.core.logging import configure_logging
from pulse.core.middleware import RequestIDMiddleware
from pulse.db import Base
from pulse.db.session import engine
from pulse.observability.client import init_opik
from pulse.observability.tracing import trace
from pulse.services.planner_registry import get_planner_registry
from pulse.worker.scheduler import build_scheduler

configure_logging(log_level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name, version="0.1.0")
app.add_middleware(RequestIDMiddleware)
app.include_router(planner_router)
app.include_router(preferences_router)


@app.on_event("startup")
async def startup() -> None:
    """Initialize observability, tables and the planner scheduler after the event loop starts."""
    init_opik()
    if settings.database_url.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)
    if settings.scheduler_enabled:
        scheduler = build_scheduler(get_planner_registry())
        scheduler.start()
        app.state.scheduler = scheduler
    else:
        logger.info("Planner scheduler disabled via config")


@app.on_event("shutdown")
async def shutdown() -> None:
    scheduler = getattr(app.state, "scheduler", None)
    if scheduler is not None and scheduler.running:
        scheduler.shutdown(wait=False)
    await get_planner_registry().aclose()


@app.get("/health", tags=["health"], summary="Readiness probe")
async def health_check(request: Request) -> dict[str, str]:
    """Return a simple status payload so automation can probe the API."""
    with trace("http.health_check", metadata={"route": "/health"}, request_id=request.state.request_id):
        return {"status": "ok"}
