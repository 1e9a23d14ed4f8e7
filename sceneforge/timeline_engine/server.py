"""FastAPI application for the Timeline Engine."""
from __future__ import annotations

from fastapi import APIRouter, FastAPI
from pydantic import BaseModel

from sceneforge.timeline_engine.models import TimelineConfig
from sceneforge.timeline_engine.routes import router
from sceneforge.timeline_engine.service import get_timeline_engine_service

VERSION = "0.1.0"

health_router = APIRouter(tags=["system"])


class HealthStatus(BaseModel):
    status: str
    version: str = VERSION
    config: TimelineConfig


@health_router.get("/health", response_model=HealthStatus)
def health_check():
    return HealthStatus(status="ok", config=get_timeline_engine_service().config)


def create_app() -> FastAPI:
    app = FastAPI(title="Timeline Engine", version=VERSION)
    app.include_router(health_router)
    app.include_router(router)
    return app


app = create_app()
