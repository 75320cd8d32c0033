from fastapi import APIRouter, FastAPI

from .chat import router as chat_router
from .jobs import router as jobs_router
from .matches import router as matches_router


def include_modular_routers(app: FastAPI) -> None:
    app.include_router(matches_router, tags=["matches"])
    app.include_router(chat_router, tags=["chat"])
    app.include_router(jobs_router, prefix="/internal/jobs", tags=["jobs"])


__all__ = ["include_modular_routers", "APIRouter"]
