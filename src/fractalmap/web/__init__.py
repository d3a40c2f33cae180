"""fractalmap HTTP repository: FastAPI app factory."""

from __future__ import annotations

from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..stores import TaskStore, UnknownTaskError


def create_app(store: TaskStore | None = None, *, cwd: Path | None = None) -> FastAPI:
    app = FastAPI(title="fractalmap", version=__version__)

    app.state.store = store or TaskStore.from_workdir(cwd)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(UnknownTaskError)
    async def _unknown_task(request: Request, exc: UnknownTaskError):
        return JSONResponse({"detail": str(exc)}, status_code=404)

    @app.exception_handler(ValueError)
    async def _bad_value(request: Request, exc: ValueError):
        return JSONResponse({"detail": str(exc)}, status_code=400)

    from .routes import router

    app.include_router(router)

    return app
