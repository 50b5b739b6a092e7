"""
FastAPI application factory for Person Watch.

Routes:
- /api/* -> REST API (status, devices, alert control, frames)

The app holds no global state: the running WatchSession and the effective
config are attached to ``app.state`` by the caller.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from runtime.session import WatchSession

from .routes import api


def create_app(session: Optional[WatchSession] = None, config: Optional[Dict[str, Any]] = None) -> FastAPI:
    """Create the FastAPI app bound to one watch session."""
    app = FastAPI(
        title="Person Watch",
        version="0.1.0",
        description="Webcam person detection with spoken alerts",
    )

    # CORS for development (Vite dev server)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.session = session
    app.state.config = config or {}

    app.include_router(api.router, prefix="/api")

    return app
