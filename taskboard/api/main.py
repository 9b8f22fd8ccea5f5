"""FastAPI application main entry point."""

from __future__ import annotations

import logging

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

from .middleware import register_error_handlers
from .routes import board, system

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Build the application with an empty set of open boards."""
    system.install_log_buffer()

    app = FastAPI(
        title="Taskboard API",
        description="Markdown checklist tasks synchronized with a node/edge board",
        version="0.1.0",
    )
    app.state.sessions = {}

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    app.include_router(board.router, tags=["board"])
    app.include_router(system.router, tags=["system"])
    return app


app = create_app()
