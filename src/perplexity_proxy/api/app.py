"""FastAPI application factory."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..config import settings
from ..runtime import ProxyRuntime
from .routes import router

# Global runtime instance
_runtime: Optional[ProxyRuntime] = None


def get_runtime() -> ProxyRuntime:
    """Get the global runtime instance."""
    global _runtime
    if _runtime is None:
        _runtime = ProxyRuntime()
    return _runtime


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    runtime = get_runtime()
    await runtime.initialize()
    yield
    await runtime.shutdown()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Perplexity Proxy",
        description="Metered Perplexity chat, search and deep research tools",
        version="0.1.0",
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router, prefix="/api")

    return app
