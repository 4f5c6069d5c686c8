"""API routes for the Perplexity proxy."""

import logging
from typing import Any

from fastapi import APIRouter, Body, HTTPException
from pydantic import ValidationError

from ..errors import (
    LedgerError,
    MissingCredentialError,
    UnknownTransactionError,
    UpstreamError,
    UpstreamHttpError,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def get_runtime():
    """Get the global runtime instance."""
    from .app import get_runtime as _get_runtime

    return _get_runtime()


@router.get("/health")
async def health():
    return {"status": "ok"}


@router.get("/tools")
async def list_tools():
    """List the available tools with their input schemas."""
    runtime = get_runtime()
    return {"tools": runtime.registry.to_schemas()}


@router.post("/tools/{name}")
async def call_tool(name: str, arguments: dict[str, Any] = Body(default={})):
    """Run a tool with the request body as its input."""
    runtime = get_runtime()
    if runtime.registry.get(name) is None:
        raise HTTPException(status_code=404, detail=f"Unknown tool: {name}")

    try:
        return await runtime.registry.execute(name, arguments)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except UnknownTransactionError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except MissingCredentialError as e:
        logger.error(f"{name}: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    except UpstreamHttpError as e:
        raise HTTPException(
            status_code=502,
            detail={
                "message": str(e),
                "upstream_status": e.status,
                "upstream_status_text": e.status_text,
                "upstream_body": e.body,
            },
        )
    except (UpstreamError, LedgerError) as e:
        logger.error(f"{name}: {e}")
        raise HTTPException(status_code=502, detail=str(e))
