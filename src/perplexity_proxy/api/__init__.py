"""HTTP API for the Perplexity proxy."""

from .app import create_app

__all__ = ["create_app"]
