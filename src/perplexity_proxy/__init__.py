"""Metered proxy for the Perplexity chat, search and deep research API."""

__version__ = "0.1.0"
