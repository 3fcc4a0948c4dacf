"""HTTP API for the store dashboard."""

from .app import create_app

__all__ = ["create_app"]
