"""FastAPI application exposing adventure game play endpoints."""

from .app import create_app

__all__ = ["create_app"]
