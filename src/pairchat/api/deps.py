"""FastAPI dependency injection for the pairchat API.

Provides access to shared resources via app.state.
"""

from typing import TYPE_CHECKING

from fastapi import Request

if TYPE_CHECKING:
    from pairchat.config import Config
    from pairchat.store import JsonStore


def get_config(request: Request) -> "Config":
    """Get config from app state.

    Args:
        request: FastAPI request object.

    Returns:
        Application configuration.
    """
    return request.app.state.config


def get_store(request: Request) -> "JsonStore":
    """Get the document store from app state.

    Args:
        request: FastAPI request object.

    Returns:
        JsonStore instance.
    """
    return request.app.state.store
