"""File storage API and its client."""

from .app import create_app
from .client import SchemaApiClient

__all__ = ["create_app", "SchemaApiClient"]
