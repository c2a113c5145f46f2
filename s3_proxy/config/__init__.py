"""
Application configuration using Pydantic settings.

Configuration comes from environment variables, .env and s3-proxy.toml,
with sensible defaults.
"""

from .settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
