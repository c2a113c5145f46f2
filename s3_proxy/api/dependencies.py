"""
FastAPI dependency injection.

Dependencies provide the shared backend client and configuration to route
handlers. Routes never build their own clients, which keeps them easy to
test: create_app() accepts a backend, and tests can also use
app.dependency_overrides.

Both dependencies hand out process-wide, read-only objects. Nothing here
is created per request.
"""

from typing import Annotated

from fastapi import Depends, Request

from ..config.settings import Settings, get_settings
from ..core.relay.relay import BackendClient
from ..core.routing.models import ProxyConfig


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    settings = getattr(request.app.state, "settings", None)
    return settings if settings is not None else get_settings()


def get_proxy_config(
    request: Request,
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> ProxyConfig:
    """Routing configuration, built once by create_app()."""
    config = getattr(request.app.state, "proxy_config", None)
    return config if config is not None else settings.proxy_config


def get_backend_client(request: Request) -> BackendClient:
    """
    Provide the shared storage client.

    The client is created once, by create_app() or the lifespan handler.
    Requests never build one; an app served without either has no backend
    and every proxied request fails with 500.
    """
    backend = getattr(request.app.state, "backend", None)
    if backend is None:
        raise RuntimeError("Storage client not initialised; run the app with its lifespan")
    return backend


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
SettingsDep = Annotated[Settings, Depends(get_app_settings)]
ProxyConfigDep = Annotated[ProxyConfig, Depends(get_proxy_config)]
BackendClientDep = Annotated[BackendClient, Depends(get_backend_client)]
