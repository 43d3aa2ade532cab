"""Dream Pie — FastAPI Application.

This module defines the FastAPI application that hosts the proxy handler,
and the ``main()`` CLI function that launches the uvicorn server.

Architecture
------------
- **Configuration** comes from :data:`~dreampie.core.config.config`
  (``DREAMPIE_*`` environment variables plus provider credentials).
- **Provider selection** happens once, at startup: the lifespan resolves
  ``config.provider`` in the provider registry and builds a single
  :class:`~dreampie.api.proxy.ProxyHandler` around a shared
  ``httpx.AsyncClient``.
- **The proxy route** accepts every method so that non-POST requests get the
  handler's structured 405 body instead of FastAPI's default.

Endpoints
---------
========  ====================================  ================================
Method    Path                                  Purpose
========  ====================================  ================================
any       ``config.proxy_path``                 Generate an image from a prompt
any       ``/.netlify/functions/generate-image``  Same, for the legacy front-end
GET       ``/api/health``                       Version and active provider
========  ====================================  ================================

Usage
-----
CLI (installed entry point)::

    dreampie

Direct invocation::

    python -m dreampie.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dreampie import __version__
from dreampie.core.config import DreamPieConfig, config

from .models import HealthResponse
from .proxy import ProxyHandler

logger = logging.getLogger(__name__)

LEGACY_PROXY_PATH = "/.netlify/functions/generate-image"
PROXY_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def create_app(
    settings: DreamPieConfig | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Configuration to use.  Defaults to the global ``config``.
        transport: Optional transport for the outbound ``httpx`` client,
            used by tests to stand in for the provider.

    Returns:
        The configured application.  The proxy handler is created by the
        lifespan, so the app must be started (or entered via ``TestClient``)
        before it can serve requests.
    """
    settings = settings or config

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Own the outbound HTTP client and the proxy handler.

        On startup:
            Opens the ``httpx.AsyncClient`` and builds the handler for the
            configured provider.  An unknown provider name fails startup.

        On shutdown:
            Closes the HTTP client.
        """
        # --- Startup -----------------------------------------------------------
        client = httpx.AsyncClient(transport=transport, timeout=settings.request_timeout)
        try:
            app.state.proxy_handler = ProxyHandler.from_config(settings, client)
        except KeyError:
            await client.aclose()
            raise

        yield  # Application runs here.

        # --- Shutdown ----------------------------------------------------------
        await client.aclose()
        logger.info("Outbound HTTP client closed on shutdown.")

    app = FastAPI(
        title="Dream Pie",
        description="Text-to-image proxy that keeps provider credentials server-side.",
        version=__version__,
        lifespan=lifespan,
    )

    # Allow cross-origin requests so the static front-end can be served from
    # a different origin during development.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    async def generate_image(request: Request) -> JSONResponse:
        """Run the proxy handler on the raw request.

        The body is read unparsed so that malformed JSON is reported by the
        handler with the same ``{"error", "kind"}`` shape as every other
        failure.
        """
        handler: ProxyHandler = request.app.state.proxy_handler
        body = await request.body()
        result = await handler.handle(request.method, body)
        return JSONResponse(status_code=result.status_code, content=result.body)

    for path in dict.fromkeys([settings.proxy_path, LEGACY_PROXY_PATH]):
        app.add_api_route(path, generate_image, methods=PROXY_METHODS)

    @app.get("/api/health", response_model=HealthResponse)
    async def health(request: Request) -> HealthResponse:
        """Report the API version and the active provider."""
        handler: ProxyHandler = request.app.state.proxy_handler
        return HealthResponse(version=__version__, provider=handler.provider.name)

    return app


app = create_app()


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host and port from :data:`~dreampie.core.config.config` (which
    loads from ``DREAMPIE_SERVER_HOST`` and ``DREAMPIE_SERVER_PORT``
    environment variables).  Defaults to ``0.0.0.0:8888``.

    This function is registered as the ``dreampie`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(
        "dreampie.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
