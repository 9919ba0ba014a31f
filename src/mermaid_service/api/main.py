"""Mermaid Service - FastAPI Application.

This module builds the FastAPI application, defines its routes and provides
the ``main()`` CLI function that launches the uvicorn server.

Architecture
------------
- **Configuration** comes from :class:`~mermaid_service.core.config.ServiceConfig`
  (``MERMAID_*`` environment variables), optionally overridden on the
  command line.
- **Rendering** is done by :class:`~mermaid_service.core.renderer.DiagramRenderer`,
  which shells out to mermaid-cli.
- **Caching** uses one :class:`~mermaid_service.core.cache.DiagramCache`
  created per application and stored on ``app.state``.  Nothing is global,
  so tests can build isolated apps with tiny caches and stub renderers.
- **The landing page** is resolved once at startup, see
  :mod:`mermaid_service.api.index_page`.

Endpoints
---------
========  ========================  ======================================
Method    Path                      Purpose
========  ========================  ======================================
GET       ``/``                     Serve the landing HTML page
GET       ``/diagram/{encoded}``    Render (or replay) a diagram as SVG
GET       ``/healthz``              Liveness plus cache statistics
========  ========================  ======================================

Usage
-----
CLI (installed entry point)::

    mermaid-service --listen :8080 --cache 256

Direct invocation::

    python -m mermaid_service.api.main
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import FileResponse, HTMLResponse, PlainTextResponse, Response

from mermaid_service import __version__
from mermaid_service.api.index_page import IndexPage, resolve_index_page, sample_url
from mermaid_service.core.cache import DiagramCache
from mermaid_service.core.config import ServiceConfig, load_config
from mermaid_service.core.encoding import decode_key
from mermaid_service.core.exceptions import ConfigError, DecodeError, RenderError
from mermaid_service.core.renderer import DiagramRenderer

logger = logging.getLogger(__name__)

SVG_MEDIA_TYPE = "image/svg+xml"

# Rendered output for a given key never changes, so clients may reuse it for
# a year.
CACHE_CONTROL = "max-stale=31536000"

router = APIRouter()


# ---------------------------------------------------------------------------
# Application lifecycle.
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Log startup details and drop cached diagrams on shutdown.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control back to the application for the duration of its lifetime.
    """
    config: ServiceConfig = app.state.config
    logger.info(
        "Server is listening on %s:%d (cache=%d, renderer=%s)",
        config.server_host,
        config.server_port,
        config.cache_size,
        config.renderer_command,
    )
    logger.info("Sample diagram: %s", sample_url())

    yield

    app.state.cache.clear()
    logger.info("Diagram cache cleared on shutdown.")


def create_app(
    config: ServiceConfig | None = None,
    *,
    cache: DiagramCache | None = None,
    renderer: DiagramRenderer | None = None,
    index_page: IndexPage | None = None,
) -> FastAPI:
    """Build a configured FastAPI application.

    Everything the routes need is resolved here, before the first request,
    so configuration problems stop the process instead of failing requests.

    Args:
        config: Service configuration.  Loaded from the environment when
            omitted.
        cache: Diagram cache.  A new ``DiagramCache(config.cache_size)``
            when omitted.
        renderer: Render pipeline.  Built from ``config`` when omitted.
        index_page: Landing page.  Resolved from ``config`` when omitted.

    Returns:
        The application, with ``config``, ``cache``, ``renderer`` and
        ``index_page`` stored on ``app.state``.

    Raises:
        ConfigError: If the configuration or the landing page is invalid.
    """
    if config is None:
        config = load_config()

    app = FastAPI(
        title="Mermaid Service",
        description="Render URL-encoded Mermaid diagrams to cached SVG.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.cache = cache if cache is not None else DiagramCache(config.cache_size)
    app.state.renderer = renderer if renderer is not None else DiagramRenderer.from_config(config)
    app.state.index_page = index_page if index_page is not None else resolve_index_page(config)

    app.include_router(router)
    return app


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


def _svg_response(svg: bytes) -> Response:
    return Response(
        content=svg,
        media_type=SVG_MEDIA_TYPE,
        headers={"Cache-Control": CACHE_CONTROL},
    )


@router.get("/", response_class=HTMLResponse)
async def index(request: Request) -> Response:
    """Serve the landing page chosen at startup."""
    page: IndexPage = request.app.state.index_page
    if page.is_external:
        return FileResponse(page.path, media_type="text/html")
    return HTMLResponse(content=page.content)


@router.get("/diagram/{encoded:path}")
def diagram(encoded: str, request: Request) -> Response:
    """Render the diagram encoded in the path, or replay it from cache.

    The handler is a plain ``def`` so Starlette runs it in its worker thread
    pool; a slow renderer blocks only this request.

    The raw ``encoded`` segment is the cache key.  Only on a miss is it
    decoded and rendered, and only a successful render is cached.

    Args:
        encoded: URL-safe, unpadded base64 of the Mermaid source.
        request: Incoming request, used to reach ``app.state``.

    Returns:
        200 ``image/svg+xml`` on success, 400 plain text for an empty or
        undecodable key, 500 plain text when rendering fails.
    """
    logger.info("Handle /diagram/%s", encoded)

    if not encoded:
        return PlainTextResponse("Bad request: empty diagram", status_code=400)

    cache: DiagramCache = request.app.state.cache
    cached = cache.get(encoded)
    if cached is not None:
        return _svg_response(cached)

    try:
        source = decode_key(encoded)
    except DecodeError as e:
        logger.warning("Unable to decode base64: %s", e)
        return PlainTextResponse(f"Bad request: {e}", status_code=400)

    renderer: DiagramRenderer = request.app.state.renderer
    try:
        svg = renderer.render(source)
    except RenderError as e:
        return PlainTextResponse(f"Unable to handle request: {e}", status_code=500)

    cache.put(encoded, svg)
    return _svg_response(svg)


@router.get("/healthz")
async def healthz(request: Request) -> dict:
    """Return service status and a snapshot of the cache counters."""
    return {
        "status": "ok",
        "version": __version__,
        "cache": request.app.state.cache.stats(),
    }


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def _parse_listen(value: str) -> tuple[str, int]:
    """Split ``HOST:PORT`` (or ``:PORT``) into its parts."""
    host, sep, port = value.rpartition(":")
    if not sep:
        raise argparse.ArgumentTypeError(f"expected HOST:PORT, got {value!r}")
    try:
        return host or "0.0.0.0", int(port)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port in {value!r}") from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mermaid-service",
        description="Serve Mermaid diagrams rendered to SVG.",
    )
    parser.add_argument(
        "--listen",
        type=_parse_listen,
        help="HTTP address to listen on, e.g. :8080 (default: MERMAID_SERVER_HOST/PORT)",
    )
    parser.add_argument(
        "--cache",
        type=int,
        help="Number of cached diagrams (default: MERMAID_CACHE_SIZE or 256)",
    )
    parser.add_argument(
        "--external",
        action="store_true",
        default=None,
        help="Serve MERMAID_RESOURCE_DIR/index.html instead of the bundled page",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """Launch the uvicorn ASGI server.

    Command-line flags override the matching ``MERMAID_*`` settings.  Any
    configuration error is logged and the process exits with status 1
    before binding a socket.

    This function is registered as the ``mermaid-service`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    args = build_parser().parse_args(argv)
    overrides: dict = {}
    if args.listen is not None:
        overrides["server_host"], overrides["server_port"] = args.listen
    if args.cache is not None:
        overrides["cache_size"] = args.cache
    if args.external:
        overrides["external_index"] = True

    try:
        config = load_config(**overrides)
        app = create_app(config)
    except ConfigError as e:
        logger.error("Unable to start: %s", e)
        sys.exit(1)

    logging.getLogger().setLevel(config.log_level)

    uvicorn.run(
        app,
        host=config.server_host,
        port=config.server_port,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
