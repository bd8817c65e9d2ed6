"""
Main API module for Shortlink Platform.

Responsibilities:
    - Expose REST endpoints for creating short links, redirecting and statistics
    - Record a click (referrer, client address) on every successful redirect
    - Map store error kinds to HTTP status codes with a uniform error body
    - Wire logging, CORS and security headers

Architecture:
    - App Factory pattern (create_app) for test isolation and DI.
    - One ShortLinkStore per app; it holds all state and all business rules.
    - Routes are sync functions, so FastAPI runs them on its worker thread
      pool; the store is thread-safe.

Endpoints:
    POST /shorturls               -> 201 {shortLink, expiry}
    GET  /shorturls/{shortcode}   -> 200 statistics | 404
    GET  /api/urls                -> 200 statistics for every link (expired included)
    GET  /api/summary             -> 200 totals across all links
    GET  /health                  -> 200 {status, timestamp}
    GET  /{shortcode}             -> 301 redirect | 404

Run:
    uvicorn main:app --port 5000
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse, Response
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from shortlink_platform.analytics.analytics import format_timestamp
from shortlink_platform.config import settings
from shortlink_platform.errors import ErrorKind, StoreError
from shortlink_platform.manager.shortlink_store import ShortLinkStore, utcnow
from shortlink_platform.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware

# kind -> (status, error title, message shown to clients)
ERROR_RESPONSES: Dict[ErrorKind, Tuple[int, str, str]] = {
    ErrorKind.INVALID_URL: (
        400,
        "Invalid URL format",
        "Please provide a valid URL starting with http:// or https://",
    ),
    ErrorKind.INVALID_VALIDITY: (
        400,
        "Invalid validity period",
        "Validity must be a positive number representing minutes",
    ),
    ErrorKind.INVALID_SHORTCODE: (
        400,
        "Invalid custom shortcode",
        "Custom shortcode must be alphanumeric and 3-20 characters long",
    ),
    ErrorKind.SHORTCODE_COLLISION: (
        409,
        "Shortcode collision",
        "The provided custom shortcode already exists. Please choose a different one.",
    ),
    ErrorKind.GENERATION_EXHAUSTED: (
        503,
        "Service temporarily unavailable",
        "Unable to generate a unique shortcode. Please try again.",
    ),
    ErrorKind.NOT_FOUND: (
        404,
        "Short URL not found",
        "The requested short URL does not exist or has expired",
    ),
}

STATIC_NAMES = frozenset({"favicon.ico", "manifest.json", "robots.txt"})


class ShortURLRequest(BaseModel):
    """
    Request payload for creating a new short link.

    Fields are loosely typed on purpose: a wrong type (e.g. "validity": "ten")
    is reported by the store as a 400 with its error kind, not as a 422.
    """
    url: Optional[Any] = None
    validity: Optional[Any] = None
    shortcode: Optional[Any] = None


def error_response(status_code: int, error: str, message: str, headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    return JSONResponse({"error": error, "message": message}, status_code=status_code, headers=headers)


def store_error_response(err: StoreError) -> JSONResponse:
    status_code, error, message = ERROR_RESPONSES[err.kind]
    headers = {"Retry-After": "1"} if status_code == 503 else None
    return error_response(status_code, error, message, headers=headers)


def create_app(store: Optional[ShortLinkStore] = None) -> FastAPI:
    """
    Factory function to build and configure a new FastAPI app instance.

    Args:
        store (Optional[ShortLinkStore]): Store to serve; a fresh one built
            from settings when omitted.

    Returns:
        FastAPI: A fully configured application with its own store.
    """
    app = FastAPI(
        title="Shortlink Platform",
        description="URL shortener with expiring links and per-click analytics",
        docs_url="/docs",
    )
    log = logging.getLogger("shortlink_platform.api")

    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    store = store if store is not None else ShortLinkStore()
    app.state.store = store
    log.info("Shortlink store ready: base_url=%s", store.base_url)

    # last added runs first: logging wraps security headers, which wrap CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware)

    # ----------------------------------------------------------------
    # Error handlers
    # ----------------------------------------------------------------
    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            log.info("Route not found: %s", request.url.path)
            return error_response(404, "Route not found", "The requested endpoint does not exist")
        return error_response(exc.status_code, str(exc.detail), str(exc.detail), headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        log.warning("Malformed request to %s: %s", request.url.path, exc.errors())
        return error_response(400, "Invalid request", "Request body must be a JSON object")

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        log.exception("Unhandled error on %s %s", request.method, request.url.path)
        return error_response(500, "Internal server error", "An unexpected error occurred")

    # ----------------------------------------------------------------
    # Routes
    # ----------------------------------------------------------------
    @app.get("/health")
    def health() -> Dict[str, str]:
        return {"status": "OK", "timestamp": format_timestamp(utcnow())}

    @app.post("/shorturls", status_code=201)
    def create_short_url(req: ShortURLRequest) -> Any:
        """
        Create a short link.

        Returns:
            201 {"shortLink": str, "expiry": ISO-8601 str}

        Errors:
            400 missing/invalid url, invalid validity, invalid shortcode;
            409 shortcode taken; 503 generator exhausted.
        """
        if req.url is None or req.url == "":
            return error_response(400, "URL is required", "Please provide a valid URL to shorten")

        result = store.create_short_url(req.url, req.validity, req.shortcode)
        if isinstance(result, StoreError):
            return store_error_response(result)
        return {"shortLink": result.short_link, "expiry": format_timestamp(result.expires_at)}

    @app.get("/shorturls/{shortcode}")
    def get_statistics(shortcode: str) -> Any:
        statistics = store.get_statistics(shortcode)
        if statistics is None:
            log.info("Statistics not found for shortcode %s", shortcode)
            return store_error_response(StoreError(ErrorKind.NOT_FOUND, "Unknown or expired shortcode"))
        return statistics

    @app.get("/api/urls")
    def list_urls() -> List[Dict[str, Any]]:
        """Every link ever created, expired ones included."""
        return store.list_all()

    @app.get("/api/summary")
    def summary() -> Dict[str, int]:
        return store.summary()

    @app.get("/{shortcode}")
    def redirect_shortcode(shortcode: str, request: Request) -> Response:
        """
        Redirect to the original URL (301) and record the click.

        The click is best-effort: a failed record is logged and the redirect
        still happens.
        """
        if "." in shortcode or shortcode in STATIC_NAMES:
            return error_response(404, "Not found", "Static file not found")

        entry = store.get_entry_by_shortcode(shortcode)
        if entry is None:
            log.info("Shortcode not found or expired: %s", shortcode)
            return store_error_response(StoreError(ErrorKind.NOT_FOUND, "Unknown or expired shortcode"))

        referrer = request.headers.get("referer")
        client_ip = request.client.host if request.client else None
        if not store.record_click(shortcode, referrer=referrer, source_ip=client_ip):
            log.warning("Click not recorded for shortcode %s", shortcode)

        return RedirectResponse(url=entry.original_url, status_code=301)

    return app


# `uvicorn main:app` and `from main import app` keep working.
app = create_app()
