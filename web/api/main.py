"""FastAPI guestbook app: public pages/API, admin API and pages, embeddable widget."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from guestbook.models import ensure_schema
from guestbook.services.app_config import environment_defaults
from web.api.admin_pages import router as admin_pages_router
from web.api.auth_routes import router as auth_router
from web.api.cors import CorsPolicy
from web.api.moderation_routes import router as moderation_router
from web.api.routes import router as public_router
from web.api.settings_routes import router as settings_router
from web.auth import uses_insecure_secret
from web.pages import load_assets

logger = logging.getLogger("guestbook.http")


@asynccontextmanager
async def lifespan(app: FastAPI):
    if uses_insecure_secret(app.state.env_defaults):
        logger.warning(
            "Neither SESSION_SECRET nor ADMIN_PASSWORD is set - sessions are signed with an insecure default secret"
        )
    await ensure_schema()
    yield


app = FastAPI(title="Guestbook", lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)

# Built once per process and handed to routes through app.state
app.state.env_defaults = environment_defaults()
app.state.cors = CorsPolicy()
app.state.assets = load_assets()


class PreflightMiddleware(BaseHTTPMiddleware):
    """Answer every CORS preflight with the fixed header set before any routing."""

    async def dispatch(self, request, call_next):
        if request.method == "OPTIONS":
            return Response(headers=request.app.state.cors.preflight_headers())
        return await call_next(request)


class ErrorBoundaryMiddleware(BaseHTTPMiddleware):
    """Turn any uncaught exception into a 500 JSON response."""

    async def dispatch(self, request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            logger.exception("Unhandled error on %s %s", request.method, request.url.path)
            return JSONResponse({"success": False, "error": str(e)}, status_code=500)


app.add_middleware(PreflightMiddleware)
app.add_middleware(ErrorBoundaryMiddleware)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request, exc: StarletteHTTPException):
    """Render HTTP errors (401, 403, 404, 405...) in the API's JSON shape."""
    return JSONResponse(
        {"success": False, "error": exc.detail},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc: RequestValidationError):
    """Malformed path or query parameters (e.g. a non-numeric entry id)."""
    errors = exc.errors()
    message = errors[0]["msg"] if errors else "Invalid request"
    return JSONResponse({"success": False, "error": message}, status_code=422)


app.include_router(public_router)
app.include_router(auth_router)
app.include_router(settings_router)
app.include_router(moderation_router)
app.include_router(admin_pages_router)
