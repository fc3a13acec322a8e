"""Channel Accounts - user account, session and profile media service."""

import logging
import sys
import time

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from app.config import get_settings
from app.database import check_connection
from app.errors import ApiError
from app.rate_limit import limiter
from app.routers import users_router

# Logging
logger = logging.getLogger("channel_accounts")
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

settings = get_settings()

app = FastAPI(title="Channel Accounts", version="0.1.0")
app.state.limiter = limiter


def error_response(status_code: int, message: str, errors: list[str] | None = None) -> JSONResponse:
    """Render the failure envelope."""
    return JSONResponse(status_code=status_code, content={"message": message, "errors": errors or []})


# --- Security headers middleware ---
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


# --- Request size limit middleware ---
class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    # Two images plus form fields
    MAX_BODY_SIZE = (2 * settings.MAX_UPLOAD_SIZE_MB + 1) * 1024 * 1024

    async def dispatch(self, request: Request, call_next) -> Response:
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.MAX_BODY_SIZE:
            return error_response(413, "Request body too large")
        return await call_next(request)


# --- Audit logging middleware ---
class AuditLogMiddleware(BaseHTTPMiddleware):
    AUDIT_PATHS = {
        "/api/v1/users/register",
        "/api/v1/users/login",
        "/api/v1/users/logout",
        "/api/v1/users/refresh-token",
        "/api/v1/users/change-password",
        "/api/v1/users/update-account",
        "/api/v1/users/update-avatar",
        "/api/v1/users/update-cover",
    }

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - start) * 1000

        path = request.url.path
        if path in self.AUDIT_PATHS:
            logger.info(
                "AUDIT %s %s -> %d (%.0fms) from %s",
                request.method,
                path,
                response.status_code,
                duration_ms,
                request.client.host if request.client else "unknown",
            )

        return response


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestSizeLimitMiddleware)
app.add_middleware(AuditLogMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.CORS_ORIGIN.split(",") if origin.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routers
app.include_router(users_router)


# --- Error handlers: everything leaves as {"message", "errors"} ---
@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    """Render service errors with their own status and message."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.__cause__ or exc)
    return error_response(exc.status_code, exc.message, exc.errors)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Handle rate limit exceeded."""
    return error_response(429, "Rate limit exceeded. Try again later.")


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed requests as 400 with one message per offending field."""
    errors = [f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()]
    return error_response(400, "Invalid request", errors)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Render framework HTTP errors (404 route, 405 method) in the standard envelope."""
    return error_response(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected failures server-side and answer with a generic 500."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(500, "Internal server error")


# --- Health check ---
@app.get("/api/health")
def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok", "app": "channel-accounts", "version": "0.1.0"}


def run() -> None:
    """Verify the database connection, then serve. Exits with status 1 if the store is unreachable."""
    for warning in settings.validate():
        logger.warning(warning)

    try:
        check_connection()
    except SQLAlchemyError:
        logger.exception("Error while connecting to the database")
        sys.exit(1)

    logger.info("Database connected: %s", settings.DATABASE_URL.split("@")[-1])
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)


if __name__ == "__main__":
    run()
