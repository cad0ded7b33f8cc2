from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
from datetime import datetime
import time

from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from siwes_portal.core.config import settings
from siwes_portal.core.database import close_db, init_db
from siwes_portal.core.exceptions import SiwesError, format_validation_errors
from siwes_portal.core.logging_config import logger
from siwes_portal.core.middleware import (
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
    RequestSizeLimitMiddleware,
)
from siwes_portal.core.rate_limiter import limiter, rate_limit_exceeded_handler
from siwes_portal.api.v1.router import api_router
from siwes_portal.services.token_cleanup import token_cleanup

STARTED_AT = time.monotonic()


def validate_critical_config():
    """Fail fast on settings the app cannot run without"""
    errors = []

    if not settings.DATABASE_URL:
        errors.append("DATABASE_URL is not set")
    if not settings.SECRET_KEY or settings.SECRET_KEY == "CHANGE_ME":
        errors.append("SECRET_KEY is not set or using default value")
    if not settings.JWT_SECRET_KEY or settings.JWT_SECRET_KEY == "CHANGE_ME":
        errors.append("JWT_SECRET_KEY is not set or using default value")

    if errors:
        for err in errors:
            logger.critical(f"[Startup] CRITICAL: {err}")
        raise RuntimeError(f"Missing critical configuration: {', '.join(errors)}")

    if settings.is_production and not settings.RATE_LIMIT_ENABLED:
        logger.warning("[Startup] WARNING: rate limiting is disabled in production")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup and shutdown"""
    logger.info("=" * 60)
    logger.info(f"Starting {settings.APP_NAME}...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info("=" * 60)

    validate_critical_config()
    await init_db()
    logger.info("[Startup] Database tables ready")

    if settings.TOKEN_CLEANUP_ENABLED:
        await token_cleanup.start()
    else:
        logger.info("Token cleanup service disabled")

    yield

    logger.info(f"Shutting down {settings.APP_NAME}...")
    if settings.TOKEN_CLEANUP_ENABLED:
        await token_cleanup.stop()
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    description="SIWES tracking portal: logbooks, attendance and supervisor assignment",
    version="1.0.0",
    docs_url=f"{settings.API_PREFIX}/docs",
    redoc_url=None,
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
    lifespan=lifespan,
    redirect_slashes=False
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# Order matters - last added runs first
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestSizeLimitMiddleware, max_size=settings.MAX_REQUEST_SIZE)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Response-Time"],
)


# Exception handlers
@app.exception_handler(SiwesError)
async def siwes_error_handler(request: Request, exc: SiwesError):
    if exc.status_code >= 500:
        logger.error(f"[{exc.code}] {exc.message}", exc_info=True)
    else:
        logger.info(f"[{exc.code}] {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = "Route not found" if exc.status_code == 404 and exc.detail == "Not Found" else exc.detail
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": message},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={
            "error": "Validation failed",
            "code": "VALIDATION_ERROR",
            "details": format_validation_errors(exc.errors()),
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.log_error_with_context(exc, context=f"{request.method} {request.url.path}")
    content = {"error": "Internal server error"}
    if not settings.is_production:
        content["message"] = str(exc)
    return JSONResponse(status_code=500, content=content)


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {
        "status": "ok",
        "timestamp": datetime.utcnow().isoformat() + "Z",
        "uptime": round(time.monotonic() - STARTED_AT, 3),
        "environment": settings.ENVIRONMENT
    }


# Uploaded files (logbook images, ITF forms)
settings.UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=str(settings.UPLOAD_DIR)), name="uploads")

app.include_router(api_router, prefix=settings.API_PREFIX)


def run():
    """Console entry point: serve the API with uvicorn"""
    import uvicorn
    uvicorn.run(
        "siwes_portal.main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        reload=settings.DEBUG
    )


if __name__ == "__main__":
    run()
