from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from hivecommunity import __version__
from hivecommunity.core.config import settings
from hivecommunity.core.database import get_engine, init_db, close_db
from hivecommunity.core.exceptions import HiveError
from hivecommunity.core.logging_config import logger
from hivecommunity.core.middleware import (
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
)
from hivecommunity.api.v1.router import api_router
from hivecommunity.services.document_store import DocumentStore


def validate_critical_config() -> None:
    """Warn about settings that leave the service insecure or half-usable"""
    if settings.JWT_SECRET_KEY == "CHANGE_ME":
        if settings.ENVIRONMENT == "production":
            raise RuntimeError("JWT_SECRET_KEY must be set in production")
        logger.warning("[Startup] JWT_SECRET_KEY is the default value; tokens are forgeable")
    if not settings.ADMIN_API_TOKEN:
        logger.warning("[Startup] ADMIN_API_TOKEN is empty; admin endpoints are disabled")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the document store at startup and close it at shutdown"""
    logger.info("=" * 60)
    logger.info(f"Starting {settings.APP_NAME}...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"API Version: {settings.API_VERSION}")
    logger.info("=" * 60)

    validate_critical_config()

    engine = get_engine()
    await init_db(engine)
    app.state.store = DocumentStore.from_engine(engine)
    logger.info("Document store ready")

    yield

    logger.info(f"Shutting down {settings.APP_NAME}...")
    app.state.store.close()
    app.state.store = None
    await close_db()


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    description="Hive and member applications, credentials, events and volunteering",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    redirect_slashes=False
)

# Add middleware (order matters - last added runs first)
# 1. Request logging (runs first for all requests)
app.add_middleware(RequestLoggingMiddleware)

# 2. Security headers
app.add_middleware(SecurityHeadersMiddleware)

# 3. CORS - Origins from CORS_ORIGINS_STR in .env
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Response-Time"],
)


# Exception handlers
@app.exception_handler(HiveError)
async def hive_error_handler(request: Request, exc: HiveError):
    if exc.status_code >= 500:
        logger.log_error_with_context(exc, context=f"{request.method} {request.url.path}")
    else:
        logger.warning(f"{request.method} {request.url.path} -> {exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Global exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "code": "INTERNAL_ERROR",
            "message": str(exc) if settings.DEBUG else "Failed to process the request",
            "details": {},
        }
    )


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "app_name": settings.APP_NAME,
        "version": __version__,
        "environment": settings.ENVIRONMENT
    }


# Include API router
app.include_router(api_router, prefix=f"/api/{settings.API_VERSION}")


def run():
    import uvicorn
    uvicorn.run(
        "hivecommunity.main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        reload=settings.DEBUG
    )


if __name__ == "__main__":
    run()
