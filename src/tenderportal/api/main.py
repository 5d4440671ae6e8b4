"""HTTP application: middleware, error mapping and router mounting."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from ..config import settings
from ..exceptions import DomainError
from ..logging import clear_request_context, get_logger
from .routers import admin, applications, auth, health, profile, tenders, uploads

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Create the schema on startup and verify the connection."""
    logger.info(
        "API starting",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment
    )

    from ..db import check_database_health, init_database
    init_database()
    if check_database_health():
        logger.info("Database reachable")
    else:
        logger.error("Database unreachable at startup")

    yield

    logger.info("API stopped")


app = FastAPI(
    title="TenderPortal API",
    description="Tender publication, bidder applications and account administration",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)


@app.middleware("http")
async def reset_log_context(request: Request, call_next):
    """Drop context bound by the previous request."""
    clear_request_context()
    return await call_next(request)


@app.exception_handler(DomainError)
async def domain_exception_handler(request: Request, exc: DomainError):
    """Map domain errors to their HTTP status."""

    logger.info(
        "Request rejected",
        path=request.url.path,
        method=request.method,
        status_code=exc.status_code,
        error=exc.message,
    )

    content = {"detail": exc.message}
    if exc.details is not None:
        content["details"] = exc.details

    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies and parameters are reported as 400."""

    return JSONResponse(
        status_code=400,
        content={
            "detail": "Invalid input data",
            "details": jsonable_encoder(exc.errors()),
        }
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Anything not mapped above becomes an opaque 500."""

    logger.error(
        "Unhandled exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        exc_info=exc
    )

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error": str(exc) if settings.debug else "An error occurred"
        }
    )


app.include_router(health.router, tags=["Health"])
app.include_router(auth.router, prefix="/api/v1/auth", tags=["Auth"])
app.include_router(tenders.router, prefix="/api/v1/tenders", tags=["Tenders"])
app.include_router(uploads.router, prefix="/api/v1/uploads", tags=["Uploads"])
app.include_router(applications.router, prefix="/api/v1/tender-applications", tags=["Applications"])
app.include_router(admin.router, prefix="/api/v1/admin", tags=["Admin"])
app.include_router(profile.router, prefix="/api/v1/user", tags=["Profile"])


@app.get("/")
async def root():
    return {
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "docs": "/docs",
        "health": "/health"
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "tenderportal.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level="info"
    )
