import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from assessment_platform import __version__
from assessment_platform.api.v1.router import api_router
from assessment_platform.core.config import settings
from assessment_platform.core.database import close_db
from assessment_platform.core.exceptions import (
    ApplicationError,
    AuditLogImmutableError,
    AuthenticationError,
    AuthorizationError,
    BusinessLogicError,
    ConcurrencyConflictError,
    ConflictError,
    NotFoundError,
    TransientStoreError,
    ValidationError,
)
from assessment_platform.core.logging import configure_logging

logger = logging.getLogger(__name__)

# Most specific class first; resolved along the exception's MRO
ERROR_STATUS_CODES = {
    ValidationError: 422,
    BusinessLogicError: 422,
    AuthenticationError: 401,
    AuthorizationError: 403,
    NotFoundError: 404,
    ConcurrencyConflictError: 409,
    ConflictError: 409,
    AuditLogImmutableError: 409,
    TransientStoreError: 503,
}


def status_code_for(exc: ApplicationError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[cls]
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    logger.info(f"[API] {settings.APP_NAME} {__version__} starting")
    yield
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    description="Compliance assessment workflow API",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ApplicationError)
async def application_error_handler(request: Request, exc: ApplicationError):
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error(f"[API] {request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"[API] {request.method} {request.url.path} → {status_code} {exc.error_code}")

    headers = {"Retry-After": "1"} if exc.retryable else None
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "error_code": exc.error_code, "details": exc.details},
        headers=headers,
    )


# Include API routes
app.include_router(api_router)


@app.get("/")
async def root():
    return {"message": settings.APP_NAME, "version": __version__}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
