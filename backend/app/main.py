"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1 import agents, auth, batch, claims, customers, payments, policies
from app.core.config import settings
from app.core.logging import get_logger, setup_logging
from app.rules.errors import (
    ConstraintViolation,
    InvariantViolation,
    ReferenceNotFound,
    RuleError,
    TransactionConflict,
)

logger = get_logger(__name__)

ERROR_STATUS: dict[type[RuleError], int] = {
    ConstraintViolation: status.HTTP_409_CONFLICT,
    ReferenceNotFound: status.HTTP_404_NOT_FOUND,
    InvariantViolation: status.HTTP_422_UNPROCESSABLE_ENTITY,
    TransactionConflict: status.HTTP_409_CONFLICT,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle hooks."""
    setup_logging("DEBUG" if settings.APP_ENV == "development" else settings.LOG_LEVEL)
    startup_logger = get_logger("startup")
    startup_logger.info("Application starting", env=settings.APP_ENV)
    yield
    startup_logger.info("Application shutting down")


app = FastAPI(
    title="Policy Rules API",
    description="Insurance back-office rules: claims, policies, commission, audit and batch jobs",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RuleError)
async def rule_error_handler(request: Request, exc: RuleError) -> JSONResponse:
    """Map the rule-engine taxonomy onto HTTP status codes."""
    status_code = next(
        (code for err_type, code in ERROR_STATUS.items() if isinstance(exc, err_type)),
        status.HTTP_400_BAD_REQUEST,
    )
    logger.info(
        "Request rejected by rule engine",
        path=request.url.path,
        error=type(exc).__name__,
        entity=exc.entity,
        entity_id=exc.entity_id,
        status_code=status_code,
    )
    return JSONResponse(status_code=status_code, content={"detail": exc.to_dict()})


API_PREFIX = "/api/v1"
app.include_router(auth.router, prefix=API_PREFIX)
app.include_router(customers.router, prefix=API_PREFIX)
app.include_router(agents.router, prefix=API_PREFIX)
app.include_router(policies.router, prefix=API_PREFIX)
app.include_router(claims.router, prefix=API_PREFIX)
app.include_router(payments.router, prefix=API_PREFIX)
app.include_router(batch.router, prefix=API_PREFIX)


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Public health-check endpoint."""
    return {"status": "ok", "env": settings.APP_ENV}
