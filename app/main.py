"""FastAPI application entry point for the lecture survey service.

This module initializes the FastAPI application, sets up logging,
registers routers, and maps application errors to HTTP responses.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.config import get_settings
from app.exceptions import LectureNotFoundError, PreconditionError
from app.logging_config import setup_logging, get_logger
from app.routes import closure, health, responses, results
from app.services.question_set_loader import get_active_question_set

# Initialize logger (will be configured during startup)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Startup:
    - Configure logging
    - Load the configured question set so a broken file fails fast

    Args:
        app: FastAPI application instance

    Yields:
        None
    """
    settings = get_settings()
    setup_logging()

    question_set = get_active_question_set()

    logger.info(
        f"Lecture survey service starting - "
        f"Environment: {settings.environment}, "
        f"Log Level: {settings.log_level}, "
        f"Database: {settings.database_url.split('@')[-1] if '@' in settings.database_url else 'configured'}, "
        f"Question set: {question_set.metadata.id} {question_set.metadata.version}, "
        f"Timezone: {settings.survey_timezone}"
    )

    yield

    logger.info("Lecture survey service shutting down")


app = FastAPI(
    title="Lecture Survey Service",
    description="Closes lecture feedback surveys at their deadline and stores aggregated results",
    version="1.0.0",
    lifespan=lifespan
)


@app.get("/")
async def root() -> dict:
    """Root endpoint with basic API information.

    Returns:
        dict: API information and status
    """
    settings = get_settings()
    return {
        "service": "Lecture Survey Service",
        "version": "1.0.0",
        "environment": settings.environment,
        "status": "operational"
    }


app.include_router(health.router, tags=["Health"])
app.include_router(closure.router, tags=["Closure"])
app.include_router(results.router, tags=["Results"])
app.include_router(responses.router, tags=["Responses"])


@app.exception_handler(PreconditionError)
async def precondition_exception_handler(request: Request, exc: PreconditionError) -> JSONResponse:
    """Map a lecture precondition failure that escaped a route to 404/409."""
    status_code = 404 if isinstance(exc, LectureNotFoundError) else 409
    logger.warning(f"Precondition failed for {request.method} {request.url}: {exc}")
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.code, "message": str(exc)}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler for unhandled exceptions.

    Contract violations end up here too: they are bugs, not client errors.
    Returns a generic error response to prevent leaking internals.

    Args:
        request: FastAPI request object
        exc: Exception that was raised

    Returns:
        JSONResponse: Generic error response
    """
    logger.error(
        f"Unhandled exception for {request.method} {request.url}: {exc}",
        exc_info=True
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": "An unexpected error occurred. Please try again later."
        }
    )
