"""FastAPI application for Jira AI Breakdown."""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import get_settings
from .deps import get_jira_client
from .errors import ConfigurationError, JiraBreakdownError
from .logger import get_logger, setup_logging
from .routers import jira

settings = get_settings()
setup_logging(settings)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info("Starting Jira AI Breakdown", jira_url=settings.jira_url or None)
    yield
    await get_jira_client().close()
    logger.info("Shutting down Jira AI Breakdown")


app = FastAPI(title="Jira AI Breakdown API", lifespan=lifespan)

# CORS middleware (the extension popup calls from its own origin)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(JiraBreakdownError)
async def breakdown_error_handler(request: Request, exc: JiraBreakdownError) -> JSONResponse:
    status_code = 400 if isinstance(exc, ConfigurationError) else 502
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": exc.message, "error_type": exc.error_type}
    )


# Include routers
app.include_router(jira.router, prefix="/api/jira", tags=["jira"])
