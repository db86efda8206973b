import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv()

from career_momentum.api import health, progress
from career_momentum.core.config import settings, validate_config
from career_momentum.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    request_validation_handler,
    unhandled_exception_handler,
)
from career_momentum.core.logging import configure_logging
from career_momentum.core.middleware.request_id import RequestIdMiddleware
from career_momentum.core.validation import validate_env

configure_logging(settings.ENV)
validate_env()
validate_config(strict=getattr(settings, "CONFIG_STRICT", False))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("career_momentum")
    logger.info("Starting career momentum service...")
    try:
        yield
    finally:
        logger.info("Stopping career momentum service...")


app = FastAPI(title="Career Momentum & Progress Intelligence", lifespan=lifespan)

app.add_middleware(RequestIdMiddleware)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(HTTPException, http_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(progress.router)
app.include_router(health.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("career_momentum.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
