import logging
import os

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

# Load env from the package's .env (tests configure the environment themselves)
package_dir = os.path.dirname(os.path.abspath(__file__))
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv(dotenv_path=os.path.join(package_dir, ".env"))

from spicereads.core.config import settings, validate_config
from spicereads.core.logging import configure_logging
from spicereads.core.middleware.request_id import RequestIdMiddleware
from spicereads.core.validation import validate_env
from spicereads.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    request_validation_error_handler,
    unhandled_exception_handler,
)
from spicereads.api import gamification, health

configure_logging(settings.ENV)
validate_env()
validate_config(strict=getattr(settings, "CONFIG_STRICT", False))

from contextlib import asynccontextmanager


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("spicereads")
    logger.info("Starting SpiceReads gamification service...")
    import time
    app.state.startup_time = time.time()
    try:
        yield
    finally:
        logging.getLogger("spicereads").info("Stopping SpiceReads gamification service...")


app = FastAPI(title="SpiceReads - Gamification", lifespan=lifespan)

# Middlewares
app.add_middleware(RequestIdMiddleware)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(HTTPException, http_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(gamification.router, tags=["gamification"])
app.include_router(health.root_router, tags=["health"])
