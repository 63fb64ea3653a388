import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from peewee import IntegrityError, OperationalError

from config import get_settings
from database.init import init_from_env
from services.access import AccessDeniedError
from services.profile_service import ensure_bootstrap_admin
from services.validators import FieldValidationError, NotFoundError
from utils.logging_config import setup_logging
from .api.router import router as api_router
from .web.router import router as web_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    setup_logging(settings)
    init_from_env(settings.database_url or None)
    ensure_bootstrap_admin(settings)
    logger.info("🚀 Back-office started")
    yield


app = FastAPI(title="Travel back-office", lifespan=lifespan)
app.include_router(api_router, prefix="/api")
app.include_router(web_router)


@app.exception_handler(FieldValidationError)
async def field_validation_handler(request: Request, exc: FieldValidationError):
    return JSONResponse(status_code=422, content={"detail": exc.message, "field": exc.field})


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(AccessDeniedError)
async def access_denied_handler(request: Request, exc: AccessDeniedError):
    return JSONResponse(status_code=403, content={"detail": str(exc)})


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning("❌ Integrity error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=409, content={"detail": "The record conflicts with existing data"}
    )


@app.exception_handler(OperationalError)
async def operational_error_handler(request: Request, exc: OperationalError):
    logger.error("❌ Database unavailable on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Database is unavailable"})


@app.get("/ping")
def ping():
    return {"message": "pong"}
