import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

import app.models  # ensure models are registered
from app.core import config
from app.core.errors import LedgerError
from app.core.logging_config import setup_logging
from app.utils.database import engine, Base

from app.routers import (
    staff_router,
    loans_router,
    dashboard_router,
    reports_router,
)

setup_logging(config.LOG_LEVEL, config.LOG_FORMAT)
logger = logging.getLogger("app")


@asynccontextmanager
async def lifespan(_: FastAPI):
    # tables are created on startup, there are no migrations
    Base.metadata.create_all(bind=engine)
    logger.info("Database ready")
    yield
    engine.dispose()
    logger.info("Database connections closed")


app = FastAPI(title="Staff Loans API", version="1.0", lifespan=lifespan)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Errors -> {"error": "..."}
@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    if exc.status_code >= 500:
        logger.error(
            "%s %s failed: %s %s", request.method, request.url.path, exc.message, exc.details,
            extra={"path": request.url.path},
        )
        return JSONResponse(status_code=exc.status_code, content={"error": "Internal server error"})

    logger.warning(
        "%s %s rejected: %s", request.method, request.url.path, exc.message,
        extra={"path": request.url.path},
    )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    parts = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path"))
        parts.append(f"{field}: {err.get('msg')}" if field else str(err.get("msg")))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "; ".join(parts) or "Invalid request"},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(
        "Unhandled error on %s %s", request.method, request.url.path,
        exc_info=exc,
        extra={"path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


# Routers
app.include_router(staff_router.router)
app.include_router(loans_router.router)
app.include_router(dashboard_router.router)
app.include_router(reports_router.router)


@app.get("/")
def root():
    return {"message": "Staff Loans backend is running!!"}
