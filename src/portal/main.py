# ───────────────────────────────────────────────────────────────
import logging
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import configure_mappers

# ─── Local imports ─────────────────────────────────────────────
from src.portal.config.settings import CORS_ORIGINS
from src.portal.db.session import create_db_and_tables
from src.portal.utils.exceptions import PersistenceException, PortalException

# Every table must be registered before mappers are configured
import src.portal.models  # noqa: F401

from src.portal.routers import (
    admin_router,
    application_router,
    document_router,
    lms_admin_router,
    lms_student_router,
    notification_router,
    payment_router,
    task_router,
)

# ─── Logging ───────────────────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# ─── FastAPI app ───────────────────────────────────────────────
app = FastAPI(
    title="Internship Portal",
    description="API for internship applications, payments, documents and the learning portal",
    version="1.0.0",
)

# ─── Middlewares ───────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─── Error handlers ────────────────────────────────────────────
@app.exception_handler(PortalException)
async def portal_exception_handler(request: Request, exc: PortalException):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.error_code} {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}", exc_info=True)
    error = PersistenceException("A database error occurred, please retry")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


# ─── Startup ───────────────────────────────────────────────────
@app.on_event("startup")
async def on_startup():
    logger.info("Configuring SQLAlchemy mappers...")
    try:
        configure_mappers()
    except Exception as e:
        logger.error(f"Mapper configuration failed: {e}", exc_info=True)
        raise

    logger.info("Creating database and tables...")
    try:
        create_db_and_tables()
    except Exception as e:
        logger.error(f"Failed to create database and tables: {e}", exc_info=True)
        raise


# ─── Routers ───────────────────────────────────────────────────
app.include_router(application_router.router, prefix="/api/applications")
app.include_router(payment_router.router, prefix="/api/payments")
app.include_router(admin_router.router, prefix="/api/admin")
app.include_router(document_router.router, prefix="/api/admin")
app.include_router(document_router.public_router, prefix="/api/documents")
app.include_router(lms_admin_router.router, prefix="/api/admin/lms")
app.include_router(lms_student_router.router, prefix="/api/lms")
app.include_router(lms_student_router.public_router, prefix="/api/lms")
app.include_router(notification_router.router, prefix="/api/notifications")
app.include_router(task_router.router, prefix="/api/activity")


# ─── Simple endpoints ──────────────────────────────────────────
@app.get("/")
async def root():
    return {
        "message": "Welcome to the Internship Portal API",
        "docs_url": "/docs",
        "redoc_url": "/redoc",
    }


@app.get("/health")
async def health_check():
    return {"status": "ok", "timestamp": datetime.utcnow().isoformat()}
