"""
Human Resource System - Main Application

FastAPI backend with:
- PostgreSQL via SQLAlchemy (raw SQL, SQLite for tests)
- JWT authentication with email two-factor login
- Role and permission based authorization
- Local document storage served from /uploads

Run: uvicorn app.main:app --reload
"""

import logging
import os

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import IntegrityError

from app.api.routes import api_router
from app.core.config import get_settings
from app.core.logging import configure_logging
from app.db import init_db, test_db_connection

settings = get_settings()
configure_logging(settings.log_level)

logger = logging.getLogger(__name__)

os.makedirs(settings.upload_dir, exist_ok=True)

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="""
    Job board API for companies, employers and job seekers.

    ## Features
    - **Authentication**: Registration, JWT login with email two-factor codes, password reset
    - **Companies**: Company accounts with optional admin approval
    - **Jobs**: Posting, search and filtering
    - **Applications**: Apply, review and withdraw
    - **Job Seekers**: Profile, addresses, education, experience, references
    - **Documents**: Uploads for users and companies
    - **Notifications**: In-app notifications with email delivery
    - **Admin**: Roles, permissions, users, statistics and audit logs
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================
# ERROR HANDLERS
# ============================================================

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Invalid request bodies and parameters are reported as 400."""
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", ""),
            "type": err.get("type", ""),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=jsonable_encoder({"detail": "Validation failed", "errors": errors}),
    )


@app.exception_handler(IntegrityError)
async def integrity_exception_handler(request: Request, exc: IntegrityError):
    logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    return JSONResponse(status_code=409, content={"detail": "Resource already exists or conflicts with existing data"})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# Include API routes
app.include_router(api_router, prefix="/api")

# Uploaded documents
app.mount("/uploads", StaticFiles(directory=settings.upload_dir), name="uploads")


# Startup event
@app.on_event("startup")
async def startup_event():
    """Create tables, seed roles/permissions and the bootstrap admin."""
    if not settings.auto_create_tables:
        logger.info("AUTO_CREATE_TABLES disabled; skipping schema setup")
        return
    init_db(settings.admin_email, settings.admin_password)
    logger.info("Database schema and seed data ready")


@app.get("/", tags=["Health"])
async def root():
    return {"status": "healthy", "app": settings.app_name, "docs": "/docs"}


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check."""
    database_ok = test_db_connection()
    return {
        "status": "healthy" if database_ok else "degraded",
        "database": "connected" if database_ok else "disconnected",
        "environment": settings.environment,
    }
