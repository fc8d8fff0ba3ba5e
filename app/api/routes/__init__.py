"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from app.api.routes.auth_routes import router as auth_router
from app.api.routes.user_routes import router as user_router
from app.api.routes.company_routes import router as company_router
from app.api.routes.settings_routes import router as settings_router
from app.api.routes.job_routes import router as job_router
from app.api.routes.employer_routes import router as employer_router
from app.api.routes.application_routes import router as application_router
from app.api.routes.job_seeker_routes import router as job_seeker_router
from app.api.routes.document_routes import router as document_router
from app.api.routes.notification_routes import router as notification_router
from app.api.routes.email_template_routes import router as email_template_router
from app.api.routes.role_routes import router as role_router
from app.api.routes.admin_routes import router as admin_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(auth_router)
api_router.include_router(user_router)
api_router.include_router(company_router)
api_router.include_router(settings_router)
api_router.include_router(job_router)
api_router.include_router(employer_router)
api_router.include_router(application_router)
api_router.include_router(job_seeker_router)
api_router.include_router(document_router)
api_router.include_router(notification_router)
api_router.include_router(email_template_router)
api_router.include_router(role_router)
api_router.include_router(admin_router)
