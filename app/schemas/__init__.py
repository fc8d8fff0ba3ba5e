"""
Schemas module - Request/Response schemas for API endpoints.

All schemas live in app.schemas.schemas:
    from app.schemas.schemas import RegisterRequest, JobCreate, ApplicationResponse
"""
