"""
Email Template Routes

GET    /email-templates - List built-in and custom templates
GET    /email-templates/{key} - Single template
POST   /email-templates - Create a custom template
PUT    /email-templates/{key} - Update subject/body (overrides a built-in)
DELETE /email-templates/{key} - Delete custom template or reset a built-in
POST   /email-templates/{key}/preview - Render with sample data

Access: ADMIN or HR_MANAGER role, or the MANAGE_EMAIL_TEMPLATES permission.
"""

from typing import List

from fastapi import APIRouter, HTTPException, Depends, Request

from app.core.auth import get_current_user, has_permission
from app.db.postgres import get_db_session
from app.schemas.schemas import (
    EmailTemplateCreate, EmailTemplateUpdate, EmailTemplateResponse,
    EmailPreviewRequest, EmailPreviewResponse, MessageResponse
)
from app.services import email_templates
from app.services.audit_service import log_admin_action
from app.services.email_service import wrap_html
from app.services.email_templates import InvalidTemplate, TemplateAlreadyExists, TemplateNotFound

router = APIRouter(prefix="/email-templates", tags=["Email Templates"])

TEMPLATE_ROLES = ("ADMIN", "HR_MANAGER")


async def require_template_access(user: dict = Depends(get_current_user)) -> dict:
    if any(r in user["roles"] for r in TEMPLATE_ROLES) or has_permission(user, "MANAGE_EMAIL_TEMPLATES"):
        return user
    raise HTTPException(status_code=403, detail="Insufficient permissions")


def _load(key: str) -> dict:
    try:
        return email_templates.get_template(key)
    except TemplateNotFound:
        raise HTTPException(status_code=404, detail="Template not found")


@router.get("", response_model=List[EmailTemplateResponse])
async def list_email_templates(user: dict = Depends(require_template_access)):
    return email_templates.list_templates()


@router.get("/{key}", response_model=EmailTemplateResponse)
async def get_email_template(key: str, user: dict = Depends(require_template_access)):
    return _load(key)


@router.post("", response_model=EmailTemplateResponse, status_code=201)
async def create_email_template(
    body: EmailTemplateCreate,
    request: Request,
    user: dict = Depends(require_template_access)
):
    try:
        template = email_templates.create_template(
            body.key, body.title, body.subject, body.body_text,
            description=body.description, placeholders=body.placeholders,
        )
    except TemplateAlreadyExists:
        raise HTTPException(status_code=409, detail="A template with this key already exists")
    except InvalidTemplate as e:
        raise HTTPException(status_code=400, detail=str(e))

    with get_db_session() as db:
        log_admin_action(db, user["user_id"], "EMAIL_TEMPLATE_CREATED", "email_template", None,
                         {"key": template["key"]}, request)
    return template


@router.put("/{key}", response_model=EmailTemplateResponse)
async def update_email_template(
    key: str,
    body: EmailTemplateUpdate,
    request: Request,
    user: dict = Depends(require_template_access)
):
    try:
        template = email_templates.update_template(
            key, body.subject, body.body_text,
            title=body.title, description=body.description, placeholders=body.placeholders,
        )
    except TemplateNotFound:
        raise HTTPException(status_code=404, detail="Template not found")
    except InvalidTemplate as e:
        raise HTTPException(status_code=400, detail=str(e))

    with get_db_session() as db:
        log_admin_action(db, user["user_id"], "EMAIL_TEMPLATE_UPDATED", "email_template", None,
                         {"key": key}, request)
    return template


@router.delete("/{key}", response_model=MessageResponse)
async def delete_email_template(key: str, request: Request, user: dict = Depends(require_template_access)):
    """Custom templates are removed; built-in templates revert to their defaults."""
    try:
        restored = email_templates.delete_template(key)
    except TemplateNotFound:
        raise HTTPException(status_code=404, detail="Template not found")

    with get_db_session() as db:
        log_admin_action(db, user["user_id"], "EMAIL_TEMPLATE_DELETED", "email_template", None,
                         {"key": key}, request)
    if restored:
        return MessageResponse(message="Template reset to default")
    return MessageResponse(message="Template deleted")


@router.post("/{key}/preview", response_model=EmailPreviewResponse)
async def preview_email_template(
    key: str,
    body: EmailPreviewRequest = EmailPreviewRequest(),
    user: dict = Depends(require_template_access)
):
    """Render a template with [placeholder] sample values, overridden by any supplied data."""
    template = _load(key)
    defaults = email_templates.base_context()
    context = {k: v for k, v in email_templates.sample_context(template).items() if k not in defaults}
    context.update(body.data)

    try:
        subject, body_text, body_html = email_templates.render_strings(
            template["subject"], template["body_text"], context
        )
    except InvalidTemplate as e:
        raise HTTPException(status_code=400, detail=str(e))
    return EmailPreviewResponse(subject=subject, body_text=body_text, body_html=wrap_html(body_html))
