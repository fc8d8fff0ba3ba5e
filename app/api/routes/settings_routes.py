"""
System Settings Routes

GET /settings - Public system settings (name, branding, approval mode)
PUT /settings - Update system settings (MANAGE_USERS)
GET /settings/company-approval-mode - Current company approval mode (MANAGE_USERS)
PUT /settings/company-approval-mode - Switch between auto_approved and pending (MANAGE_USERS)
"""

from fastapi import APIRouter, HTTPException, Depends, Request

from app.core.auth import require_permissions
from app.db.postgres import get_db_session
from app.schemas.schemas import (
    ApprovalModeResponse, ApprovalModeUpdate, SystemSettingsResponse, SystemSettingsUpdate
)
from app.services.audit_service import log_admin_action
from app.services.system_settings import (
    get_company_approval_mode, get_system_settings, set_company_approval_mode, update_system_settings
)

router = APIRouter(prefix="/settings", tags=["Settings"])


@router.get("", response_model=SystemSettingsResponse)
async def read_settings():
    return get_system_settings()


@router.put("", response_model=SystemSettingsResponse)
async def write_settings(
    update: SystemSettingsUpdate,
    request: Request,
    user: dict = Depends(require_permissions("MANAGE_USERS"))
):
    data = update.model_dump(exclude_unset=True, mode="json")
    if not data:
        raise HTTPException(status_code=400, detail="No settings to update")

    settings = update_system_settings(data, updated_by=user["user_id"])
    with get_db_session() as db:
        log_admin_action(db, user["user_id"], "SETTINGS_UPDATED", "system_settings", None, data, request)
    return settings


@router.get("/company-approval-mode", response_model=ApprovalModeResponse)
async def read_approval_mode(user: dict = Depends(require_permissions("MANAGE_USERS"))):
    return ApprovalModeResponse(mode=get_company_approval_mode())


@router.put("/company-approval-mode", response_model=ApprovalModeResponse)
async def write_approval_mode(
    body: ApprovalModeUpdate,
    request: Request,
    user: dict = Depends(require_permissions("MANAGE_USERS"))
):
    """Set whether new companies start active (auto_approved) or await approval (pending)."""
    mode = set_company_approval_mode(body.mode.value, updated_by=user["user_id"])
    with get_db_session() as db:
        log_admin_action(db, user["user_id"], "COMPANY_APPROVAL_MODE_UPDATED", "system_settings", None,
                         {"mode": mode}, request)
    return ApprovalModeResponse(mode=mode)
