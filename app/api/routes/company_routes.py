"""
Company Routes

GET    /companies - List companies (all for managers, own companies otherwise)
POST   /companies - Create company (status follows approval mode)
GET    /companies/{company_id} - Company details
PUT    /companies/{company_id} - Update company
PATCH  /companies/{company_id}/deactivate - Deactivate company
PATCH  /companies/{company_id}/activate - Reactivate company
PATCH  /companies/{company_id}/approve - Approve pending company
GET    /companies/{company_id}/users - List company users
POST   /companies/{company_id}/users - Add user to company
DELETE /companies/{company_id}/users/{user_id} - Remove user from company
"""

from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, HTTPException, Depends, Query, Request
from sqlalchemy import text

from app.core.auth import (
    get_current_user, require_permissions, has_permission, ensure_company_access
)
from app.db.postgres import get_db_session, execute_raw_sql, utcnow
from app.schemas.schemas import (
    CompanyCreate, CompanyUpdate, CompanyResponse, CompanyStatus,
    CompanyUserAdd, CompanyUserResponse, MessageResponse
)
from app.services.audit_service import log_audit, log_admin_action
from app.services.company_service import COMPANY_FIELDS, get_company, insert_company
from app.services.notification_service import create_notification

router = APIRouter(prefix="/companies", tags=["Companies"])

VIEW_ALL_PERMISSIONS = ("MANAGE_COMPANY", "APPROVE_COMPANY", "MANAGE_USERS")


def _load_company_for(db, user: dict, company_id: str) -> dict:
    company = get_company(db, company_id)
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")
    if not has_permission(user, *VIEW_ALL_PERMISSIONS):
        ensure_company_access(db, user, company_id)
    return company


@router.get("", response_model=List[CompanyResponse])
async def list_companies(
    search: Optional[str] = Query(None, max_length=100),
    status: Optional[CompanyStatus] = Query(None),
    user: dict = Depends(get_current_user)
):
    """List companies. Managers see every company; other users see the companies they belong to."""
    sql = "SELECT c.* FROM companies c WHERE 1=1"
    params = {}

    if not has_permission(user, *VIEW_ALL_PERMISSIONS):
        sql += " AND c.id IN (SELECT company_id FROM company_users WHERE user_id = :uid)"
        params["uid"] = user["user_id"]
    if search:
        sql += """ AND (LOWER(c.name) LIKE :search OR LOWER(c.industry) LIKE :search
                   OR LOWER(c.city) LIKE :search OR LOWER(c.country) LIKE :search)"""
        params["search"] = f"%{search.strip().lower()}%"
    if status:
        sql += " AND c.status = :status"
        params["status"] = status.value

    sql += " ORDER BY c.created_at DESC"
    return execute_raw_sql(sql, params)


@router.post("", response_model=CompanyResponse, status_code=201)
async def create_company(
    company: CompanyCreate,
    user: dict = Depends(require_permissions("CREATE_COMPANY", "MANAGE_COMPANY", "MANAGE_USERS", "CREATE_JOB"))
):
    """
    Create a company.

    Starts 'active' under auto_approved mode, 'pending' otherwise. The creator
    is added as the first company user.
    """
    with get_db_session() as db:
        created = insert_company(db, company.model_dump(), created_by=user["user_id"])
    return created


@router.get("/{company_id}", response_model=CompanyResponse)
async def get_company_details(company_id: str, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        return _load_company_for(db, user, company_id)


@router.put("/{company_id}", response_model=CompanyResponse)
async def update_company(
    company_id: str,
    update: CompanyUpdate,
    user: dict = Depends(require_permissions("EDIT_COMPANY", "MANAGE_COMPANY"))
):
    """Update company details. Members, admins and MANAGE_COMPANY holders only."""
    data = update.model_dump(exclude_unset=True)
    if not data:
        raise HTTPException(status_code=400, detail="No fields to update")
    if "name" in data and not (data["name"] or "").strip():
        raise HTTPException(status_code=400, detail="Company name cannot be empty")

    updates = []
    params = {"id": company_id, "now": utcnow()}
    for field in COMPANY_FIELDS:
        if field in data:
            updates.append(f"{field} = :{field}")
            params[field] = data[field]
    updates.append("updated_at = :now")

    with get_db_session() as db:
        if not get_company(db, company_id):
            raise HTTPException(status_code=404, detail="Company not found")
        if not has_permission(user, "MANAGE_COMPANY"):
            ensure_company_access(db, user, company_id)

        db.execute(text(f"UPDATE companies SET {', '.join(updates)} WHERE id = :id"), params)
        log_audit(db, user["user_id"], "COMPANY_UPDATED", "companies", "companies", company_id, data)
        return get_company(db, company_id)


def _set_company_status(company_id: str, status: str, user: dict, request: Request) -> dict:
    with get_db_session() as db:
        company = get_company(db, company_id)
        if not company:
            raise HTTPException(status_code=404, detail="Company not found")
        if not has_permission(user, "MANAGE_COMPANY"):
            ensure_company_access(db, user, company_id)
        if status == "active" and company["status"] == "pending":
            raise HTTPException(status_code=400, detail="Pending companies must be approved")

        db.execute(
            text("UPDATE companies SET status = :status, updated_at = :now WHERE id = :id"),
            {"status": status, "now": utcnow(), "id": company_id}
        )
        action = "COMPANY_DEACTIVATED" if status == "deactivated" else "COMPANY_ACTIVATED"
        log_audit(db, user["user_id"], action, "companies", "companies", company_id,
                  {"previous_status": company["status"]})
        log_admin_action(db, user["user_id"], action, "company", company_id,
                         {"previous_status": company["status"]}, request)
        return get_company(db, company_id)


@router.patch("/{company_id}/deactivate", response_model=CompanyResponse)
async def deactivate_company(
    company_id: str,
    request: Request,
    user: dict = Depends(require_permissions("DEACTIVATE_COMPANY", "MANAGE_COMPANY"))
):
    return _set_company_status(company_id, "deactivated", user, request)


@router.patch("/{company_id}/activate", response_model=CompanyResponse)
async def activate_company(
    company_id: str,
    request: Request,
    user: dict = Depends(require_permissions("DEACTIVATE_COMPANY", "MANAGE_COMPANY"))
):
    return _set_company_status(company_id, "active", user, request)


@router.patch("/{company_id}/approve", response_model=CompanyResponse)
async def approve_company(
    company_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    user: dict = Depends(require_permissions("APPROVE_COMPANY", "MANAGE_USERS"))
):
    """Approve a pending company (pending -> active) and notify its users."""
    with get_db_session() as db:
        company = get_company(db, company_id)
        if not company:
            raise HTTPException(status_code=404, detail="Company not found")
        if company["status"] != "pending":
            raise HTTPException(status_code=400, detail="Only pending companies can be approved")

        now = utcnow()
        db.execute(
            text("""
                UPDATE companies SET status = 'active', approved_by = :uid, approved_at = :now, updated_at = :now
                WHERE id = :id
            """),
            {"uid": user["user_id"], "now": now, "id": company_id}
        )
        log_audit(db, user["user_id"], "COMPANY_APPROVED", "companies", "companies", company_id,
                  {"name": company["name"]})
        log_admin_action(db, user["user_id"], "COMPANY_APPROVED", "company", company_id,
                         {"name": company["name"]}, request)
        members = [r[0] for r in db.execute(
            text("SELECT user_id FROM company_users WHERE company_id = :cid"), {"cid": company_id}
        ).fetchall()]
        approved = get_company(db, company_id)

    for member_id in members:
        background_tasks.add_task(
            create_notification,
            member_id, "company_approved",
            title="Company approved",
            message=f"{company['name']} has been approved. You can now post jobs.",
            data={"company_id": company_id},
            action_url=f"/companies/{company_id}",
        )
    return approved


# ============================================================
# COMPANY USERS
# ============================================================

@router.get("/{company_id}/users", response_model=List[CompanyUserResponse])
async def list_company_users(company_id: str, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        _load_company_for(db, user, company_id)

    rows = execute_raw_sql("""
        SELECT u.id, u.email, u.first_name, u.last_name, cu.created_at AS added_at, r.name AS role_name
        FROM company_users cu
        JOIN users u ON u.id = cu.user_id
        LEFT JOIN user_roles ur ON ur.user_id = u.id
        LEFT JOIN roles r ON r.id = ur.role_id
        WHERE cu.company_id = :cid
        ORDER BY u.first_name, u.last_name
    """, {"cid": company_id})

    members = {}
    for r in rows:
        member = members.setdefault(r["id"], {
            "id": r["id"], "email": r["email"], "first_name": r["first_name"],
            "last_name": r["last_name"], "added_at": r["added_at"], "roles": [],
        })
        if r["role_name"] and r["role_name"] not in member["roles"]:
            member["roles"].append(r["role_name"])
    return list(members.values())


@router.post("/{company_id}/users", response_model=MessageResponse, status_code=201)
async def add_company_user(
    company_id: str,
    body: CompanyUserAdd,
    user: dict = Depends(require_permissions("MANAGE_COMPANY_USERS"))
):
    with get_db_session() as db:
        if not get_company(db, company_id):
            raise HTTPException(status_code=404, detail="Company not found")
        ensure_company_access(db, user, company_id)

        target = db.execute(text("SELECT id FROM users WHERE id = :id"), {"id": body.user_id}).fetchone()
        if not target:
            raise HTTPException(status_code=404, detail="User not found")

        exists = db.execute(
            text("SELECT 1 FROM company_users WHERE company_id = :cid AND user_id = :uid"),
            {"cid": company_id, "uid": body.user_id}
        ).fetchone()
        if exists:
            raise HTTPException(status_code=409, detail="User already belongs to this company")

        db.execute(
            text("""
                INSERT INTO company_users (company_id, user_id, added_by, created_at)
                VALUES (:cid, :uid, :by, :now)
            """),
            {"cid": company_id, "uid": body.user_id, "by": user["user_id"], "now": utcnow()}
        )
        log_audit(db, user["user_id"], "COMPANY_USER_ADDED", "companies", "company_users", company_id,
                  {"user_id": body.user_id})

    return MessageResponse(message="User added to company")


@router.delete("/{company_id}/users/{user_id}", response_model=MessageResponse)
async def remove_company_user(
    company_id: str,
    user_id: str,
    user: dict = Depends(require_permissions("MANAGE_COMPANY_USERS"))
):
    if user_id == user["user_id"]:
        raise HTTPException(status_code=403, detail="You cannot remove yourself from the company")

    with get_db_session() as db:
        if not get_company(db, company_id):
            raise HTTPException(status_code=404, detail="Company not found")
        ensure_company_access(db, user, company_id)

        result = db.execute(
            text("DELETE FROM company_users WHERE company_id = :cid AND user_id = :uid"),
            {"cid": company_id, "uid": user_id}
        )
        if result.rowcount == 0:
            raise HTTPException(status_code=404, detail="User is not a member of this company")
        log_audit(db, user["user_id"], "COMPANY_USER_REMOVED", "companies", "company_users", company_id,
                  {"user_id": user_id})

    return MessageResponse(message="User removed from company")
