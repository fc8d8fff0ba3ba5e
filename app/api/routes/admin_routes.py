"""
Admin Routes (MANAGE_USERS)

GET    /admin/users - Users with search, role and is_active filters
GET    /admin/users/{user_id} - User details
PUT    /admin/users/{user_id}/block - Block or unblock a user
GET    /admin/jobs - Every job in every status
DELETE /admin/jobs/{job_id} - Delete a job
POST   /admin/jobs/{job_id}/feature - Feature or unfeature a job
GET    /admin/statistics - Counts across users, jobs, applications and companies
GET    /admin/audit-logs - Administrative actions (admin_logs)
GET    /admin/activity-logs - Record changes (audit_logs)
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query, Request
from sqlalchemy import text

from app.core.auth import require_permissions
from app.db.postgres import get_db_session, execute_raw_sql, fetch_one, paginate_raw_sql, utcnow
from app.schemas.schemas import (
    AdminUserResponse, AdminUserListResponse, BlockUserRequest, FeatureJobRequest,
    AdminLogListResponse, AuditLogListResponse, JobListResponse, JobResponse, JobStatus,
    MessageResponse, Pagination
)
from app.services.audit_service import log_audit, log_admin_action, parse_json_column
from app.services.job_service import JOB_SELECT, get_job, job_from_row

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])

admin_access = require_permissions("MANAGE_USERS")

USER_SELECT = """
    SELECT u.id, u.email, u.first_name, u.last_name, u.phone, u.is_active, u.is_blocked,
           u.blocked_reason, u.last_login_at, u.created_at
    FROM users u
"""


def _attach_roles(users: list) -> list:
    if not users:
        return users
    ids = {u["id"]: u for u in users}
    for u in users:
        u["roles"] = []
    placeholders = ", ".join(f":id{i}" for i in range(len(ids)))
    rows = execute_raw_sql(
        f"""
        SELECT ur.user_id, r.name FROM user_roles ur JOIN roles r ON r.id = ur.role_id
        WHERE ur.user_id IN ({placeholders}) ORDER BY r.name
        """,
        {f"id{i}": uid for i, uid in enumerate(ids)}
    )
    for row in rows:
        ids[row["user_id"]]["roles"].append(row["name"])
    return users


def _day_range(from_date: Optional[date], to_date: Optional[date]) -> dict:
    params = {}
    if from_date:
        params["from_dt"] = datetime.combine(from_date, time.min)
    if to_date:
        params["to_dt"] = datetime.combine(to_date + timedelta(days=1), time.min)
    return params


# ============================================================
# USERS
# ============================================================

@router.get("/users", response_model=AdminUserListResponse)
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None, max_length=100),
    role: Optional[str] = Query(None, max_length=50),
    is_active: Optional[bool] = Query(None),
    user: dict = Depends(admin_access)
):
    sql = USER_SELECT + " WHERE 1=1"
    params = {}
    if search:
        sql += """ AND (LOWER(u.email) LIKE :search OR LOWER(u.first_name) LIKE :search
                   OR LOWER(u.last_name) LIKE :search)"""
        params["search"] = f"%{search.strip().lower()}%"
    if role:
        sql += """ AND u.id IN (SELECT ur.user_id FROM user_roles ur JOIN roles r ON r.id = ur.role_id
                   WHERE r.name = :role)"""
        params["role"] = role.strip().upper()
    if is_active is not None:
        sql += " AND u.is_active = :is_active"
        params["is_active"] = is_active

    rows, total = paginate_raw_sql(sql, params, page, limit, "u.created_at DESC")
    return AdminUserListResponse(users=_attach_roles(rows), pagination=Pagination.build(page, limit, total))


@router.get("/users/{user_id}", response_model=AdminUserResponse)
async def get_user(user_id: str, user: dict = Depends(admin_access)):
    rows = execute_raw_sql(USER_SELECT + " WHERE u.id = :id", {"id": user_id})
    if not rows:
        raise HTTPException(status_code=404, detail="User not found")
    return _attach_roles(rows)[0]


@router.put("/users/{user_id}/block", response_model=AdminUserResponse)
async def block_user(
    user_id: str,
    body: BlockUserRequest,
    request: Request,
    user: dict = Depends(admin_access)
):
    """Block (reason required) or unblock a user. Blocked users cannot authenticate."""
    reason = (body.reason or "").strip()
    if body.is_blocked and not reason:
        raise HTTPException(status_code=400, detail="A reason is required to block a user")
    if body.is_blocked and user_id == user["user_id"]:
        raise HTTPException(status_code=400, detail="You cannot block yourself")

    with get_db_session() as db:
        if not fetch_one(db, "SELECT id FROM users WHERE id = :id", {"id": user_id}):
            raise HTTPException(status_code=404, detail="User not found")

        now = utcnow()
        db.execute(
            text("""
                UPDATE users SET is_blocked = :blocked, blocked_reason = :reason, blocked_at = :blocked_at,
                    updated_at = :now
                WHERE id = :id
            """),
            {
                "blocked": body.is_blocked, "reason": reason if body.is_blocked else None,
                "blocked_at": now if body.is_blocked else None, "now": now, "id": user_id,
            }
        )
        action = "USER_BLOCKED" if body.is_blocked else "USER_UNBLOCKED"
        details = {"reason": reason} if body.is_blocked else {}
        log_admin_action(db, user["user_id"], action, "user", user_id, details, request)
        log_audit(db, user["user_id"], action, "users", "users", user_id, details)

    logger.info("User %s %s by %s", user_id, "blocked" if body.is_blocked else "unblocked", user["user_id"])
    return await get_user(user_id, user)


# ============================================================
# JOBS
# ============================================================

@router.get("/jobs", response_model=JobListResponse)
async def list_all_jobs(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[JobStatus] = Query(None),
    company_id: Optional[str] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
    is_featured: Optional[bool] = Query(None),
    user: dict = Depends(admin_access)
):
    sql = JOB_SELECT + " WHERE 1=1"
    params = {}
    if status:
        sql += " AND j.status = :status"
        params["status"] = status.value
    if company_id:
        sql += " AND j.company_id = :company_id"
        params["company_id"] = company_id
    if search:
        sql += " AND (LOWER(j.title) LIKE :search OR LOWER(c.name) LIKE :search)"
        params["search"] = f"%{search.strip().lower()}%"
    if is_featured is not None:
        sql += " AND j.is_featured = :is_featured"
        params["is_featured"] = is_featured

    rows, total = paginate_raw_sql(sql, params, page, limit, "j.created_at DESC")
    return JobListResponse(jobs=[job_from_row(r) for r in rows], pagination=Pagination.build(page, limit, total))


@router.delete("/jobs/{job_id}", response_model=MessageResponse)
async def delete_job(job_id: str, request: Request, user: dict = Depends(admin_access)):
    """Remove a job outright, applications included."""
    with get_db_session() as db:
        job = get_job(db, job_id)
        if not job:
            raise HTTPException(status_code=404, detail="Job not found")

        db.execute(text("DELETE FROM applications WHERE job_id = :id"), {"id": job_id})
        db.execute(text("DELETE FROM jobs WHERE id = :id"), {"id": job_id})
        details = {"title": job["title"], "company_id": job["company_id"]}
        log_admin_action(db, user["user_id"], "JOB_DELETED", "job", job_id, details, request)
        log_audit(db, user["user_id"], "JOB_DELETED", "jobs", "jobs", job_id, details)

    logger.info("Job %s deleted by admin %s", job_id, user["user_id"])
    return MessageResponse(message="Job deleted")


@router.post("/jobs/{job_id}/feature", response_model=JobResponse)
async def feature_job(job_id: str, body: FeatureJobRequest, request: Request, user: dict = Depends(admin_access)):
    with get_db_session() as db:
        if not get_job(db, job_id):
            raise HTTPException(status_code=404, detail="Job not found")

        db.execute(
            text("UPDATE jobs SET is_featured = :featured, updated_at = :now WHERE id = :id"),
            {"featured": body.is_featured, "now": utcnow(), "id": job_id}
        )
        action = "JOB_FEATURED" if body.is_featured else "JOB_UNFEATURED"
        log_admin_action(db, user["user_id"], action, "job", job_id, {"is_featured": body.is_featured}, request)
        log_audit(db, user["user_id"], action, "jobs", "jobs", job_id, {"is_featured": body.is_featured})
        return get_job(db, job_id)


# ============================================================
# STATISTICS
# ============================================================

def _count_by(table: str, column: str) -> dict:
    rows = execute_raw_sql(f"SELECT {column} AS bucket, COUNT(*) AS total FROM {table} GROUP BY {column}")
    return {str(r["bucket"]): int(r["total"]) for r in rows}


def _count_new(table: str, params: dict) -> int:
    where = []
    if "from_dt" in params:
        where.append("created_at >= :from_dt")
    if "to_dt" in params:
        where.append("created_at < :to_dt")
    clause = f" WHERE {' AND '.join(where)}" if where else ""
    return int(execute_raw_sql(f"SELECT COUNT(*) AS total FROM {table}{clause}", params)[0]["total"])


@router.get("/statistics")
async def get_statistics(
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
    user: dict = Depends(require_permissions("MANAGE_USERS", "VIEW_REPORTS"))
):
    """
    Platform counts.

    from_date/to_date (inclusive) add a new_in_range section counting records
    created in that window.
    """
    user_states = execute_raw_sql("""
        SELECT COUNT(*) AS total,
               SUM(CASE WHEN is_active = TRUE AND is_blocked = FALSE THEN 1 ELSE 0 END) AS active,
               SUM(CASE WHEN is_blocked = TRUE THEN 1 ELSE 0 END) AS blocked
        FROM users
    """)[0]
    by_role = execute_raw_sql("""
        SELECT r.name AS role, COUNT(ur.user_id) AS total
        FROM roles r LEFT JOIN user_roles ur ON ur.role_id = r.id
        GROUP BY r.name ORDER BY r.name
    """)

    stats = {
        "users": {
            "total": int(user_states["total"] or 0),
            "active": int(user_states["active"] or 0),
            "blocked": int(user_states["blocked"] or 0),
            "by_role": {r["role"]: int(r["total"]) for r in by_role},
        },
        "jobs": {"by_status": _count_by("jobs", "status")},
        "applications": {"by_status": _count_by("applications", "status")},
        "companies": {"by_status": _count_by("companies", "status")},
        "generated_at": utcnow().isoformat(),
    }
    for section in ("jobs", "applications", "companies"):
        stats[section]["total"] = sum(stats[section]["by_status"].values())

    window = _day_range(from_date, to_date)
    if window:
        stats["new_in_range"] = {
            "from_date": from_date.isoformat() if from_date else None,
            "to_date": to_date.isoformat() if to_date else None,
            "users": _count_new("users", window),
            "jobs": _count_new("jobs", window),
            "applications": _count_new("applications", window),
            "companies": _count_new("companies", window),
        }
    return stats


# ============================================================
# LOGS
# ============================================================

@router.get("/audit-logs", response_model=AdminLogListResponse)
async def list_admin_logs(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    admin_id: Optional[str] = Query(None),
    action: Optional[str] = Query(None, max_length=100),
    target_type: Optional[str] = Query(None, max_length=50),
    user: dict = Depends(admin_access)
):
    sql = """
        SELECT l.id, l.admin_id, u.email AS admin_email, l.action, l.target_type, l.target_id,
               l.details, l.ip_address, l.created_at
        FROM admin_logs l LEFT JOIN users u ON u.id = l.admin_id
        WHERE 1=1
    """
    params = {}
    if admin_id:
        sql += " AND l.admin_id = :admin_id"
        params["admin_id"] = admin_id
    if action:
        sql += " AND l.action = :action"
        params["action"] = action
    if target_type:
        sql += " AND l.target_type = :target_type"
        params["target_type"] = target_type

    rows, total = paginate_raw_sql(sql, params, page, limit, "l.created_at DESC")
    for row in rows:
        row["details"] = parse_json_column(row["details"])
    return AdminLogListResponse(logs=rows, pagination=Pagination.build(page, limit, total))


@router.get("/activity-logs", response_model=AuditLogListResponse)
async def list_activity_logs(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    user_id: Optional[str] = Query(None),
    action_type: Optional[str] = Query(None, max_length=100),
    user: dict = Depends(admin_access)
):
    sql = "SELECT * FROM audit_logs WHERE 1=1"
    params = {}
    if user_id:
        sql += " AND user_id = :user_id"
        params["user_id"] = user_id
    if action_type:
        sql += " AND action_type = :action_type"
        params["action_type"] = action_type

    rows, total = paginate_raw_sql(sql, params, page, limit, "created_at DESC")
    for row in rows:
        row["new_data"] = parse_json_column(row["new_data"])
    return AuditLogListResponse(logs=rows, pagination=Pagination.build(page, limit, total))
