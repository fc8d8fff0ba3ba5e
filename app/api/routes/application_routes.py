"""
Application Routes

POST   /applications - Apply to a job (APPLY_JOB)
GET    /applications - My applications
GET    /applications/employer - Applications across the caller's companies (VIEW_APPLICATIONS)
GET    /applications/{application_id} - Application details (applicant, company member or admin)
PUT    /applications/{application_id}/status - Review an application (UPDATE_APPLICATION_STATUS)
DELETE /applications/{application_id} - Withdraw my application
"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, HTTPException, Depends, Query, Request
from sqlalchemy import text

from app.core.auth import (
    get_current_user, require_permissions, ensure_company_access, is_admin, is_company_member
)
from app.db.postgres import get_db_session, paginate_raw_sql, new_id, utcnow
from app.schemas.schemas import (
    ApplicationCreate, ApplicationStatusUpdate, ApplicationResponse, ApplicationListResponse,
    ApplicationStatus, MessageResponse, Pagination
)
from app.services.audit_service import log_audit, log_admin_action
from app.services.company_service import get_company
from app.services.job_service import APPLICATION_SELECT, get_application, get_job
from app.services.notification_service import create_notification, notify_users_with_permission

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/applications", tags=["Applications"])

WITHDRAWABLE_STATUSES = ("pending", "reviewed")

STATUS_MESSAGES = {
    "pending": "Your application for {job} is pending review.",
    "reviewed": "Your application for {job} has been reviewed.",
    "interview": "You have been invited to interview for {job}.",
    "accepted": "Congratulations! Your application for {job} has been accepted.",
    "rejected": "Your application for {job} was not successful this time.",
}


def _list(sql: str, params: dict, page: int, limit: int) -> ApplicationListResponse:
    rows, total = paginate_raw_sql(sql, params, page, limit, "a.created_at DESC")
    return ApplicationListResponse(applications=rows, pagination=Pagination.build(page, limit, total))


@router.post("", response_model=ApplicationResponse, status_code=201)
async def apply_to_job(
    application: ApplicationCreate,
    background_tasks: BackgroundTasks,
    user: dict = Depends(require_permissions("APPLY_JOB"))
):
    """
    Apply to an active job.

    Notifies the job's employer, admins, and the applicant.
    """
    with get_db_session() as db:
        job = get_job(db, application.job_id)
        if not job:
            raise HTTPException(status_code=404, detail="Job not found")
        if job["status"] != "active":
            raise HTTPException(status_code=400, detail="This job is not accepting applications")
        if get_company(db, job["company_id"])["status"] != "active":
            raise HTTPException(status_code=400, detail="This company is not accepting applications")

        deadline_passed = db.execute(
            text("SELECT 1 FROM jobs WHERE id = :id AND application_deadline IS NOT NULL AND application_deadline < :today"),
            {"id": job["id"], "today": utcnow().date()}
        ).fetchone()
        if deadline_passed:
            raise HTTPException(status_code=400, detail="The application deadline has passed")

        if is_company_member(db, user["user_id"], job["company_id"]):
            raise HTTPException(status_code=403, detail="You cannot apply to your own company's job")

        existing = db.execute(
            text("SELECT id FROM applications WHERE job_id = :jid AND user_id = :uid"),
            {"jid": job["id"], "uid": user["user_id"]}
        ).fetchone()
        if existing:
            raise HTTPException(status_code=409, detail="You have already applied to this job")

        if application.document_id:
            doc = db.execute(
                text("SELECT file_url FROM documents WHERE id = :id AND user_id = :uid"),
                {"id": application.document_id, "uid": user["user_id"]}
            ).fetchone()
            if not doc:
                raise HTTPException(status_code=404, detail="Document not found")
            resume_url = application.resume_url or doc[0]
        else:
            resume_url = application.resume_url

        application_id = new_id()
        now = utcnow()
        db.execute(
            text("""
                INSERT INTO applications (id, job_id, user_id, cover_letter, resume_url, document_id, status,
                    created_at, updated_at)
                VALUES (:id, :jid, :uid, :cover_letter, :resume_url, :document_id, 'pending', :now, :now)
            """),
            {
                "id": application_id, "jid": job["id"], "uid": user["user_id"],
                "cover_letter": application.cover_letter, "resume_url": resume_url,
                "document_id": application.document_id, "now": now,
            }
        )
        log_audit(db, user["user_id"], "APPLICATION_CREATED", "applications", "applications", application_id,
                  {"job_id": job["id"]})
        created = get_application(db, application_id)

    data = {"application_id": application_id, "job_id": job["id"]}
    email_context = {"job_title": job["title"], "company_name": job["company_name"], "job_link": f"/jobs/{job['id']}"}

    if job["employer_id"]:
        background_tasks.add_task(
            create_notification,
            job["employer_id"], "application_received",
            title="New application received",
            message=f"{user['name']} applied for {job['title']}",
            data=data, action_url=f"/applications/{application_id}", priority="high",
        )
    background_tasks.add_task(
        notify_users_with_permission,
        "MANAGE_USERS", exclude=[job["employer_id"], user["user_id"]],
        notification_type="application_received",
        title="New application received",
        message=f"{user['name']} applied for {job['title']} at {job['company_name']}",
        data=data, action_url=f"/applications/{application_id}",
    )
    background_tasks.add_task(
        create_notification,
        user["user_id"], "application_submitted",
        title="Application submitted",
        message=f"Your application for {job['title']} at {job['company_name']} was received.",
        data=data, action_url=f"/applications/{application_id}",
        email_context=email_context,
    )
    logger.info("Application %s submitted for job %s by %s", application_id, job["id"], user["user_id"])
    return created


@router.get("", response_model=ApplicationListResponse)
async def list_my_applications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[ApplicationStatus] = Query(None),
    user: dict = Depends(get_current_user)
):
    sql = APPLICATION_SELECT + " WHERE a.user_id = :uid"
    params = {"uid": user["user_id"]}
    if status:
        sql += " AND a.status = :status"
        params["status"] = status.value
    return _list(sql, params, page, limit)


@router.get("/employer", response_model=ApplicationListResponse)
async def list_employer_applications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[ApplicationStatus] = Query(None),
    job_id: Optional[str] = Query(None),
    user: dict = Depends(require_permissions("VIEW_APPLICATIONS"))
):
    """Applications for every job of the caller's companies."""
    sql = APPLICATION_SELECT + " WHERE j.company_id IN (SELECT company_id FROM company_users WHERE user_id = :uid)"
    params = {"uid": user["user_id"]}
    if status:
        sql += " AND a.status = :status"
        params["status"] = status.value
    if job_id:
        sql += " AND a.job_id = :job_id"
        params["job_id"] = job_id
    return _list(sql, params, page, limit)


@router.get("/{application_id}", response_model=ApplicationResponse)
async def get_application_details(application_id: str, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        application = get_application(db, application_id)
        if not application:
            raise HTTPException(status_code=404, detail="Application not found")

        allowed = (
            application["user_id"] == user["user_id"]
            or is_admin(user)
            or is_company_member(db, user["user_id"], application["company_id"])
        )
    if not allowed:
        raise HTTPException(status_code=403, detail="You do not have access to this application")
    return application


@router.put("/{application_id}/status", response_model=ApplicationResponse)
async def update_application_status(
    application_id: str,
    update: ApplicationStatusUpdate,
    request: Request,
    background_tasks: BackgroundTasks,
    user: dict = Depends(require_permissions("UPDATE_APPLICATION_STATUS"))
):
    """Move an application through review. Withdrawn applications are final."""
    with get_db_session() as db:
        application = get_application(db, application_id)
        if not application:
            raise HTTPException(status_code=404, detail="Application not found")
        ensure_company_access(db, user, application["company_id"])
        if application["status"] == "withdrawn":
            raise HTTPException(status_code=400, detail="Cannot update a withdrawn application")

        now = utcnow()
        db.execute(
            text("""
                UPDATE applications SET status = :status, notes = COALESCE(:notes, notes),
                    reviewed_by = :uid, reviewed_at = :now, updated_at = :now
                WHERE id = :id
            """),
            {"status": update.status.value, "notes": update.notes, "uid": user["user_id"],
             "now": now, "id": application_id}
        )
        details = {"previous_status": application["status"], "status": update.status.value}
        log_audit(db, user["user_id"], "APPLICATION_STATUS_UPDATED", "applications", "applications",
                  application_id, details)
        log_admin_action(db, user["user_id"], "APPLICATION_STATUS_UPDATED", "application", application_id,
                         details, request)
        updated = get_application(db, application_id)

    background_tasks.add_task(
        create_notification,
        application["user_id"], "application_status_changed",
        title="Application status updated",
        message=STATUS_MESSAGES[update.status.value].format(job=application["job_title"]),
        data={"application_id": application_id, "job_id": application["job_id"], "status": update.status.value},
        action_url=f"/applications/{application_id}",
        priority="high" if update.status.value in ("interview", "accepted") else "normal",
        email_context={"job_title": application["job_title"], "company_name": application["company_name"]},
    )
    return updated


@router.delete("/{application_id}", response_model=MessageResponse)
async def withdraw_application(application_id: str, user: dict = Depends(get_current_user)):
    """Withdraw my application while it is still pending or reviewed."""
    with get_db_session() as db:
        application = get_application(db, application_id)
        if not application:
            raise HTTPException(status_code=404, detail="Application not found")
        if application["user_id"] != user["user_id"]:
            raise HTTPException(status_code=403, detail="You can only withdraw your own applications")
        if application["status"] not in WITHDRAWABLE_STATUSES:
            raise HTTPException(
                status_code=400,
                detail=f"Applications with status '{application['status']}' cannot be withdrawn"
            )

        db.execute(
            text("UPDATE applications SET status = 'withdrawn', updated_at = :now WHERE id = :id"),
            {"now": utcnow(), "id": application_id}
        )
        log_audit(db, user["user_id"], "APPLICATION_WITHDRAWN", "applications", "applications", application_id)

    return MessageResponse(message="Application withdrawn")
