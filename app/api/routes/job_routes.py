"""
Job Routes

GET    /jobs - List active jobs with filters and pagination (public)
GET    /jobs/mine - Jobs of the caller's companies, any status
GET    /jobs/employer/dashboard - Job and application figures for the caller's companies (VIEW_APPLICATIONS)
POST   /jobs - Create job posting (CREATE_JOB)
GET    /jobs/{job_id} - Get job details (public for active jobs)
PUT    /jobs/{job_id} - Update job (EDIT_JOB)
DELETE /jobs/{job_id} - Delete job, or close it when it has applications (DELETE_JOB)
GET    /jobs/{job_id}/applications - Applications for a job (VIEW_APPLICATIONS)
"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, HTTPException, Depends, Query
from sqlalchemy import text

from app.core.auth import (
    get_current_user, get_optional_user, require_permissions, ensure_company_access,
    is_admin, is_company_member
)
from app.db.postgres import get_db_session, execute_raw_sql, paginate_raw_sql, new_id, utcnow
from app.schemas.schemas import (
    JobCreate, JobUpdate, JobResponse, JobListResponse, JobDeleteResponse, EmployerDashboardResponse,
    ApplicationListResponse, ApplicationStatus, EmploymentType, ExperienceLevel, JobStatus, Pagination
)
from app.services.audit_service import log_audit
from app.services.company_service import get_company
from app.services.job_service import (
    APPLICATION_SELECT, JOB_LIST_FIELDS, JOB_SELECT, application_counts, dump_list, employer_dashboard, get_job,
    job_from_row
)
from app.services.notification_service import create_notification

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["Jobs"])

JOB_COLUMNS = (
    "title", "description", "location", "salary_min", "salary_max", "salary_currency", "category",
    "experience_level", "employment_type", "remote", "requirements", "responsibilities", "benefits",
    "application_deadline", "status",
)
REQUIRED_COLUMNS = ("title", "salary_currency", "remote", "status")


def _paginate(sql: str, params: dict, page: int, limit: int, order_by: str):
    rows, total = paginate_raw_sql(sql, params, page, limit, order_by)
    return rows, Pagination.build(page, limit, total)


def _notify_job_seekers_of_new_job(job: dict) -> None:
    seekers = execute_raw_sql("""
        SELECT u.id FROM users u
        JOIN user_roles ur ON ur.user_id = u.id
        JOIN roles r ON r.id = ur.role_id
        WHERE r.name = 'JOB_SEEKER' AND u.is_active = TRUE AND u.is_blocked = FALSE
    """)
    for seeker in seekers:
        create_notification(
            seeker["id"], "job_posted",
            title="New job posted",
            message=f"{job['title']} at {job['company_name']}",
            data={"job_id": job["id"], "company_id": job["company_id"]},
            action_url=f"/jobs/{job['id']}",
            priority="low",
            email_context={
                "job_title": job["title"],
                "company_name": job["company_name"],
                "job_link": f"/jobs/{job['id']}",
            },
        )


@router.get("", response_model=JobListResponse)
async def list_jobs(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    q: Optional[str] = Query(None, max_length=200, description="Search in title and description"),
    location: Optional[str] = Query(None, max_length=200),
    category: Optional[str] = Query(None, max_length=100),
    experience_level: Optional[ExperienceLevel] = Query(None),
    employment_type: Optional[EmploymentType] = Query(None),
    remote: Optional[bool] = Query(None),
    min_salary: Optional[float] = Query(None, ge=0),
    max_salary: Optional[float] = Query(None, ge=0),
    company_id: Optional[str] = Query(None)
):
    """List active job postings with filters and pagination. Featured jobs come first."""
    sql = JOB_SELECT + " WHERE j.status = 'active' AND c.status = 'active'"
    params = {}

    if q:
        sql += " AND (LOWER(j.title) LIKE :q OR LOWER(j.description) LIKE :q)"
        params["q"] = f"%{q.strip().lower()}%"
    if location:
        sql += " AND LOWER(j.location) LIKE :location"
        params["location"] = f"%{location.strip().lower()}%"
    if category:
        sql += " AND LOWER(j.category) = :category"
        params["category"] = category.strip().lower()
    if experience_level:
        sql += " AND j.experience_level = :experience_level"
        params["experience_level"] = experience_level.value
    if employment_type:
        sql += " AND j.employment_type = :employment_type"
        params["employment_type"] = employment_type.value
    if remote is not None:
        sql += " AND j.remote = :remote"
        params["remote"] = remote
    # Salary filters match overlapping ranges
    if min_salary is not None:
        sql += " AND (j.salary_max IS NULL OR j.salary_max >= :min_salary)"
        params["min_salary"] = min_salary
    if max_salary is not None:
        sql += " AND (j.salary_min IS NULL OR j.salary_min <= :max_salary)"
        params["max_salary"] = max_salary
    if company_id:
        sql += " AND j.company_id = :company_id"
        params["company_id"] = company_id

    rows, pagination = _paginate(sql, params, page, limit, "j.is_featured DESC, j.created_at DESC")
    return JobListResponse(jobs=[job_from_row(r) for r in rows], pagination=pagination)


@router.get("/mine", response_model=JobListResponse)
async def list_my_jobs(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[JobStatus] = Query(None),
    user: dict = Depends(get_current_user)
):
    """Jobs belonging to the caller's companies, in any status."""
    sql = JOB_SELECT + " WHERE j.company_id IN (SELECT company_id FROM company_users WHERE user_id = :uid)"
    params = {"uid": user["user_id"]}
    if status:
        sql += " AND j.status = :status"
        params["status"] = status.value

    rows, pagination = _paginate(sql, params, page, limit, "j.created_at DESC")
    return JobListResponse(jobs=[job_from_row(r) for r in rows], pagination=pagination)


@router.get("/employer/dashboard", response_model=EmployerDashboardResponse)
async def get_employer_dashboard(user: dict = Depends(require_permissions("VIEW_APPLICATIONS"))):
    """Job counts by status, views, per-job application counts and the 10 latest applications."""
    with get_db_session() as db:
        return employer_dashboard(db, user["user_id"])


@router.post("", response_model=JobResponse, status_code=201)
async def create_job(
    job: JobCreate,
    background_tasks: BackgroundTasks,
    user: dict = Depends(require_permissions("CREATE_JOB"))
):
    """Create a job posting for a company the caller belongs to. The company must be active."""
    with get_db_session() as db:
        company = get_company(db, job.company_id)
        if not company:
            raise HTTPException(status_code=404, detail="Company not found")
        ensure_company_access(db, user, job.company_id)
        if company["status"] != "active":
            raise HTTPException(status_code=400, detail="Company must be active to post jobs")

        job_id = new_id()
        now = utcnow()
        params = job.model_dump(mode="python")
        for field in JOB_LIST_FIELDS:
            params[field] = dump_list(params[field])
        for field in ("experience_level", "employment_type", "status"):
            if params[field] is not None:
                params[field] = params[field].value
        params.update({"id": job_id, "employer_id": user["user_id"], "now": now})

        db.execute(
            text(f"""
                INSERT INTO jobs (id, company_id, employer_id, {', '.join(JOB_COLUMNS)},
                    views, is_featured, created_at, updated_at)
                VALUES (:id, :company_id, :employer_id, {', '.join(':' + c for c in JOB_COLUMNS)},
                    0, FALSE, :now, :now)
            """),
            params
        )
        log_audit(db, user["user_id"], "JOB_CREATED", "jobs", "jobs", job_id,
                  {"title": job.title, "company_id": job.company_id, "status": params["status"]})
        created = get_job(db, job_id)

    logger.info("Job %s created for company %s (%s)", job_id, job.company_id, created["status"])
    if created["status"] == "active":
        background_tasks.add_task(_notify_job_seekers_of_new_job, created)
    return created


@router.get("/{job_id}", response_model=JobResponse)
async def get_job_details(job_id: str, user: Optional[dict] = Depends(get_optional_user)):
    """
    Get job details.

    Anonymous users and non-members only see active jobs, and their visit
    counts as a view. Company members and admins also get application counts.
    """
    with get_db_session() as db:
        job = get_job(db, job_id)
        if not job:
            raise HTTPException(status_code=404, detail="Job not found")

        privileged = user is not None and (
            is_admin(user) or is_company_member(db, user["user_id"], job["company_id"])
        )
        if privileged:
            job["application_counts"] = application_counts(db, job_id)
            return job

        if job["status"] != "active":
            raise HTTPException(status_code=403, detail="This job is not available")

        db.execute(text("UPDATE jobs SET views = views + 1 WHERE id = :id"), {"id": job_id})
        job["views"] += 1
    return job


@router.put("/{job_id}", response_model=JobResponse)
async def update_job(
    job_id: str,
    update: JobUpdate,
    background_tasks: BackgroundTasks,
    user: dict = Depends(require_permissions("EDIT_JOB"))
):
    """Update a job posting. Only members of the job's company (or admins)."""
    data = update.model_dump(exclude_unset=True, mode="python")
    if not data:
        raise HTTPException(status_code=400, detail="No fields to update")
    if "title" in data and not (data["title"] or "").strip():
        raise HTTPException(status_code=400, detail="Title cannot be empty")

    with get_db_session() as db:
        job = get_job(db, job_id)
        if not job:
            raise HTTPException(status_code=404, detail="Job not found")
        ensure_company_access(db, user, job["company_id"])

        new_status = getattr(data.get("status"), "value", data.get("status"))
        if new_status == "active" and job["status"] != "active":
            company = get_company(db, job["company_id"])
            if company["status"] != "active":
                raise HTTPException(status_code=400, detail="Company must be active to publish jobs")

        salary_min = data.get("salary_min", job["salary_min"])
        salary_max = data.get("salary_max", job["salary_max"])
        if salary_min is not None and salary_max is not None and salary_max < salary_min:
            raise HTTPException(status_code=400, detail="salary_max must be greater than or equal to salary_min")

        updates = []
        params = {"id": job_id, "now": utcnow()}
        for field, value in data.items():
            if value is None and field in REQUIRED_COLUMNS:
                continue
            if field in JOB_LIST_FIELDS:
                value = dump_list(value) if value is not None else dump_list([])
            elif hasattr(value, "value"):
                value = value.value
            updates.append(f"{field} = :{field}")
            params[field] = value
        updates.append("updated_at = :now")

        db.execute(text(f"UPDATE jobs SET {', '.join(updates)} WHERE id = :id"), params)
        log_audit(db, user["user_id"], "JOB_UPDATED", "jobs", "jobs", job_id, {k: params[k] for k in data if k in params})
        updated = get_job(db, job_id)

        closed_now = job["status"] != "closed" and updated["status"] == "closed"
        applicants = []
        if closed_now:
            applicants = [r[0] for r in db.execute(
                text("SELECT user_id FROM applications WHERE job_id = :id AND status IN ('pending', 'reviewed', 'interview')"),
                {"id": job_id}
            ).fetchall()]

    for applicant_id in applicants:
        background_tasks.add_task(
            create_notification,
            applicant_id, "job_closed",
            title="Job closed",
            message=f"{updated['title']} at {updated['company_name']} is no longer accepting applications.",
            data={"job_id": job_id},
            action_url=f"/jobs/{job_id}",
        )
    return updated


@router.delete("/{job_id}", response_model=JobDeleteResponse)
async def delete_job(job_id: str, user: dict = Depends(require_permissions("DELETE_JOB"))):
    """Delete a job posting. Jobs that already have applications are closed instead."""
    with get_db_session() as db:
        job = get_job(db, job_id)
        if not job:
            raise HTTPException(status_code=404, detail="Job not found")
        ensure_company_access(db, user, job["company_id"])

        count = db.execute(
            text("SELECT COUNT(*) FROM applications WHERE job_id = :id"), {"id": job_id}
        ).fetchone()[0]

        if count:
            db.execute(
                text("UPDATE jobs SET status = 'closed', updated_at = :now WHERE id = :id"),
                {"id": job_id, "now": utcnow()}
            )
            log_audit(db, user["user_id"], "JOB_CLOSED", "jobs", "jobs", job_id, {"applications": int(count)})
            return JobDeleteResponse(message="Job has applications and was closed instead of deleted", action="closed")

        db.execute(text("DELETE FROM jobs WHERE id = :id"), {"id": job_id})
        log_audit(db, user["user_id"], "JOB_DELETED", "jobs", "jobs", job_id, {"title": job["title"]})

    return JobDeleteResponse(message="Job deleted", action="deleted")


@router.get("/{job_id}/applications", response_model=ApplicationListResponse)
async def list_job_applications(
    job_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[ApplicationStatus] = Query(None),
    user: dict = Depends(require_permissions("VIEW_APPLICATIONS"))
):
    """Applications received for a job. Only members of the job's company (or admins)."""
    with get_db_session() as db:
        job = get_job(db, job_id)
        if not job:
            raise HTTPException(status_code=404, detail="Job not found")
        ensure_company_access(db, user, job["company_id"])

    sql = APPLICATION_SELECT + " WHERE a.job_id = :job_id"
    params = {"job_id": job_id}
    if status:
        sql += " AND a.status = :status"
        params["status"] = status.value

    rows, pagination = _paginate(sql, params, page, limit, "a.created_at DESC")
    return ApplicationListResponse(applications=rows, pagination=pagination)
