"""
Job Service - shared SQL for jobs and applications.

List-valued job fields (requirements, responsibilities, benefits) are stored
as JSON text and decoded here.
"""

import json
from typing import Optional

from sqlalchemy import text

from app.db.postgres import fetch_one, rows_to_dicts

JOB_LIST_FIELDS = ("requirements", "responsibilities", "benefits")

JOB_SELECT = """
    SELECT j.id, j.company_id, c.name AS company_name, j.employer_id, j.title, j.description,
           j.location, j.salary_min, j.salary_max, j.salary_currency, j.category,
           j.experience_level, j.employment_type, j.remote, j.requirements, j.responsibilities,
           j.benefits, j.application_deadline, j.status, j.views, j.is_featured,
           j.created_at, j.updated_at
    FROM jobs j
    JOIN companies c ON c.id = j.company_id
"""

APPLICATION_SELECT = """
    SELECT a.id, a.job_id, j.title AS job_title, j.company_id, c.name AS company_name,
           a.user_id, u.first_name || ' ' || u.last_name AS applicant_name, u.email AS applicant_email,
           a.cover_letter, a.resume_url, a.document_id, a.status, a.notes, a.reviewed_at,
           a.created_at, a.updated_at
    FROM applications a
    JOIN jobs j ON j.id = a.job_id
    JOIN companies c ON c.id = j.company_id
    JOIN users u ON u.id = a.user_id
"""


def dump_list(values) -> Optional[str]:
    if values is None:
        return None
    return json.dumps([str(v) for v in values])


def _load_list(value) -> list:
    if not value:
        return []
    if isinstance(value, list):
        return value
    try:
        parsed = json.loads(value)
    except ValueError:
        return [value]
    return parsed if isinstance(parsed, list) else [parsed]


def job_from_row(row: dict) -> dict:
    job = dict(row)
    for field in JOB_LIST_FIELDS:
        job[field] = _load_list(job.get(field))
    for field in ("salary_min", "salary_max"):
        if job.get(field) is not None:
            job[field] = float(job[field])
    return job


def get_job(db, job_id: str) -> Optional[dict]:
    row = fetch_one(db, JOB_SELECT + " WHERE j.id = :id", {"id": job_id})
    return job_from_row(row) if row else None


def get_application(db, application_id: str) -> Optional[dict]:
    return fetch_one(db, APPLICATION_SELECT + " WHERE a.id = :id", {"id": application_id})


def application_counts(db, job_id: str) -> dict:
    result = db.execute(
        text("SELECT status, COUNT(*) FROM applications WHERE job_id = :id GROUP BY status"),
        {"id": job_id}
    )
    counts = {row[0]: int(row[1]) for row in result.fetchall()}
    counts["total"] = sum(counts.values())
    return counts


APPLICATION_STATUSES = ("pending", "reviewed", "interview", "accepted", "rejected", "withdrawn")

# Jobs of every company the user belongs to
MEMBER_JOBS = "j.company_id IN (SELECT company_id FROM company_users WHERE user_id = :uid)"


def employer_dashboard(db, user_id: str) -> dict:
    """Job and application figures across the companies a user belongs to."""
    params = {"uid": user_id}
    stats = fetch_one(db, f"""
        SELECT COUNT(*) AS total_jobs,
               COALESCE(SUM(CASE WHEN j.status = 'active' THEN 1 ELSE 0 END), 0) AS active_jobs,
               COALESCE(SUM(CASE WHEN j.status = 'draft' THEN 1 ELSE 0 END), 0) AS draft_jobs,
               COALESCE(SUM(CASE WHEN j.status = 'closed' THEN 1 ELSE 0 END), 0) AS closed_jobs,
               COALESCE(SUM(j.views), 0) AS total_views,
               AVG(j.views) AS avg_views_per_job
        FROM jobs j WHERE {MEMBER_JOBS}
    """, params)
    avg_views = stats.pop("avg_views_per_job")
    stats = {k: int(v or 0) for k, v in stats.items()}
    stats["avg_views_per_job"] = round(float(avg_views or 0), 2)

    jobs = rows_to_dicts(db.execute(text(f"""
        SELECT j.id, j.company_id, c.name AS company_name, j.title, j.status, j.views, j.created_at
        FROM jobs j JOIN companies c ON c.id = j.company_id
        WHERE {MEMBER_JOBS}
        ORDER BY j.created_at DESC
    """), params))

    per_job = {}
    result = db.execute(text(f"""
        SELECT a.job_id, a.status, COUNT(*) FROM applications a
        JOIN jobs j ON j.id = a.job_id
        WHERE {MEMBER_JOBS}
        GROUP BY a.job_id, a.status
    """), params)
    for job_id, status, count in result.fetchall():
        per_job.setdefault(job_id, {})[status] = int(count)

    for job in jobs:
        counts = {status: 0 for status in APPLICATION_STATUSES}
        counts.update(per_job.get(job["id"], {}))
        counts["total"] = sum(counts.values())
        job["application_counts"] = counts
    stats["total_applications"] = sum(job["application_counts"]["total"] for job in jobs)

    recent = rows_to_dicts(db.execute(
        text(APPLICATION_SELECT + f" WHERE {MEMBER_JOBS} ORDER BY a.created_at DESC LIMIT 10"), params
    ))
    return {"stats": stats, "jobs": jobs, "recent_applications": recent}
