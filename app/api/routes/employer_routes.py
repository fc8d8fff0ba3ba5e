"""
Employer Routes

GET /employer/profile - Employer account, member companies and job figures
PUT /employer/profile - Update the employer's name and phone
"""

import logging

from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy import text

from app.core.auth import require_roles
from app.db.postgres import get_db_session, rows_to_dicts, utcnow
from app.schemas.schemas import EmployerProfileResponse, EmployerProfileUpdate
from app.services.audit_service import log_audit
from app.services.job_service import employer_dashboard
from app.services.user_service import get_user_profile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/employer", tags=["Employer"])

employer_access = require_roles("EMPLOYER", "ADMIN")


def _profile(user_id: str) -> dict:
    with get_db_session() as db:
        companies = rows_to_dicts(db.execute(
            text("""
                SELECT c.* FROM companies c
                JOIN company_users cu ON cu.company_id = c.id
                WHERE cu.user_id = :uid
                ORDER BY c.created_at ASC
            """),
            {"uid": user_id}
        ))
        stats = employer_dashboard(db, user_id)["stats"]
    return {"profile": get_user_profile(user_id), "companies": companies, "stats": stats}


@router.get("/profile", response_model=EmployerProfileResponse)
async def get_employer_profile(user: dict = Depends(employer_access)):
    """Account details, the companies the employer belongs to, and their job figures."""
    return _profile(user["user_id"])


@router.put("/profile", response_model=EmployerProfileResponse)
async def update_employer_profile(update: EmployerProfileUpdate, user: dict = Depends(employer_access)):
    """Update account details. Company details are edited through /companies."""
    data = {k: v for k, v in update.model_dump(exclude_unset=True).items()
            if v is not None or k == "phone"}
    if not data:
        raise HTTPException(status_code=400, detail="No fields to update")

    assignments = [f"{field} = :{field}" for field in data] + ["updated_at = :now"]
    with get_db_session() as db:
        db.execute(
            text(f"UPDATE users SET {', '.join(assignments)} WHERE id = :id"),
            {"id": user["user_id"], "now": utcnow(), **data}
        )
        log_audit(db, user["user_id"], "EMPLOYER_PROFILE_UPDATED", "users", "users", user["user_id"], data)

    logger.info("Employer profile %s updated (%s)", user["user_id"], ", ".join(sorted(data)))
    return _profile(user["user_id"])
