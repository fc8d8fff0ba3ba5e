"""
Job Seeker Routes

GET    /job-seeker/profile - Professional profile
PUT    /job-seeker/profile - Create or update professional profile
GET    /job-seeker/personal-details - Personal details
PUT    /job-seeker/personal-details - Create or update personal details
GET    /job-seeker/addresses - List addresses
POST   /job-seeker/addresses - Add address
PUT    /job-seeker/addresses/{address_id} - Update address
PATCH  /job-seeker/addresses/{address_id}/primary - Make address primary
DELETE /job-seeker/addresses/{address_id} - Delete address
GET|POST /job-seeker/education, PUT|DELETE /job-seeker/education/{education_id}
GET|POST /job-seeker/experience, PUT|DELETE /job-seeker/experience/{experience_id}
GET|POST /job-seeker/references, PUT|DELETE /job-seeker/references/{reference_id}
GET|POST /job-seeker/skills, PATCH /job-seeker/skills/{skill_id}/primary, DELETE /job-seeker/skills/{skill_id}
GET|POST /job-seeker/certifications, PUT|DELETE /job-seeker/certifications/{certification_id}
GET    /job-seeker/full-profile - Everything above in one response

Every route acts on the caller's own rows. Rows owned by someone else are
reported as not found.
"""

from datetime import timedelta
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy import text

from app.core.auth import get_current_job_seeker
from app.db.postgres import get_db_session, execute_raw_sql, fetch_one, new_id, utcnow
from app.schemas.schemas import (
    ProfileUpdate, ProfileResponse, PersonalDetailsUpdate, PersonalDetailsResponse,
    AddressCreate, AddressUpdate, AddressResponse,
    EducationCreate, EducationUpdate, EducationResponse,
    ExperienceCreate, ExperienceUpdate, ExperienceResponse,
    ReferenceCreate, ReferenceUpdate, ReferenceResponse,
    SkillCreate, SkillResponse, SkillListResponse, ProficiencyLevel,
    CertificationCreate, CertificationResponse, CertificationListResponse, CertificationSort,
    FullProfileResponse, MessageResponse
)
from app.services.audit_service import log_audit
from app.services.user_service import get_user_profile

router = APIRouter(prefix="/job-seeker", tags=["Job Seeker"])

PROFILE_FIELDS = ("professional_summary", "field_of_expertise", "qualification_level", "years_experience")
PERSONAL_FIELDS = (
    "first_name", "last_name", "middle_name", "gender", "date_of_birth", "nationality",
    "id_type", "id_number", "marital_status", "disability_status",
)

# Section table -> ORDER BY used when listing
SECTION_ORDER = {
    "job_seeker_addresses": "is_primary DESC, created_at ASC",
    "job_seeker_education": "start_date DESC, created_at DESC",
    "job_seeker_experience": "is_current DESC, start_date DESC, created_at DESC",
    "job_seeker_references": "created_at ASC",
    "job_seeker_skills": "is_primary DESC, years_of_experience IS NULL, years_of_experience DESC, name ASC",
    "job_seeker_certifications": "issue_date DESC, created_at DESC",
}

CERTIFICATION_SORTS = {
    CertificationSort.newest: "issue_date DESC, created_at DESC",
    CertificationSort.oldest: "issue_date ASC, created_at ASC",
    CertificationSort.expiring_soon: "does_not_expire ASC, expiration_date IS NULL, expiration_date ASC",
}
EXPIRING_SOON = timedelta(days=30)


# ============================================================
# HELPERS
# ============================================================

def _upsert_one_to_one(table: str, fields: tuple, user_id: str, data: dict) -> dict:
    """Insert or update a row keyed by user_id. Only fields present in data are written."""
    now = utcnow()
    with get_db_session() as db:
        exists = db.execute(text(f"SELECT 1 FROM {table} WHERE user_id = :uid"), {"uid": user_id}).fetchone()
        columns = [f for f in fields if f in data]
        params = {"uid": user_id, "now": now, **{f: data[f] for f in columns}}

        if exists:
            assignments = [f"{f} = :{f}" for f in columns] + ["updated_at = :now"]
            db.execute(text(f"UPDATE {table} SET {', '.join(assignments)} WHERE user_id = :uid"), params)
        else:
            names = ", ".join(["user_id", *columns, "created_at", "updated_at"])
            values = ", ".join([":uid", *[f":{f}" for f in columns], ":now", ":now"])
            db.execute(text(f"INSERT INTO {table} ({names}) VALUES ({values})"), params)

        log_audit(db, user_id, f"{table.upper()}_SAVED", "job_seeker", table, user_id, data)
        return fetch_one(db, f"SELECT * FROM {table} WHERE user_id = :uid", {"uid": user_id})


def _list_section(table: str, user_id: str) -> List[dict]:
    return execute_raw_sql(
        f"SELECT * FROM {table} WHERE user_id = :uid ORDER BY {SECTION_ORDER[table]}",
        {"uid": user_id}
    )


def _insert_section(db, table: str, user_id: str, data: dict) -> dict:
    row_id = new_id()
    now = utcnow()
    columns = list(data.keys())
    names = ", ".join(["id", "user_id", *columns, "created_at", "updated_at"])
    values = ", ".join([":id", ":uid", *[f":{c}" for c in columns], ":now", ":now"])
    db.execute(
        text(f"INSERT INTO {table} ({names}) VALUES ({values})"),
        {"id": row_id, "uid": user_id, "now": now, **data}
    )
    log_audit(db, user_id, f"{table.upper()}_CREATED", "job_seeker", table, row_id, data)
    return fetch_one(db, f"SELECT * FROM {table} WHERE id = :id", {"id": row_id})


def _update_section(db, table: str, row_id: str, user_id: str, data: dict, label: str) -> dict:
    if not data:
        raise HTTPException(status_code=400, detail="No fields to update")

    assignments = [f"{c} = :{c}" for c in data] + ["updated_at = :now"]
    result = db.execute(
        text(f"UPDATE {table} SET {', '.join(assignments)} WHERE id = :id AND user_id = :uid"),
        {"id": row_id, "uid": user_id, "now": utcnow(), **data}
    )
    if result.rowcount == 0:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    log_audit(db, user_id, f"{table.upper()}_UPDATED", "job_seeker", table, row_id, data)
    return fetch_one(db, f"SELECT * FROM {table} WHERE id = :id", {"id": row_id})


def _delete_section(table: str, row_id: str, user_id: str, label: str) -> MessageResponse:
    with get_db_session() as db:
        result = db.execute(
            text(f"DELETE FROM {table} WHERE id = :id AND user_id = :uid"),
            {"id": row_id, "uid": user_id}
        )
        if result.rowcount == 0:
            raise HTTPException(status_code=404, detail=f"{label} not found")
        log_audit(db, user_id, f"{table.upper()}_DELETED", "job_seeker", table, row_id)
    return MessageResponse(message=f"{label} deleted")


def _check_merged_dates(db, table: str, row_id: str, user_id: str, data: dict) -> None:
    """A partial update may move one end of a date range past the stored other end."""
    if "start_date" not in data and "end_date" not in data:
        return
    current = fetch_one(db, f"SELECT start_date, end_date FROM {table} WHERE id = :id AND user_id = :uid",
                        {"id": row_id, "uid": user_id})
    if not current:
        return
    start = data.get("start_date", current["start_date"])
    end = data.get("end_date", current["end_date"])
    if start and end and str(end) < str(start):
        raise HTTPException(status_code=400, detail="end_date cannot be before start_date")


def _clear_primary_address(db, user_id: str, keep_id: str = None) -> None:
    db.execute(
        text("UPDATE job_seeker_addresses SET is_primary = FALSE WHERE user_id = :uid AND id != :keep"),
        {"uid": user_id, "keep": keep_id or ""}
    )


# ============================================================
# PROFILE & PERSONAL DETAILS
# ============================================================

@router.get("/profile", response_model=ProfileResponse)
async def get_profile(user: dict = Depends(get_current_job_seeker)):
    rows = execute_raw_sql("SELECT * FROM job_seeker_profiles WHERE user_id = :uid", {"uid": user["user_id"]})
    return rows[0]


@router.put("/profile", response_model=ProfileResponse)
async def update_profile(update: ProfileUpdate, user: dict = Depends(get_current_job_seeker)):
    data = update.model_dump(exclude_unset=True)
    if not data:
        raise HTTPException(status_code=400, detail="No fields to update")
    return _upsert_one_to_one("job_seeker_profiles", PROFILE_FIELDS, user["user_id"], data)


@router.get("/personal-details", response_model=PersonalDetailsResponse)
async def get_personal_details(user: dict = Depends(get_current_job_seeker)):
    rows = execute_raw_sql(
        "SELECT * FROM job_seeker_personal_details WHERE user_id = :uid", {"uid": user["user_id"]}
    )
    if not rows:
        raise HTTPException(status_code=404, detail="Personal details not found")
    return rows[0]


@router.put("/personal-details", response_model=PersonalDetailsResponse)
async def update_personal_details(update: PersonalDetailsUpdate, user: dict = Depends(get_current_job_seeker)):
    data = update.model_dump(exclude_unset=True)
    if not data:
        raise HTTPException(status_code=400, detail="No fields to update")
    return _upsert_one_to_one("job_seeker_personal_details", PERSONAL_FIELDS, user["user_id"], data)


# ============================================================
# ADDRESSES
# ============================================================

@router.get("/addresses", response_model=List[AddressResponse])
async def list_addresses(user: dict = Depends(get_current_job_seeker)):
    return _list_section("job_seeker_addresses", user["user_id"])


@router.post("/addresses", response_model=AddressResponse, status_code=201)
async def create_address(address: AddressCreate, user: dict = Depends(get_current_job_seeker)):
    """Add an address. The first address, or one flagged is_primary, becomes primary."""
    data = address.model_dump()
    with get_db_session() as db:
        has_any = db.execute(
            text("SELECT 1 FROM job_seeker_addresses WHERE user_id = :uid"), {"uid": user["user_id"]}
        ).fetchone()
        if not has_any:
            data["is_primary"] = True
        if data["is_primary"]:
            _clear_primary_address(db, user["user_id"])
        return _insert_section(db, "job_seeker_addresses", user["user_id"], data)


@router.put("/addresses/{address_id}", response_model=AddressResponse)
async def update_address(address_id: str, update: AddressUpdate, user: dict = Depends(get_current_job_seeker)):
    data = update.model_dump(exclude_unset=True)
    for required in ("address_line1", "city", "country", "is_primary"):
        if required in data and data[required] is None:
            del data[required]

    with get_db_session() as db:
        updated = _update_section(db, "job_seeker_addresses", address_id, user["user_id"], data, "Address")
        if data.get("is_primary"):
            _clear_primary_address(db, user["user_id"], keep_id=address_id)
        return updated


@router.patch("/addresses/{address_id}/primary", response_model=AddressResponse)
async def set_primary_address(address_id: str, user: dict = Depends(get_current_job_seeker)):
    with get_db_session() as db:
        updated = _update_section(db, "job_seeker_addresses", address_id, user["user_id"],
                                  {"is_primary": True}, "Address")
        _clear_primary_address(db, user["user_id"], keep_id=address_id)
        return updated


@router.delete("/addresses/{address_id}", response_model=MessageResponse)
async def delete_address(address_id: str, user: dict = Depends(get_current_job_seeker)):
    return _delete_section("job_seeker_addresses", address_id, user["user_id"], "Address")


# ============================================================
# EDUCATION
# ============================================================

@router.get("/education", response_model=List[EducationResponse])
async def list_education(user: dict = Depends(get_current_job_seeker)):
    return _list_section("job_seeker_education", user["user_id"])


@router.post("/education", response_model=EducationResponse, status_code=201)
async def create_education(education: EducationCreate, user: dict = Depends(get_current_job_seeker)):
    with get_db_session() as db:
        return _insert_section(db, "job_seeker_education", user["user_id"], education.model_dump())


@router.put("/education/{education_id}", response_model=EducationResponse)
async def update_education(education_id: str, update: EducationUpdate, user: dict = Depends(get_current_job_seeker)):
    data = {k: v for k, v in update.model_dump(exclude_unset=True).items()
            if v is not None or k not in ("institution_name", "qualification", "is_current")}
    with get_db_session() as db:
        _check_merged_dates(db, "job_seeker_education", education_id, user["user_id"], data)
        return _update_section(db, "job_seeker_education", education_id, user["user_id"], data, "Education")


@router.delete("/education/{education_id}", response_model=MessageResponse)
async def delete_education(education_id: str, user: dict = Depends(get_current_job_seeker)):
    return _delete_section("job_seeker_education", education_id, user["user_id"], "Education")


# ============================================================
# EXPERIENCE
# ============================================================

@router.get("/experience", response_model=List[ExperienceResponse])
async def list_experience(user: dict = Depends(get_current_job_seeker)):
    return _list_section("job_seeker_experience", user["user_id"])


@router.post("/experience", response_model=ExperienceResponse, status_code=201)
async def create_experience(experience: ExperienceCreate, user: dict = Depends(get_current_job_seeker)):
    with get_db_session() as db:
        return _insert_section(db, "job_seeker_experience", user["user_id"], experience.model_dump())


@router.put("/experience/{experience_id}", response_model=ExperienceResponse)
async def update_experience(
    experience_id: str,
    update: ExperienceUpdate,
    user: dict = Depends(get_current_job_seeker)
):
    data = {k: v for k, v in update.model_dump(exclude_unset=True).items()
            if v is not None or k not in ("company_name", "job_title", "is_current")}
    with get_db_session() as db:
        _check_merged_dates(db, "job_seeker_experience", experience_id, user["user_id"], data)
        return _update_section(db, "job_seeker_experience", experience_id, user["user_id"], data, "Experience")


@router.delete("/experience/{experience_id}", response_model=MessageResponse)
async def delete_experience(experience_id: str, user: dict = Depends(get_current_job_seeker)):
    return _delete_section("job_seeker_experience", experience_id, user["user_id"], "Experience")


# ============================================================
# REFERENCES
# ============================================================

@router.get("/references", response_model=List[ReferenceResponse])
async def list_references(user: dict = Depends(get_current_job_seeker)):
    return _list_section("job_seeker_references", user["user_id"])


@router.post("/references", response_model=ReferenceResponse, status_code=201)
async def create_reference(reference: ReferenceCreate, user: dict = Depends(get_current_job_seeker)):
    with get_db_session() as db:
        return _insert_section(db, "job_seeker_references", user["user_id"], reference.model_dump())


@router.put("/references/{reference_id}", response_model=ReferenceResponse)
async def update_reference(reference_id: str, update: ReferenceUpdate, user: dict = Depends(get_current_job_seeker)):
    data = {k: v for k, v in update.model_dump(exclude_unset=True).items()
            if v is not None or k != "full_name"}
    with get_db_session() as db:
        return _update_section(db, "job_seeker_references", reference_id, user["user_id"], data, "Reference")


@router.delete("/references/{reference_id}", response_model=MessageResponse)
async def delete_reference(reference_id: str, user: dict = Depends(get_current_job_seeker)):
    return _delete_section("job_seeker_references", reference_id, user["user_id"], "Reference")


# ============================================================
# SKILLS
# ============================================================

def _clear_primary_skill(db, user_id: str, keep_id: str) -> None:
    db.execute(
        text("UPDATE job_seeker_skills SET is_primary = FALSE WHERE user_id = :uid AND id != :keep"),
        {"uid": user_id, "keep": keep_id}
    )


@router.get("/skills", response_model=SkillListResponse)
async def list_skills(
    proficiency: Optional[ProficiencyLevel] = Query(None),
    is_primary: Optional[bool] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    user: dict = Depends(get_current_job_seeker)
):
    """Skills with optional filters. The counts always cover every skill."""
    uid = user["user_id"]
    sql = "SELECT * FROM job_seeker_skills WHERE user_id = :uid"
    params = {"uid": uid}
    if proficiency:
        sql += " AND proficiency_level = :proficiency"
        params["proficiency"] = proficiency.value
    if is_primary is not None:
        sql += " AND is_primary = :is_primary"
        params["is_primary"] = is_primary
    if search:
        sql += " AND LOWER(name) LIKE :search"
        params["search"] = f"%{search.strip().lower()}%"

    skills = execute_raw_sql(f"{sql} ORDER BY {SECTION_ORDER['job_seeker_skills']}", params)
    counts = execute_raw_sql("""
        SELECT COUNT(*) AS total, COALESCE(SUM(CASE WHEN is_primary = TRUE THEN 1 ELSE 0 END), 0) AS primary_count
        FROM job_seeker_skills WHERE user_id = :uid
    """, {"uid": uid})[0]
    return SkillListResponse(skills=skills, total_count=int(counts["total"]),
                             primary_count=int(counts["primary_count"]))


@router.post("/skills", response_model=SkillResponse, status_code=201)
async def create_skill(skill: SkillCreate, user: dict = Depends(get_current_job_seeker)):
    """Add a skill. Names are unique per user, ignoring case; a new primary skill replaces the old one."""
    uid = user["user_id"]
    with get_db_session() as db:
        existing = db.execute(
            text("SELECT id FROM job_seeker_skills WHERE user_id = :uid AND LOWER(name) = :name"),
            {"uid": uid, "name": skill.name.lower()}
        ).fetchone()
        if existing:
            raise HTTPException(status_code=409, detail="Skill already exists")

        created = _insert_section(db, "job_seeker_skills", uid, skill.model_dump(mode="json"))
        if skill.is_primary:
            _clear_primary_skill(db, uid, created["id"])
        return created


@router.patch("/skills/{skill_id}/primary", response_model=SkillResponse)
async def set_primary_skill(skill_id: str, user: dict = Depends(get_current_job_seeker)):
    with get_db_session() as db:
        updated = _update_section(db, "job_seeker_skills", skill_id, user["user_id"], {"is_primary": True}, "Skill")
        _clear_primary_skill(db, user["user_id"], skill_id)
        return updated


@router.delete("/skills/{skill_id}", response_model=MessageResponse)
async def delete_skill(skill_id: str, user: dict = Depends(get_current_job_seeker)):
    return _delete_section("job_seeker_skills", skill_id, user["user_id"], "Skill")


# ============================================================
# CERTIFICATIONS
# ============================================================

@router.get("/certifications", response_model=CertificationListResponse)
async def list_certifications(
    issuer: Optional[str] = Query(None, max_length=200),
    search: Optional[str] = Query(None, max_length=200),
    sort: CertificationSort = Query(CertificationSort.newest),
    user: dict = Depends(get_current_job_seeker)
):
    """
    Certifications with filters and sorting.

    expired_count and expiring_soon_count (next 30 days) ignore certifications
    that do not expire.
    """
    uid = user["user_id"]
    sql = "SELECT * FROM job_seeker_certifications WHERE user_id = :uid"
    params = {"uid": uid}
    if issuer:
        sql += " AND LOWER(issuing_organization) LIKE :issuer"
        params["issuer"] = f"%{issuer.strip().lower()}%"
    if search:
        sql += " AND (LOWER(name) LIKE :search OR LOWER(description) LIKE :search)"
        params["search"] = f"%{search.strip().lower()}%"

    certifications = execute_raw_sql(f"{sql} ORDER BY {CERTIFICATION_SORTS[sort]}", params)

    today = utcnow().date()
    counts = execute_raw_sql("""
        SELECT COUNT(*) AS total,
               COALESCE(SUM(CASE WHEN does_not_expire = FALSE AND expiration_date < :today
                   THEN 1 ELSE 0 END), 0) AS expired,
               COALESCE(SUM(CASE WHEN does_not_expire = FALSE AND expiration_date >= :today
                   AND expiration_date <= :soon THEN 1 ELSE 0 END), 0) AS expiring_soon
        FROM job_seeker_certifications WHERE user_id = :uid
    """, {"uid": uid, "today": today, "soon": today + EXPIRING_SOON})[0]

    return CertificationListResponse(
        certifications=certifications,
        total_count=int(counts["total"]),
        expired_count=int(counts["expired"]),
        expiring_soon_count=int(counts["expiring_soon"]),
    )


@router.post("/certifications", response_model=CertificationResponse, status_code=201)
async def create_certification(certification: CertificationCreate, user: dict = Depends(get_current_job_seeker)):
    with get_db_session() as db:
        return _insert_section(db, "job_seeker_certifications", user["user_id"], certification.model_dump())


@router.put("/certifications/{certification_id}", response_model=CertificationResponse)
async def update_certification(
    certification_id: str,
    certification: CertificationCreate,
    user: dict = Depends(get_current_job_seeker)
):
    """Replace a certification."""
    with get_db_session() as db:
        return _update_section(db, "job_seeker_certifications", certification_id, user["user_id"],
                               certification.model_dump(), "Certification")


@router.delete("/certifications/{certification_id}", response_model=MessageResponse)
async def delete_certification(certification_id: str, user: dict = Depends(get_current_job_seeker)):
    return _delete_section("job_seeker_certifications", certification_id, user["user_id"], "Certification")


# ============================================================
# FULL PROFILE
# ============================================================

@router.get("/full-profile", response_model=FullProfileResponse)
async def get_full_profile(user: dict = Depends(get_current_job_seeker)):
    """Account, profile, personal details, every section and documents in one response."""
    uid = user["user_id"]
    profile = execute_raw_sql("SELECT * FROM job_seeker_profiles WHERE user_id = :uid", {"uid": uid})
    personal = execute_raw_sql("SELECT * FROM job_seeker_personal_details WHERE user_id = :uid", {"uid": uid})

    return {
        "user": get_user_profile(uid),
        "profile": profile[0] if profile else None,
        "personal_details": personal[0] if personal else None,
        "addresses": _list_section("job_seeker_addresses", uid),
        "education": _list_section("job_seeker_education", uid),
        "experience": _list_section("job_seeker_experience", uid),
        "references": _list_section("job_seeker_references", uid),
        "skills": _list_section("job_seeker_skills", uid),
        "certifications": _list_section("job_seeker_certifications", uid),
        "documents": execute_raw_sql(
            "SELECT * FROM documents WHERE user_id = :uid ORDER BY created_at DESC", {"uid": uid}
        ),
    }
