"""
Company Service - creation shared by company routes and employer registration.
"""

from sqlalchemy import text

from app.db.postgres import fetch_one, new_id, utcnow
from app.services.audit_service import log_audit
from app.services.system_settings import initial_company_status

COMPANY_FIELDS = (
    "name", "industry", "description", "website", "logo_url", "contact_email", "contact_phone",
    "address_line1", "address_line2", "city", "country",
)


def get_company(db, company_id: str):
    return fetch_one(db, "SELECT * FROM companies WHERE id = :id", {"id": company_id})


def insert_company(db, data: dict, created_by: str) -> dict:
    """
    Create a company inside the caller's transaction.

    Status follows the approval mode (active or pending); the creator
    becomes the first company user.
    """
    company_id = new_id()
    now = utcnow()
    status = initial_company_status(db)
    params = {field: data.get(field) for field in COMPANY_FIELDS}
    params.update({"id": company_id, "status": status, "created_by": created_by, "now": now})

    db.execute(
        text(f"""
            INSERT INTO companies (id, {', '.join(COMPANY_FIELDS)}, status, created_by, created_at, updated_at)
            VALUES (:id, {', '.join(':' + f for f in COMPANY_FIELDS)}, :status, :created_by, :now, :now)
        """),
        params
    )
    db.execute(
        text("""
            INSERT INTO company_users (company_id, user_id, added_by, created_at)
            VALUES (:cid, :uid, :uid, :now)
        """),
        {"cid": company_id, "uid": created_by, "now": now}
    )
    log_audit(db, created_by, "COMPANY_CREATED", "companies", "companies", company_id,
              {"name": data.get("name"), "status": status})
    return get_company(db, company_id)
