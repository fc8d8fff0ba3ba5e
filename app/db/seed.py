"""
Seed data - system roles, permissions and their default grants.

Idempotent: safe to run on every startup.
"""

import logging
from typing import Optional

from sqlalchemy import text

from app.db.postgres import engine, get_db_session, new_id, utcnow
from app.db.tables import metadata

logger = logging.getLogger(__name__)


SYSTEM_ROLES = {
    "ADMIN": "Full access to every module",
    "HR_MANAGER": "Manages companies, jobs, applications and email templates",
    "RECRUITER": "Posts jobs and reviews applications",
    "APPROVER": "Approves pending companies",
    "EMPLOYER": "Company account that posts jobs",
    "JOB_SEEKER": "End user applying to job postings",
}

# name -> (module_name, action_type, description)
PERMISSIONS = {
    "MANAGE_USERS": ("users", "MANAGE", "Manage users, blocking and reports"),
    "ASSIGN_ROLES": ("users", "ASSIGN", "Assign roles to users"),
    "ASSIGN_PERMISSIONS": ("roles", "ASSIGN", "Assign permissions to roles"),
    "CREATE_ROLE": ("roles", "CREATE", "Create roles"),
    "UPDATE_ROLE": ("roles", "UPDATE", "Update roles"),
    "DELETE_ROLE": ("roles", "DELETE", "Delete roles"),
    "CREATE_PERMISSION": ("permissions", "CREATE", "Create permissions"),
    "DELETE_PERMISSION": ("permissions", "DELETE", "Delete permissions"),
    "CREATE_COMPANY": ("companies", "CREATE", "Create companies"),
    "EDIT_COMPANY": ("companies", "UPDATE", "Edit company details"),
    "DEACTIVATE_COMPANY": ("companies", "DELETE", "Deactivate and reactivate companies"),
    "APPROVE_COMPANY": ("companies", "APPROVE", "Approve pending companies"),
    "MANAGE_COMPANY": ("companies", "MANAGE", "Manage any company"),
    "MANAGE_COMPANY_USERS": ("companies", "ASSIGN", "Add and remove company users"),
    "CREATE_JOB": ("jobs", "CREATE", "Create job postings"),
    "EDIT_JOB": ("jobs", "UPDATE", "Edit job postings"),
    "DELETE_JOB": ("jobs", "DELETE", "Delete or close job postings"),
    "VIEW_JOB": ("jobs", "READ", "View job postings"),
    "APPLY_JOB": ("applications", "CREATE", "Apply to job postings"),
    "VIEW_APPLICATIONS": ("applications", "READ", "View applications for jobs"),
    "UPDATE_APPLICATION_STATUS": ("applications", "UPDATE", "Change application status"),
    "MANAGE_EMAIL_TEMPLATES": ("email_templates", "MANAGE", "Edit email templates"),
    "VIEW_REPORTS": ("reports", "READ", "View statistics and reports"),
}

ROLE_GRANTS = {
    "ADMIN": list(PERMISSIONS),
    "HR_MANAGER": [
        "CREATE_COMPANY", "EDIT_COMPANY", "APPROVE_COMPANY", "MANAGE_COMPANY", "MANAGE_COMPANY_USERS",
        "CREATE_JOB", "EDIT_JOB", "DELETE_JOB", "VIEW_JOB", "VIEW_APPLICATIONS",
        "UPDATE_APPLICATION_STATUS", "MANAGE_EMAIL_TEMPLATES", "VIEW_REPORTS",
    ],
    "RECRUITER": ["CREATE_JOB", "EDIT_JOB", "VIEW_JOB", "VIEW_APPLICATIONS", "UPDATE_APPLICATION_STATUS"],
    "APPROVER": ["APPROVE_COMPANY", "VIEW_JOB", "VIEW_APPLICATIONS"],
    "EMPLOYER": [
        "CREATE_COMPANY", "EDIT_COMPANY", "MANAGE_COMPANY_USERS", "CREATE_JOB", "EDIT_JOB",
        "DELETE_JOB", "VIEW_JOB", "VIEW_APPLICATIONS", "UPDATE_APPLICATION_STATUS",
    ],
    "JOB_SEEKER": ["VIEW_JOB", "APPLY_JOB"],
}


def create_tables() -> None:
    metadata.create_all(bind=engine)


def seed_roles_and_permissions() -> None:
    with get_db_session() as db:
        role_ids = {}
        for name, description in SYSTEM_ROLES.items():
            row = db.execute(text("SELECT id FROM roles WHERE name = :name"), {"name": name}).fetchone()
            if row:
                role_ids[name] = row[0]
                continue
            role_id = new_id()
            db.execute(
                text("""
                    INSERT INTO roles (id, name, description, is_system, created_at, updated_at)
                    VALUES (:id, :name, :description, TRUE, :now, :now)
                """),
                {"id": role_id, "name": name, "description": description, "now": utcnow()}
            )
            role_ids[name] = role_id

        permission_ids = {}
        for name, (module_name, action_type, description) in PERMISSIONS.items():
            row = db.execute(text("SELECT id FROM permissions WHERE name = :name"), {"name": name}).fetchone()
            if row:
                permission_ids[name] = row[0]
                continue
            permission_id = new_id()
            db.execute(
                text("""
                    INSERT INTO permissions (id, name, description, module_name, action_type, created_at)
                    VALUES (:id, :name, :description, :module, :action, :now)
                """),
                {"id": permission_id, "name": name, "description": description,
                 "module": module_name, "action": action_type, "now": utcnow()}
            )
            permission_ids[name] = permission_id

        # Grants are only added, never revoked, so admin edits survive restarts
        for role_name, granted in ROLE_GRANTS.items():
            existing = {
                r[0] for r in db.execute(
                    text("SELECT permission_id FROM role_permissions WHERE role_id = :rid"),
                    {"rid": role_ids[role_name]}
                ).fetchall()
            }
            for permission_name in granted:
                pid = permission_ids[permission_name]
                if pid in existing:
                    continue
                db.execute(
                    text("INSERT INTO role_permissions (role_id, permission_id) VALUES (:rid, :pid)"),
                    {"rid": role_ids[role_name], "pid": pid}
                )


def ensure_admin_user(email: str, password: str) -> Optional[str]:
    """Create the bootstrap admin account if it does not exist yet. Returns its id."""
    from app.core.auth import hash_password

    email = email.strip().lower()
    with get_db_session() as db:
        row = db.execute(text("SELECT id FROM users WHERE LOWER(email) = :email"), {"email": email}).fetchone()
        if row:
            return row[0]

        user_id = new_id()
        now = utcnow()
        db.execute(
            text("""
                INSERT INTO users (id, email, password_hash, first_name, last_name, created_at, updated_at)
                VALUES (:id, :email, :hash, 'System', 'Administrator', :now, :now)
            """),
            {"id": user_id, "email": email, "hash": hash_password(password), "now": now}
        )
        db.execute(
            text("""
                INSERT INTO user_roles (user_id, role_id, assigned_at)
                SELECT :uid, id, :now FROM roles WHERE name = 'ADMIN'
            """),
            {"uid": user_id, "now": now}
        )
    logger.info("Bootstrap admin account created: %s", email)
    return user_id


def init_db(admin_email: str = "", admin_password: str = "") -> None:
    create_tables()
    seed_roles_and_permissions()
    if admin_email and admin_password:
        ensure_admin_user(admin_email, admin_password)
