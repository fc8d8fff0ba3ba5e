"""
User Service - account creation and lookups shared by auth, employer and admin routes.
"""

from typing import Optional

from sqlalchemy import text

from app.core.auth import hash_password, load_user_permissions, load_user_roles
from app.db.postgres import fetch_one, get_db_session, new_id, utcnow


def normalize_email(email: str) -> str:
    return email.strip().lower()


def email_exists(db, email: str) -> bool:
    result = db.execute(
        text("SELECT 1 FROM users WHERE LOWER(email) = :email"),
        {"email": normalize_email(email)}
    )
    return result.fetchone() is not None


def create_user(db, first_name: str, last_name: str, email: str, password: str, role_name: str) -> str:
    """Insert a user and assign one role inside the caller's transaction. Returns the user id."""
    user_id = new_id()
    now = utcnow()
    db.execute(
        text("""
            INSERT INTO users (id, email, password_hash, first_name, last_name, is_active, is_blocked,
                created_at, updated_at)
            VALUES (:id, :email, :hash, :first_name, :last_name, TRUE, FALSE, :now, :now)
        """),
        {
            "id": user_id, "email": normalize_email(email), "hash": hash_password(password),
            "first_name": first_name, "last_name": last_name, "now": now,
        }
    )
    assign_role(db, user_id, role_name)
    return user_id


def assign_role(db, user_id: str, role_name: str) -> None:
    result = db.execute(text("SELECT id FROM roles WHERE name = :name"), {"name": role_name})
    row = result.fetchone()
    if row is None:
        raise RuntimeError(f"Role {role_name} is not seeded")
    db.execute(
        text("INSERT INTO user_roles (user_id, role_id, assigned_at) VALUES (:uid, :rid, :now)"),
        {"uid": user_id, "rid": row[0], "now": utcnow()}
    )


def create_job_seeker_profile(db, user_id: str) -> None:
    now = utcnow()
    db.execute(
        text("INSERT INTO job_seeker_profiles (user_id, created_at, updated_at) VALUES (:uid, :now, :now)"),
        {"uid": user_id, "now": now}
    )


def get_user_profile(user_id: str) -> Optional[dict]:
    """User row with roles and permissions, shaped for CurrentUserResponse."""
    with get_db_session() as db:
        user = fetch_one(
            db,
            """
            SELECT id, email, first_name, last_name, phone, is_active, created_at
            FROM users WHERE id = :id
            """,
            {"id": user_id}
        )
        if user is None:
            return None
        user["roles"] = load_user_roles(db, user_id)
        user["permissions"] = load_user_permissions(db, user_id)
    return user
