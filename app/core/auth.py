"""
Authentication & Authorization - JWT, password hashing, permission checks.

Provides:
- Password hashing with bcrypt
- JWT token creation/verification
- FastAPI dependencies for protected routes (current user, roles, permissions)
- Company-scoped access checks
"""

import re
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import text

from app.core.config import get_settings
from app.db.postgres import get_db_session, utcnow

settings = get_settings()

ADMIN_ROLE = "ADMIN"

PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&#]).{8,}$")

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.bcrypt_rounds)

# Bearer token extractors
bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    """Hash password with bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash."""
    return pwd_context.verify(plain_password, hashed_password)


def is_strong_password(password: str) -> bool:
    """At least 8 chars with upper, lower, digit and one of @$!%*?&#."""
    return bool(PASSWORD_PATTERN.match(password or ""))


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify JWT token."""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


# ============================================================
# USER / ROLE / PERMISSION LOOKUPS
# ============================================================

def load_user_roles(db, user_id: str) -> List[str]:
    result = db.execute(
        text("""
            SELECT r.name FROM roles r
            JOIN user_roles ur ON r.id = ur.role_id
            WHERE ur.user_id = :id
            ORDER BY r.name
        """),
        {"id": user_id}
    )
    return [row[0] for row in result.fetchall()]


def load_user_permissions(db, user_id: str) -> List[str]:
    result = db.execute(
        text("""
            SELECT DISTINCT p.name FROM permissions p
            JOIN role_permissions rp ON p.id = rp.permission_id
            JOIN user_roles ur ON rp.role_id = ur.role_id
            WHERE ur.user_id = :id
        """),
        {"id": user_id}
    )
    return sorted(row[0] for row in result.fetchall())


def issue_token_for_user(user_id: str) -> dict:
    """Build the token response body for a user id."""
    with get_db_session() as db:
        result = db.execute(
            text("SELECT id, email, first_name, last_name FROM users WHERE id = :id"),
            {"id": user_id}
        )
        user = result.fetchone()
        roles = load_user_roles(db, user_id)
        db.execute(
            text("UPDATE users SET last_login_at = :now WHERE id = :id"),
            {"now": utcnow(), "id": user_id}
        )

    name = f"{user[2]} {user[3]}".strip()
    token = create_access_token({"sub": user[0], "email": user[1], "name": name, "roles": roles})
    return {
        "token_type": "Bearer",
        "access_token": token,
        "expires_in": settings.jwt_expire_minutes * 60,
        "user": {"id": user[0], "email": user[1], "name": name, "roles": roles},
    }


def _resolve_user(token: str) -> dict:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = decode_token(token)
    if not payload:
        raise credentials_exception

    user_id = payload.get("sub")
    if not user_id:
        raise credentials_exception

    with get_db_session() as db:
        result = db.execute(
            text("""
                SELECT id, email, first_name, last_name, is_active, is_blocked
                FROM users WHERE id = :id
            """),
            {"id": user_id}
        )
        user = result.fetchone()
        if not user or not user[4] or user[5]:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="User not found or inactive",
                headers={"WWW-Authenticate": "Bearer"},
            )
        roles = load_user_roles(db, user_id)
        permissions = load_user_permissions(db, user_id)

    return {
        "user_id": user[0],
        "email": user[1],
        "name": f"{user[2]} {user[3]}".strip(),
        "roles": roles,
        "permissions": permissions,
    }


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> dict:
    """
    FastAPI dependency - Get current authenticated user with roles and permissions.

    Usage:
        @app.get("/protected")
        async def route(user: dict = Depends(get_current_user)):
            return user
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return _resolve_user(credentials.credentials)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> Optional[dict]:
    """Like get_current_user, but anonymous requests get None instead of 401."""
    if credentials is None:
        return None
    return _resolve_user(credentials.credentials)


# ============================================================
# AUTHORIZATION
# ============================================================

def is_admin(user: dict) -> bool:
    return ADMIN_ROLE in user["roles"]


def has_permission(user: dict, *names: str) -> bool:
    """ADMIN short-circuits; otherwise any one of the names must be granted."""
    if is_admin(user):
        return True
    return any(name in user["permissions"] for name in names)


def require_roles(*roles: str):
    """Dependency factory - require membership in one of the roles."""
    async def dependency(user: dict = Depends(get_current_user)) -> dict:
        if not any(role in user["roles"] for role in roles):
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return user
    return dependency


def require_permissions(*names: str):
    """Dependency factory - require any one of the permissions (ADMIN always passes)."""
    async def dependency(user: dict = Depends(get_current_user)) -> dict:
        if not has_permission(user, *names):
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return user
    return dependency


async def get_current_job_seeker(user: dict = Depends(get_current_user)) -> dict:
    """Dependency - Require JOB_SEEKER role and an existing profile row."""
    if "JOB_SEEKER" not in user["roles"]:
        raise HTTPException(status_code=403, detail="Job seekers only")

    with get_db_session() as db:
        result = db.execute(
            text("SELECT user_id FROM job_seeker_profiles WHERE user_id = :id"),
            {"id": user["user_id"]}
        )
        row = result.fetchone()

    if not row:
        raise HTTPException(status_code=404, detail="Job seeker profile not found")
    return user


def is_company_member(db, user_id: str, company_id: str) -> bool:
    result = db.execute(
        text("SELECT 1 FROM company_users WHERE company_id = :cid AND user_id = :uid"),
        {"cid": company_id, "uid": user_id}
    )
    return result.fetchone() is not None


def ensure_company_access(db, user: dict, company_id: str) -> None:
    """ADMIN passes; everyone else must belong to the company."""
    if is_admin(user):
        return
    if not is_company_member(db, user["user_id"], company_id):
        raise HTTPException(status_code=403, detail="You do not have access to this company")
