"""
User Routes

GET /users/me - Current user profile with roles and permissions
GET /users/search - Search active users by name or email (ADMIN / HR_MANAGER)
"""

from typing import List

from fastapi import APIRouter, HTTPException, Depends, Query

from app.core.auth import get_current_user, require_roles
from app.db.postgres import execute_raw_sql
from app.schemas.schemas import CurrentUserResponse, UserSearchResult
from app.services.user_service import get_user_profile

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/me", response_model=CurrentUserResponse)
async def get_my_profile(user: dict = Depends(get_current_user)):
    profile = get_user_profile(user["user_id"])
    if not profile:
        raise HTTPException(status_code=404, detail="User not found")
    return profile


@router.get("/search", response_model=List[UserSearchResult])
async def search_users(
    q: str = Query("", max_length=100),
    user: dict = Depends(require_roles("ADMIN", "HR_MANAGER"))
):
    """Search users for pickers (e.g. adding company users). Queries under 2 chars return nothing."""
    term = q.strip().lower()
    if len(term) < 2:
        return []

    return execute_raw_sql("""
        SELECT id, email, first_name, last_name FROM users
        WHERE is_active = TRUE AND is_blocked = FALSE AND (
            LOWER(first_name) LIKE :term OR LOWER(last_name) LIKE :term
            OR LOWER(email) LIKE :term OR LOWER(first_name || ' ' || last_name) LIKE :term
        )
        ORDER BY first_name, last_name
        LIMIT 10
    """, {"term": f"%{term}%"})
