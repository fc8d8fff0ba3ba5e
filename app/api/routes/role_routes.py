"""
Role & Permission Administration Routes

GET    /admin/roles - Roles with permission and user counts
POST   /admin/roles - Create role (CREATE_ROLE)
PUT    /admin/roles/{role_id} - Update role (UPDATE_ROLE)
DELETE /admin/roles/{role_id} - Delete role (DELETE_ROLE)
GET    /admin/roles/{role_id}/permissions - Permissions granted to a role
PUT    /admin/roles/{role_id}/permissions - Replace a role's permissions (ASSIGN_PERMISSIONS)
GET    /admin/permissions - Permissions grouped by module
POST   /admin/permissions - Create permission (CREATE_PERMISSION)
DELETE /admin/permissions/{permission_id} - Delete permission (DELETE_PERMISSION)
GET    /admin/users/{user_id}/roles - Roles of a user
PUT    /admin/users/{user_id}/roles - Replace a user's roles (ASSIGN_ROLES)
GET    /admin/users/{user_id}/permissions - Effective permissions of a user

Every mutation writes both admin_logs and audit_logs.
"""

from typing import Dict, List

from fastapi import APIRouter, HTTPException, Depends, Request
from sqlalchemy import text

from app.core.auth import ADMIN_ROLE, require_permissions
from app.db.postgres import get_db_session, execute_raw_sql, fetch_one, new_id, utcnow
from app.schemas.schemas import (
    RoleCreate, RoleUpdate, RoleResponse, PermissionCreate, PermissionResponse,
    RolePermissionsUpdate, UserRolesUpdate, MessageResponse
)
from app.services.audit_service import log_audit, log_admin_action

router = APIRouter(prefix="/admin", tags=["Roles & Permissions"])

ROLE_SELECT = """
    SELECT r.id, r.name, r.description, r.is_system, r.created_at,
           (SELECT COUNT(*) FROM role_permissions rp WHERE rp.role_id = r.id) AS permission_count,
           (SELECT COUNT(*) FROM user_roles ur WHERE ur.role_id = r.id) AS user_count
    FROM roles r
"""

view_access = require_permissions("MANAGE_USERS", "ASSIGN_ROLES", "ASSIGN_PERMISSIONS")


def _log(db, user: dict, action: str, target_type: str, target_id: str, details: dict, request: Request):
    log_admin_action(db, user["user_id"], action, target_type, target_id, details, request)
    log_audit(db, user["user_id"], action, "roles", target_type + "s", target_id, details)


def _get_role(db, role_id: str) -> dict:
    role = fetch_one(db, ROLE_SELECT + " WHERE r.id = :id", {"id": role_id})
    if not role:
        raise HTTPException(status_code=404, detail="Role not found")
    return role


def _ensure_user(db, user_id: str) -> None:
    if not db.execute(text("SELECT 1 FROM users WHERE id = :id"), {"id": user_id}).fetchone():
        raise HTTPException(status_code=404, detail="User not found")


def _user_roles(user_id: str) -> List[dict]:
    return execute_raw_sql(
        ROLE_SELECT + " JOIN user_roles mine ON mine.role_id = r.id AND mine.user_id = :uid ORDER BY r.name",
        {"uid": user_id}
    )


# ============================================================
# ROLES
# ============================================================

@router.get("/roles", response_model=List[RoleResponse])
async def list_roles(user: dict = Depends(view_access)):
    return execute_raw_sql(ROLE_SELECT + " ORDER BY r.is_system DESC, r.name")


@router.post("/roles", response_model=RoleResponse, status_code=201)
async def create_role(role: RoleCreate, request: Request, user: dict = Depends(require_permissions("CREATE_ROLE"))):
    with get_db_session() as db:
        if db.execute(text("SELECT 1 FROM roles WHERE name = :name"), {"name": role.name}).fetchone():
            raise HTTPException(status_code=409, detail="A role with this name already exists")

        role_id = new_id()
        now = utcnow()
        db.execute(
            text("""
                INSERT INTO roles (id, name, description, is_system, created_at, updated_at)
                VALUES (:id, :name, :description, FALSE, :now, :now)
            """),
            {"id": role_id, "name": role.name, "description": role.description, "now": now}
        )
        _log(db, user, "ROLE_CREATED", "role", role_id, role.model_dump(), request)
        return _get_role(db, role_id)


@router.put("/roles/{role_id}", response_model=RoleResponse)
async def update_role(
    role_id: str,
    update: RoleUpdate,
    request: Request,
    user: dict = Depends(require_permissions("UPDATE_ROLE"))
):
    data = {k: v for k, v in update.model_dump(exclude_unset=True).items() if v is not None}
    if not data:
        raise HTTPException(status_code=400, detail="No fields to update")

    with get_db_session() as db:
        role = _get_role(db, role_id)
        if "name" in data and data["name"] != role["name"]:
            if role["is_system"]:
                raise HTTPException(status_code=400, detail="System roles cannot be renamed")
            taken = db.execute(
                text("SELECT 1 FROM roles WHERE name = :name AND id != :id"), {"name": data["name"], "id": role_id}
            ).fetchone()
            if taken:
                raise HTTPException(status_code=409, detail="A role with this name already exists")

        assignments = [f"{k} = :{k}" for k in data] + ["updated_at = :now"]
        db.execute(text(f"UPDATE roles SET {', '.join(assignments)} WHERE id = :id"),
                   {**data, "id": role_id, "now": utcnow()})
        _log(db, user, "ROLE_UPDATED", "role", role_id, data, request)
        return _get_role(db, role_id)


@router.delete("/roles/{role_id}", response_model=MessageResponse)
async def delete_role(role_id: str, request: Request, user: dict = Depends(require_permissions("DELETE_ROLE"))):
    """System roles and roles still assigned to users cannot be deleted."""
    with get_db_session() as db:
        role = _get_role(db, role_id)
        if role["is_system"]:
            raise HTTPException(status_code=400, detail="System roles cannot be deleted")
        if role["user_count"]:
            raise HTTPException(status_code=400, detail="Role is assigned to users; remove it from them first")

        db.execute(text("DELETE FROM role_permissions WHERE role_id = :id"), {"id": role_id})
        db.execute(text("DELETE FROM roles WHERE id = :id"), {"id": role_id})
        _log(db, user, "ROLE_DELETED", "role", role_id, {"name": role["name"]}, request)

    return MessageResponse(message="Role deleted")


@router.get("/roles/{role_id}/permissions", response_model=List[PermissionResponse])
async def get_role_permissions(role_id: str, user: dict = Depends(view_access)):
    with get_db_session() as db:
        _get_role(db, role_id)
    return execute_raw_sql("""
        SELECT p.id, p.name, p.description, p.module_name, p.action_type
        FROM permissions p JOIN role_permissions rp ON rp.permission_id = p.id
        WHERE rp.role_id = :id
        ORDER BY p.module_name, p.name
    """, {"id": role_id})


@router.put("/roles/{role_id}/permissions", response_model=List[PermissionResponse])
async def set_role_permissions(
    role_id: str,
    body: RolePermissionsUpdate,
    request: Request,
    user: dict = Depends(require_permissions("ASSIGN_PERMISSIONS"))
):
    """Replace the role's permission set in one transaction."""
    permission_ids = list(dict.fromkeys(body.permission_ids))
    with get_db_session() as db:
        _get_role(db, role_id)
        for pid in permission_ids:
            if not db.execute(text("SELECT 1 FROM permissions WHERE id = :id"), {"id": pid}).fetchone():
                raise HTTPException(status_code=404, detail=f"Permission {pid} not found")

        db.execute(text("DELETE FROM role_permissions WHERE role_id = :id"), {"id": role_id})
        for pid in permission_ids:
            db.execute(
                text("INSERT INTO role_permissions (role_id, permission_id) VALUES (:rid, :pid)"),
                {"rid": role_id, "pid": pid}
            )
        _log(db, user, "ROLE_PERMISSIONS_UPDATED", "role", role_id, {"permission_ids": permission_ids}, request)

    return await get_role_permissions(role_id, user)


# ============================================================
# PERMISSIONS
# ============================================================

@router.get("/permissions", response_model=Dict[str, List[PermissionResponse]])
async def list_permissions(user: dict = Depends(view_access)):
    """Permissions grouped by module_name."""
    rows = execute_raw_sql(
        "SELECT id, name, description, module_name, action_type FROM permissions ORDER BY module_name, name"
    )
    grouped = {}
    for row in rows:
        grouped.setdefault(row["module_name"], []).append(row)
    return grouped


@router.post("/permissions", response_model=PermissionResponse, status_code=201)
async def create_permission(
    permission: PermissionCreate,
    request: Request,
    user: dict = Depends(require_permissions("CREATE_PERMISSION"))
):
    with get_db_session() as db:
        if db.execute(text("SELECT 1 FROM permissions WHERE name = :name"), {"name": permission.name}).fetchone():
            raise HTTPException(status_code=409, detail="A permission with this name already exists")

        permission_id = new_id()
        db.execute(
            text("""
                INSERT INTO permissions (id, name, description, module_name, action_type, created_at)
                VALUES (:id, :name, :description, :module_name, :action_type, :now)
            """),
            {**permission.model_dump(), "id": permission_id, "now": utcnow()}
        )
        _log(db, user, "PERMISSION_CREATED", "permission", permission_id, permission.model_dump(), request)
        return fetch_one(
            db, "SELECT id, name, description, module_name, action_type FROM permissions WHERE id = :id",
            {"id": permission_id}
        )


@router.delete("/permissions/{permission_id}", response_model=MessageResponse)
async def delete_permission(
    permission_id: str,
    request: Request,
    user: dict = Depends(require_permissions("DELETE_PERMISSION"))
):
    with get_db_session() as db:
        permission = fetch_one(db, "SELECT name FROM permissions WHERE id = :id", {"id": permission_id})
        if not permission:
            raise HTTPException(status_code=404, detail="Permission not found")

        db.execute(text("DELETE FROM role_permissions WHERE permission_id = :id"), {"id": permission_id})
        db.execute(text("DELETE FROM permissions WHERE id = :id"), {"id": permission_id})
        _log(db, user, "PERMISSION_DELETED", "permission", permission_id, permission, request)

    return MessageResponse(message="Permission deleted")


# ============================================================
# USER ROLES
# ============================================================

@router.get("/users/{user_id}/roles", response_model=List[RoleResponse])
async def get_user_roles(user_id: str, user: dict = Depends(view_access)):
    with get_db_session() as db:
        _ensure_user(db, user_id)
    return _user_roles(user_id)


@router.put("/users/{user_id}/roles", response_model=List[RoleResponse])
async def set_user_roles(
    user_id: str,
    body: UserRolesUpdate,
    request: Request,
    user: dict = Depends(require_permissions("ASSIGN_ROLES"))
):
    """Replace a user's roles. Admins cannot drop their own ADMIN role."""
    role_ids = list(dict.fromkeys(body.role_ids))
    with get_db_session() as db:
        _ensure_user(db, user_id)
        names = {}
        for rid in role_ids:
            row = db.execute(text("SELECT name FROM roles WHERE id = :id"), {"id": rid}).fetchone()
            if not row:
                raise HTTPException(status_code=404, detail=f"Role {rid} not found")
            names[rid] = row[0]

        if user_id == user["user_id"] and ADMIN_ROLE in user["roles"] and ADMIN_ROLE not in names.values():
            raise HTTPException(status_code=400, detail="You cannot remove your own ADMIN role")

        db.execute(text("DELETE FROM user_roles WHERE user_id = :uid"), {"uid": user_id})
        now = utcnow()
        for rid in role_ids:
            db.execute(
                text("INSERT INTO user_roles (user_id, role_id, assigned_at) VALUES (:uid, :rid, :now)"),
                {"uid": user_id, "rid": rid, "now": now}
            )
        _log(db, user, "USER_ROLES_UPDATED", "user", user_id, {"roles": sorted(names.values())}, request)

    return _user_roles(user_id)


@router.get("/users/{user_id}/permissions", response_model=List[PermissionResponse])
async def get_user_permissions(user_id: str, user: dict = Depends(view_access)):
    with get_db_session() as db:
        _ensure_user(db, user_id)
    return execute_raw_sql("""
        SELECT DISTINCT p.id, p.name, p.description, p.module_name, p.action_type
        FROM permissions p
        JOIN role_permissions rp ON rp.permission_id = p.id
        JOIN user_roles ur ON ur.role_id = rp.role_id
        WHERE ur.user_id = :uid
        ORDER BY p.module_name, p.name
    """, {"uid": user_id})
