"""
Audit Service - writes audit_logs (who changed which record) and admin_logs
(administrative actions with request metadata).

Both helpers take the caller's open session so the log row commits or rolls
back together with the change it describes.
"""

import json
import logging
from typing import Any, Dict, Optional

from fastapi import Request
from sqlalchemy import text

from app.db.postgres import new_id, utcnow

logger = logging.getLogger(__name__)


def _dump(data: Optional[Dict[str, Any]]) -> Optional[str]:
    if data is None:
        return None
    return json.dumps(data, default=str)


def log_audit(
    db,
    user_id: Optional[str],
    action_type: str,
    module_name: str,
    table_name: str,
    record_id: Optional[str],
    new_data: Optional[Dict[str, Any]] = None,
) -> None:
    db.execute(
        text("""
            INSERT INTO audit_logs (id, user_id, action_type, module_name, table_name, record_id, new_data, created_at)
            VALUES (:id, :user_id, :action_type, :module_name, :table_name, :record_id, :new_data, :now)
        """),
        {
            "id": new_id(), "user_id": user_id, "action_type": action_type,
            "module_name": module_name, "table_name": table_name, "record_id": record_id,
            "new_data": _dump(new_data), "now": utcnow(),
        }
    )


def log_admin_action(
    db,
    admin_id: str,
    action: str,
    target_type: str,
    target_id: Optional[str],
    details: Optional[Dict[str, Any]] = None,
    request: Optional[Request] = None,
) -> None:
    ip_address = None
    user_agent = None
    if request is not None:
        ip_address = request.client.host if request.client else None
        user_agent = (request.headers.get("user-agent") or "")[:500] or None

    db.execute(
        text("""
            INSERT INTO admin_logs (id, admin_id, action, target_type, target_id, details, ip_address, user_agent, created_at)
            VALUES (:id, :admin_id, :action, :target_type, :target_id, :details, :ip, :ua, :now)
        """),
        {
            "id": new_id(), "admin_id": admin_id, "action": action, "target_type": target_type,
            "target_id": target_id, "details": _dump(details), "ip": ip_address, "ua": user_agent,
            "now": utcnow(),
        }
    )
    logger.info("Admin action %s on %s/%s by %s", action, target_type, target_id, admin_id)


def parse_json_column(value) -> Optional[Dict[str, Any]]:
    """JSON text columns come back as strings; decode for responses."""
    if value is None or isinstance(value, dict):
        return value
    try:
        parsed = json.loads(value)
    except (TypeError, ValueError):
        return {"raw": value}
    return parsed if isinstance(parsed, dict) else {"value": parsed}
