"""
System Settings Service - global key/value settings stored in system_settings.

Reads merge stored rows over DEFAULT_SETTINGS, so a fresh database behaves
like an auto-approving installation named after the configured app name.
"""

from typing import Any, Dict, Optional

from sqlalchemy import text

from app.core.config import get_settings
from app.db.postgres import get_db_session, utcnow

APPROVAL_MODES = ("auto_approved", "pending")


def default_settings() -> Dict[str, Any]:
    return {
        "company_approval_mode": "auto_approved",
        "system_name": get_settings().app_name,
        "branding_logo_url": None,
    }


def _load(db) -> Dict[str, Any]:
    values = default_settings()
    rows = db.execute(text("SELECT setting_key, setting_value FROM system_settings")).fetchall()
    for key, value in rows:
        if key in values:
            values[key] = value
    if values["company_approval_mode"] not in APPROVAL_MODES:
        values["company_approval_mode"] = "auto_approved"
    return values


def get_system_settings(db=None) -> Dict[str, Any]:
    if db is not None:
        return _load(db)
    with get_db_session() as session:
        return _load(session)


def update_system_settings(updates: Dict[str, Any], updated_by: Optional[str] = None) -> Dict[str, Any]:
    """Upsert the given keys and return the merged settings."""
    known = default_settings()
    with get_db_session() as db:
        for key, value in updates.items():
            if key not in known:
                continue
            db.execute(
                text("""
                    INSERT INTO system_settings (setting_key, setting_value, updated_by, updated_at)
                    VALUES (:key, :value, :by, :now)
                    ON CONFLICT (setting_key) DO UPDATE SET
                        setting_value = EXCLUDED.setting_value,
                        updated_by = EXCLUDED.updated_by,
                        updated_at = EXCLUDED.updated_at
                """),
                {"key": key, "value": value, "by": updated_by, "now": utcnow()}
            )
        return _load(db)


def get_company_approval_mode(db=None) -> str:
    return get_system_settings(db)["company_approval_mode"]


def set_company_approval_mode(mode: str, updated_by: Optional[str] = None) -> str:
    if mode not in APPROVAL_MODES:
        raise ValueError(f"Invalid approval mode: {mode}")
    return update_system_settings({"company_approval_mode": mode}, updated_by)["company_approval_mode"]


def initial_company_status(db=None) -> str:
    """Status for a newly created company under the current approval mode."""
    return "active" if get_company_approval_mode(db) == "auto_approved" else "pending"
