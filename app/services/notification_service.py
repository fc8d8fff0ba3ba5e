"""
Notification Service - in-app notifications with optional email delivery.

create_notification() honours the recipient's preferences:
- in_app_notifications off -> no row is stored
- category switches (application_updates, job_alerts, message_notifications)
  suppress that category entirely
- email_notifications on + SMTP configured -> the matching template is emailed

Email failures are logged and never propagate to the caller.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import text

from app.core.config import get_settings
from app.db.postgres import get_db_session, new_id, utcnow
from app.services import email_service

logger = logging.getLogger(__name__)

PREFERENCE_FIELDS = (
    "email_notifications", "push_notifications", "in_app_notifications", "application_updates",
    "job_alerts", "message_notifications", "marketing_emails",
)

# Notification type -> preference switch that can silence it
CATEGORY_PREFERENCE = {
    "application_received": "application_updates",
    "application_submitted": "application_updates",
    "application_status_changed": "application_updates",
    "interview_scheduled": "application_updates",
    "job_posted": "job_alerts",
    "job_closed": "job_alerts",
    "message_received": "message_notifications",
}

TYPE_TEMPLATES = {
    "application_submitted": "application_success",
    "job_posted": "job_alert",
    "interview_scheduled": "interview_invitation",
}

STATUS_TEMPLATES = {
    "interview": "interview_invitation",
    "rejected": "application_rejected",
}


def template_for(notification_type: str, status: Optional[str] = None) -> Optional[str]:
    """Email template key for a notification, if one applies."""
    if notification_type == "application_status_changed":
        return STATUS_TEMPLATES.get(status or "")
    return TYPE_TEMPLATES.get(notification_type)


def get_preferences(db, user_id: str) -> Dict[str, bool]:
    """Load preferences, creating the default row on first access."""
    result = db.execute(
        text(f"SELECT {', '.join(PREFERENCE_FIELDS)} FROM notification_preferences WHERE user_id = :uid"),
        {"uid": user_id}
    )
    row = result.fetchone()
    if row is None:
        now = utcnow()
        db.execute(
            text("""
                INSERT INTO notification_preferences (user_id, created_at, updated_at)
                VALUES (:uid, :now, :now)
            """),
            {"uid": user_id, "now": now}
        )
        row = db.execute(
            text(f"SELECT {', '.join(PREFERENCE_FIELDS)} FROM notification_preferences WHERE user_id = :uid"),
            {"uid": user_id}
        ).fetchone()
    return {field: bool(value) for field, value in zip(PREFERENCE_FIELDS, row)}


def create_notification(
    user_id: str,
    notification_type: str,
    title: str,
    message: str,
    data: Optional[Dict[str, Any]] = None,
    action_url: Optional[str] = None,
    priority: str = "normal",
    email_template: Optional[str] = None,
    email_context: Optional[Dict[str, Any]] = None,
) -> Optional[str]:
    """Store a notification for a user. Returns its id, or None if preferences suppressed it."""
    notification_id = None
    with get_db_session() as db:
        user = db.execute(
            text("SELECT email, first_name, last_name FROM users WHERE id = :uid"),
            {"uid": user_id}
        ).fetchone()
        if user is None:
            logger.warning("Notification '%s' skipped: user %s not found", notification_type, user_id)
            return None

        prefs = get_preferences(db, user_id)
        category = CATEGORY_PREFERENCE.get(notification_type)
        if category and not prefs[category]:
            return None

        if prefs["in_app_notifications"]:
            notification_id = new_id()
            now = utcnow()
            db.execute(
                text("""
                    INSERT INTO notifications (id, user_id, type, title, message, data, action_url, priority,
                        is_read, created_at, updated_at)
                    VALUES (:id, :uid, :type, :title, :message, :data, :action_url, :priority, FALSE, :now, :now)
                """),
                {
                    "id": notification_id, "uid": user_id, "type": notification_type, "title": title,
                    "message": message, "data": json.dumps(data, default=str) if data else None,
                    "action_url": action_url, "priority": priority, "now": now,
                }
            )

    template_key = email_template or template_for(notification_type, (data or {}).get("status"))
    if template_key and prefs["email_notifications"] and get_settings().email_configured:
        context = {"user_full_name": f"{user[1]} {user[2]}".strip(), **(email_context or {})}
        try:
            email_service.send_template_email(template_key, user[0], context)
        except Exception:
            logger.exception("Email '%s' for notification %s failed", template_key, notification_id)

    return notification_id


def user_ids_with_permission(permission: str) -> List[str]:
    """Active users holding a permission directly or through the ADMIN role."""
    with get_db_session() as db:
        result = db.execute(
            text("""
                SELECT DISTINCT u.id FROM users u
                JOIN user_roles ur ON u.id = ur.user_id
                JOIN roles r ON r.id = ur.role_id
                LEFT JOIN role_permissions rp ON rp.role_id = r.id
                LEFT JOIN permissions p ON p.id = rp.permission_id
                WHERE u.is_active = TRUE AND u.is_blocked = FALSE
                  AND (p.name = :permission OR r.name = 'ADMIN')
            """),
            {"permission": permission}
        )
        return [row[0] for row in result.fetchall()]


def notify_users_with_permission(permission: str, exclude: Optional[List[str]] = None, **kwargs) -> int:
    sent = 0
    for uid in user_ids_with_permission(permission):
        if exclude and uid in exclude:
            continue
        if create_notification(uid, **kwargs):
            sent += 1
    return sent
