"""
Notification Routes

GET    /notifications - My notifications (filters, sort, pagination, unread counts)
DELETE /notifications - Bulk delete (only_read, older_than_days)
GET    /notifications/unread-count - Unread totals by priority
GET    /notifications/preferences - Notification preferences
PUT    /notifications/preferences - Update notification preferences
PUT    /notifications/read-all - Mark all (optionally filtered) as read
GET    /notifications/{notification_id} - Single notification
PUT    /notifications/{notification_id}/read - Mark as read
DELETE /notifications/{notification_id} - Delete notification
"""

from datetime import date, datetime, time, timedelta
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy import text

from app.core.auth import get_current_user
from app.db.postgres import get_db_session, execute_raw_sql, fetch_one, utcnow
from app.schemas.schemas import (
    NotificationResponse, NotificationListResponse, UnreadCountResponse,
    NotificationPreferences, NotificationPreferencesUpdate,
    NotificationType, NotificationPriority, MessageResponse, Pagination
)
from app.services.audit_service import parse_json_column
from app.services.notification_service import PREFERENCE_FIELDS, get_preferences

router = APIRouter(prefix="/notifications", tags=["Notifications"])

SORT_ORDERS = {"newest": "created_at DESC", "oldest": "created_at ASC"}


def _to_notification(row: dict) -> dict:
    row["data"] = parse_json_column(row.get("data"))
    return row


def _unread_by_priority(user_id: str) -> dict:
    rows = execute_raw_sql(
        """
        SELECT priority, COUNT(*) AS total FROM notifications
        WHERE user_id = :uid AND is_read = FALSE
        GROUP BY priority
        """,
        {"uid": user_id}
    )
    counts = {p.value: 0 for p in NotificationPriority}
    for r in rows:
        counts[r["priority"]] = int(r["total"])
    return counts


def _get_owned(db, notification_id: str, user_id: str) -> dict:
    notification = fetch_one(db, "SELECT * FROM notifications WHERE id = :id", {"id": notification_id})
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    if notification["user_id"] != user_id:
        raise HTTPException(status_code=403, detail="You do not have access to this notification")
    return notification


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    is_read: Optional[bool] = Query(None),
    type: Optional[NotificationType] = Query(None),
    priority: Optional[NotificationPriority] = Query(None),
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
    sort: str = Query("newest", pattern="^(newest|oldest)$"),
    user: dict = Depends(get_current_user)
):
    """
    List notifications for the current user.

    Dates are inclusive; to_date covers the whole day.
    """
    where = ["user_id = :uid"]
    params = {"uid": user["user_id"]}
    if is_read is not None:
        where.append("is_read = :is_read")
        params["is_read"] = is_read
    if type:
        where.append("type = :type")
        params["type"] = type.value
    if priority:
        where.append("priority = :priority")
        params["priority"] = priority.value
    if from_date:
        where.append("created_at >= :from_dt")
        params["from_dt"] = datetime.combine(from_date, time.min)
    if to_date:
        where.append("created_at < :to_dt")
        params["to_dt"] = datetime.combine(to_date + timedelta(days=1), time.min)

    clause = " AND ".join(where)
    total = execute_raw_sql(f"SELECT COUNT(*) AS total FROM notifications WHERE {clause}", params)[0]["total"]
    rows = execute_raw_sql(
        f"SELECT * FROM notifications WHERE {clause} ORDER BY {SORT_ORDERS[sort]} LIMIT :limit OFFSET :offset",
        {**params, "limit": limit, "offset": (page - 1) * limit}
    )
    by_priority = _unread_by_priority(user["user_id"])

    return NotificationListResponse(
        notifications=[_to_notification(r) for r in rows],
        pagination=Pagination.build(page, limit, int(total)),
        unread_count=sum(by_priority.values()),
        unread_by_priority=by_priority,
    )


@router.delete("", response_model=MessageResponse)
async def delete_notifications(
    only_read: bool = Query(False),
    older_than_days: Optional[int] = Query(None, ge=1),
    user: dict = Depends(get_current_user)
):
    sql = "DELETE FROM notifications WHERE user_id = :uid"
    params = {"uid": user["user_id"]}
    if only_read:
        sql += " AND is_read = TRUE"
    if older_than_days:
        sql += " AND created_at < :cutoff"
        params["cutoff"] = utcnow() - timedelta(days=older_than_days)

    with get_db_session() as db:
        deleted = db.execute(text(sql), params).rowcount
    return MessageResponse(message=f"Deleted {deleted} notification(s)")


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(user: dict = Depends(get_current_user)):
    by_priority = _unread_by_priority(user["user_id"])
    return UnreadCountResponse(unread_count=sum(by_priority.values()), by_priority=by_priority)


@router.get("/preferences", response_model=NotificationPreferences)
async def read_preferences(user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        return get_preferences(db, user["user_id"])


@router.put("/preferences", response_model=NotificationPreferences)
async def update_preferences(update: NotificationPreferencesUpdate, user: dict = Depends(get_current_user)):
    data = {k: v for k, v in update.model_dump(exclude_unset=True).items() if v is not None}
    if not data:
        raise HTTPException(status_code=400, detail="No preferences to update")

    with get_db_session() as db:
        get_preferences(db, user["user_id"])
        assignments = [f"{k} = :{k}" for k in data if k in PREFERENCE_FIELDS] + ["updated_at = :now"]
        db.execute(
            text(f"UPDATE notification_preferences SET {', '.join(assignments)} WHERE user_id = :uid"),
            {**data, "uid": user["user_id"], "now": utcnow()}
        )
        return get_preferences(db, user["user_id"])


@router.put("/read-all", response_model=MessageResponse)
async def mark_all_read(
    type: Optional[NotificationType] = Query(None),
    priority: Optional[NotificationPriority] = Query(None),
    user: dict = Depends(get_current_user)
):
    sql = "UPDATE notifications SET is_read = TRUE, read_at = :now, updated_at = :now WHERE user_id = :uid AND is_read = FALSE"
    params = {"uid": user["user_id"], "now": utcnow()}
    if type:
        sql += " AND type = :type"
        params["type"] = type.value
    if priority:
        sql += " AND priority = :priority"
        params["priority"] = priority.value

    with get_db_session() as db:
        updated = db.execute(text(sql), params).rowcount
    return MessageResponse(message=f"Marked {updated} notification(s) as read")


@router.get("/{notification_id}", response_model=NotificationResponse)
async def get_notification(notification_id: str, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        return _to_notification(_get_owned(db, notification_id, user["user_id"]))


@router.put("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(notification_id: str, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        notification = _get_owned(db, notification_id, user["user_id"])
        if not notification["is_read"]:
            now = utcnow()
            db.execute(
                text("UPDATE notifications SET is_read = TRUE, read_at = :now, updated_at = :now WHERE id = :id"),
                {"now": now, "id": notification_id}
            )
        return _to_notification(_get_owned(db, notification_id, user["user_id"]))


@router.delete("/{notification_id}", response_model=MessageResponse)
async def delete_notification(notification_id: str, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        _get_owned(db, notification_id, user["user_id"])
        db.execute(text("DELETE FROM notifications WHERE id = :id"), {"id": notification_id})
    return MessageResponse(message="Notification deleted")
