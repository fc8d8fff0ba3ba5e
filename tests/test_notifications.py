"""
Notification API and service tests.
"""

from app.services.notification_service import create_notification, template_for


def _notify(user_id, notification_type="system_alert", priority="normal", **kwargs):
    return create_notification(user_id, notification_type, title="Hello", message="World",
                               priority=priority, **kwargs)


def test_list_with_unread_counts(client, job_seeker):
    user_id, headers = job_seeker
    _notify(user_id, priority="high", data={"job_id": "j1"})
    _notify(user_id)
    _notify(user_id)

    body = client.get("/api/notifications", headers=headers).json()

    assert body["pagination"]["total"] == 3
    assert body["unread_count"] == 3
    assert body["unread_by_priority"] == {"low": 0, "normal": 2, "high": 1, "urgent": 0}
    assert {n["data"]["job_id"] for n in body["notifications"] if n["data"]} == {"j1"}

    high = client.get("/api/notifications", params={"priority": "high"}, headers=headers).json()
    assert high["pagination"]["total"] == 1


def test_mark_read(client, job_seeker):
    user_id, headers = job_seeker
    notification_id = _notify(user_id)

    response = client.put(f"/api/notifications/{notification_id}/read", headers=headers)

    assert response.status_code == 200
    assert response.json()["is_read"] is True
    assert response.json()["read_at"] is not None
    assert client.get("/api/notifications/unread-count", headers=headers).json()["unread_count"] == 0
    unread = client.get("/api/notifications", params={"is_read": False}, headers=headers).json()
    assert unread["notifications"] == []


def test_mark_all_read_with_filter(client, job_seeker):
    user_id, headers = job_seeker
    _notify(user_id, priority="high")
    _notify(user_id)
    _notify(user_id)

    response = client.put("/api/notifications/read-all", params={"priority": "normal"}, headers=headers)
    assert response.json()["message"] == "Marked 2 notification(s) as read"

    counts = client.get("/api/notifications/unread-count", headers=headers).json()
    assert counts["unread_count"] == 1
    assert counts["by_priority"]["high"] == 1


def test_cannot_touch_others_notifications(client, job_seeker, make_user):
    user_id, _ = job_seeker
    _, other_headers = make_user("JOB_SEEKER")
    notification_id = _notify(user_id)

    assert client.get(f"/api/notifications/{notification_id}", headers=other_headers).status_code == 403
    assert client.put(f"/api/notifications/{notification_id}/read", headers=other_headers).status_code == 403
    assert client.delete(f"/api/notifications/{notification_id}", headers=other_headers).status_code == 403
    assert client.get("/api/notifications/missing", headers=other_headers).status_code == 404


def test_delete_notifications(client, job_seeker):
    user_id, headers = job_seeker
    first = _notify(user_id)
    _notify(user_id)
    _notify(user_id)

    assert client.delete(f"/api/notifications/{first}", headers=headers).status_code == 200
    client.put("/api/notifications/read-all", headers=headers)
    _notify(user_id)

    response = client.delete("/api/notifications", params={"only_read": True}, headers=headers)
    assert response.json()["message"] == "Deleted 2 notification(s)"
    assert client.get("/api/notifications", headers=headers).json()["pagination"]["total"] == 1


def test_preferences(client, job_seeker):
    _, headers = job_seeker

    defaults = client.get("/api/notifications/preferences", headers=headers).json()
    assert defaults["in_app_notifications"] is True
    assert defaults["marketing_emails"] is False

    response = client.put("/api/notifications/preferences", json={"job_alerts": False}, headers=headers)
    assert response.status_code == 200
    assert response.json()["job_alerts"] is False
    assert response.json()["email_notifications"] is True

    assert client.put("/api/notifications/preferences", json={}, headers=headers).status_code == 400


def test_in_app_off_stores_nothing(client, job_seeker):
    user_id, headers = job_seeker
    client.put("/api/notifications/preferences", json={"in_app_notifications": False}, headers=headers)

    assert _notify(user_id) is None
    assert client.get("/api/notifications", headers=headers).json()["pagination"]["total"] == 0


def test_category_switch_silences_type(client, job_seeker):
    user_id, headers = job_seeker
    client.put("/api/notifications/preferences", json={"job_alerts": False}, headers=headers)

    assert _notify(user_id, "job_posted") is None
    assert _notify(user_id, "system_alert") is not None


def test_unknown_user_is_skipped():
    assert _notify("no-such-user") is None


def test_template_for():
    assert template_for("application_submitted") == "application_success"
    assert template_for("application_status_changed", "interview") == "interview_invitation"
    assert template_for("application_status_changed", "rejected") == "application_rejected"
    assert template_for("application_status_changed", "reviewed") is None
    assert template_for("system_alert") is None
