"""
Admin API tests: roles, permissions, user management, statistics and logs.
"""

from conftest import PASSWORD


def _role_id(client, headers, name):
    roles = client.get("/api/admin/roles", headers=headers).json()
    return next(r["id"] for r in roles if r["name"] == name)


def _permission_ids(client, headers, *names):
    grouped = client.get("/api/admin/permissions", headers=headers).json()
    by_name = {p["name"]: p["id"] for perms in grouped.values() for p in perms}
    return [by_name[n] for n in names]


# ============================================================
# ROLES & PERMISSIONS
# ============================================================

def test_list_roles_with_counts(client, admin):
    _, headers = admin

    roles = {r["name"]: r for r in client.get("/api/admin/roles", headers=headers).json()}

    assert {"ADMIN", "HR_MANAGER", "RECRUITER", "APPROVER", "EMPLOYER", "JOB_SEEKER"} <= set(roles)
    assert roles["ADMIN"]["is_system"] is True
    assert roles["ADMIN"]["user_count"] == 1
    assert roles["JOB_SEEKER"]["permission_count"] == 2


def test_role_lifecycle(client, admin):
    _, headers = admin

    created = client.post("/api/admin/roles", json={"name": "AUDITOR", "description": "Reads reports"},
                          headers=headers)
    assert created.status_code == 201
    role_id = created.json()["id"]
    assert created.json()["is_system"] is False

    assert client.post("/api/admin/roles", json={"name": "AUDITOR"}, headers=headers).status_code == 409
    assert client.post("/api/admin/roles", json={"name": "lowercase"}, headers=headers).status_code == 400

    renamed = client.put(f"/api/admin/roles/{role_id}", json={"name": "REPORT_AUDITOR"}, headers=headers)
    assert renamed.json()["name"] == "REPORT_AUDITOR"
    assert client.put(f"/api/admin/roles/{role_id}", json={"name": "ADMIN"}, headers=headers).status_code == 409
    assert client.put(f"/api/admin/roles/{role_id}", json={}, headers=headers).status_code == 400

    assert client.delete(f"/api/admin/roles/{role_id}", headers=headers).status_code == 200
    assert client.delete(f"/api/admin/roles/{role_id}", headers=headers).status_code == 404


def test_system_roles_are_protected(client, admin):
    _, headers = admin
    role_id = _role_id(client, headers, "RECRUITER")

    assert client.put(f"/api/admin/roles/{role_id}", json={"name": "TALENT"}, headers=headers).status_code == 400
    assert client.delete(f"/api/admin/roles/{role_id}", headers=headers).status_code == 400

    described = client.put(f"/api/admin/roles/{role_id}", json={"description": "Hires people"}, headers=headers)
    assert described.status_code == 200
    assert described.json()["description"] == "Hires people"


def test_role_in_use_cannot_be_deleted(client, admin, job_seeker):
    _, headers = admin
    seeker_id, _ = job_seeker
    role_id = client.post("/api/admin/roles", json={"name": "MENTOR"}, headers=headers).json()["id"]
    seeker_role = _role_id(client, headers, "JOB_SEEKER")
    client.put(f"/api/admin/users/{seeker_id}/roles", json={"role_ids": [seeker_role, role_id]}, headers=headers)

    response = client.delete(f"/api/admin/roles/{role_id}", headers=headers)

    assert response.status_code == 400


def test_replace_role_permissions(client, admin, make_user):
    _, headers = admin
    role_id = client.post("/api/admin/roles", json={"name": "REPORTER"}, headers=headers).json()["id"]
    permission_ids = _permission_ids(client, headers, "VIEW_REPORTS", "VIEW_JOB")

    response = client.put(f"/api/admin/roles/{role_id}/permissions",
                          json={"permission_ids": permission_ids}, headers=headers)
    assert response.status_code == 200
    assert sorted(p["name"] for p in response.json()) == ["VIEW_JOB", "VIEW_REPORTS"]

    unknown = client.put(f"/api/admin/roles/{role_id}/permissions",
                         json={"permission_ids": ["missing"]}, headers=headers)
    assert unknown.status_code == 404
    # The failed replacement left the previous set untouched
    assert len(client.get(f"/api/admin/roles/{role_id}/permissions", headers=headers).json()) == 2


def test_permission_lifecycle(client, admin):
    _, headers = admin

    created = client.post("/api/admin/permissions", json={"name": "EXPORT_DATA", "module_name": "reports"},
                          headers=headers)
    assert created.status_code == 201
    assert created.json()["action_type"] == "MANAGE"
    assert client.post("/api/admin/permissions", json={"name": "EXPORT_DATA"}, headers=headers).status_code == 409

    grouped = client.get("/api/admin/permissions", headers=headers).json()
    assert "EXPORT_DATA" in [p["name"] for p in grouped["reports"]]

    assert client.delete(f"/api/admin/permissions/{created.json()['id']}", headers=headers).status_code == 200
    assert client.delete(f"/api/admin/permissions/{created.json()['id']}", headers=headers).status_code == 404


def test_assign_user_roles_grants_permissions(client, admin, job_seeker):
    _, headers = admin
    seeker_id, seeker_headers = job_seeker
    role_ids = [_role_id(client, headers, "JOB_SEEKER"), _role_id(client, headers, "RECRUITER")]

    response = client.put(f"/api/admin/users/{seeker_id}/roles", json={"role_ids": role_ids}, headers=headers)
    assert response.status_code == 200
    assert sorted(r["name"] for r in response.json()) == ["JOB_SEEKER", "RECRUITER"]

    permissions = client.get(f"/api/admin/users/{seeker_id}/permissions", headers=headers).json()
    assert "CREATE_JOB" in [p["name"] for p in permissions]

    # Permissions are resolved per request, so the existing token picks up the new role
    assert "CREATE_JOB" in client.get("/api/auth/me", headers=seeker_headers).json()["permissions"]

    unknown = client.put(f"/api/admin/users/{seeker_id}/roles", json={"role_ids": ["missing"]}, headers=headers)
    assert unknown.status_code == 404
    assert client.get("/api/admin/users/missing/roles", headers=headers).status_code == 404


def test_admin_cannot_drop_own_admin_role(client, admin):
    admin_id, headers = admin
    hr_role = _role_id(client, headers, "HR_MANAGER")

    response = client.put(f"/api/admin/users/{admin_id}/roles", json={"role_ids": [hr_role]}, headers=headers)

    assert response.status_code == 400
    assert [r["name"] for r in client.get(f"/api/admin/users/{admin_id}/roles", headers=headers).json()] == ["ADMIN"]


def test_admin_role_short_circuits_permission_checks(client, make_user):
    _, admin_headers = make_user("ADMIN")
    _, approver_headers = make_user("APPROVER")

    assert client.get("/api/admin/roles", headers=admin_headers).status_code == 200
    assert client.get("/api/admin/roles", headers=approver_headers).status_code == 403
    assert client.get("/api/admin/users", headers=approver_headers).status_code == 403


def test_admin_keeps_access_after_permissions_are_revoked(client, admin):
    _, headers = admin
    admin_role = _role_id(client, headers, "ADMIN")

    client.put(f"/api/admin/roles/{admin_role}/permissions", json={"permission_ids": []}, headers=headers)

    assert client.get("/api/admin/users", headers=headers).status_code == 200


# ============================================================
# USERS
# ============================================================

def test_list_users_with_filters(client, admin, job_seeker, employer):
    _, headers = admin

    body = client.get("/api/admin/users", headers=headers).json()
    assert body["pagination"]["total"] == 3

    seekers = client.get("/api/admin/users", params={"role": "job_seeker"}, headers=headers).json()
    assert [u["email"] for u in seekers["users"]] == ["seeker@example.com"]
    assert seekers["users"][0]["roles"] == ["JOB_SEEKER"]

    found = client.get("/api/admin/users", params={"search": "EMPLOYER@"}, headers=headers).json()
    assert [u["email"] for u in found["users"]] == ["employer@example.com"]


def test_block_and_unblock_user(client, admin, job_seeker):
    admin_id, headers = admin
    seeker_id, seeker_headers = job_seeker
    url = f"/api/admin/users/{seeker_id}/block"

    assert client.put(url, json={"is_blocked": True}, headers=headers).status_code == 400
    assert client.put(f"/api/admin/users/{admin_id}/block", json={"is_blocked": True, "reason": "x"},
                      headers=headers).status_code == 400
    assert client.put("/api/admin/users/missing/block", json={"is_blocked": True, "reason": "x"},
                      headers=headers).status_code == 404

    blocked = client.put(url, json={"is_blocked": True, "reason": "Spam"}, headers=headers)
    assert blocked.status_code == 200
    assert blocked.json()["is_blocked"] is True
    assert blocked.json()["blocked_reason"] == "Spam"

    assert client.get("/api/auth/me", headers=seeker_headers).status_code == 401
    login = client.post("/api/auth/login", json={"email": "seeker@example.com", "password": PASSWORD})
    assert login.status_code == 401

    unblocked = client.put(url, json={"is_blocked": False}, headers=headers)
    assert unblocked.json()["is_blocked"] is False
    assert unblocked.json()["blocked_reason"] is None
    assert client.get("/api/auth/me", headers=seeker_headers).status_code == 200


def test_non_admin_cannot_block(client, job_seeker, employer):
    seeker_id, _ = job_seeker
    _, headers, _ = employer

    response = client.put(f"/api/admin/users/{seeker_id}/block", json={"is_blocked": True, "reason": "x"},
                          headers=headers)

    assert response.status_code == 403


# ============================================================
# JOBS
# ============================================================

def test_admin_job_management(client, admin, employer, create_job, job_seeker):
    _, headers = admin
    _, employer_headers, company = employer
    draft = create_job(employer_headers, company["id"], title="Draft", status="draft")
    active = create_job(employer_headers, company["id"], title="Active")
    client.post("/api/applications", json={"job_id": active["id"]}, headers=job_seeker[1])

    everything = client.get("/api/admin/jobs", headers=headers).json()
    assert everything["pagination"]["total"] == 2
    drafts = client.get("/api/admin/jobs", params={"status": "draft"}, headers=headers).json()
    assert [j["id"] for j in drafts["jobs"]] == [draft["id"]]

    featured = client.post(f"/api/admin/jobs/{draft['id']}/feature", json={"is_featured": True}, headers=headers)
    assert featured.json()["is_featured"] is True

    # Hard delete, applications included
    assert client.delete(f"/api/admin/jobs/{active['id']}", headers=headers).status_code == 200
    assert client.get(f"/api/jobs/{active['id']}").status_code == 404
    assert client.get("/api/applications", headers=job_seeker[1]).json()["pagination"]["total"] == 0
    assert client.delete(f"/api/admin/jobs/{active['id']}", headers=headers).status_code == 404


# ============================================================
# STATISTICS & LOGS
# ============================================================

def test_statistics(client, admin, employer, create_job, job_seeker):
    _, headers = admin
    _, employer_headers, company = employer
    job = create_job(employer_headers, company["id"])
    client.post("/api/applications", json={"job_id": job["id"]}, headers=job_seeker[1])

    stats = client.get("/api/admin/statistics", headers=headers).json()

    assert stats["users"]["total"] == 3
    assert stats["users"]["active"] == 3
    assert stats["users"]["blocked"] == 0
    assert stats["users"]["by_role"]["EMPLOYER"] == 1
    assert stats["users"]["by_role"]["RECRUITER"] == 0
    assert stats["jobs"] == {"by_status": {"active": 1}, "total": 1}
    assert stats["applications"]["by_status"] == {"pending": 1}
    assert stats["companies"]["total"] == 1
    assert "new_in_range" not in stats

    ranged = client.get("/api/admin/statistics", params={"from_date": "2000-01-01"}, headers=headers).json()
    assert ranged["new_in_range"]["users"] == 3
    assert ranged["new_in_range"]["jobs"] == 1


def test_statistics_access(client, make_user, job_seeker):
    _, hr_headers = make_user("HR_MANAGER")

    assert client.get("/api/admin/statistics", headers=hr_headers).status_code == 200
    assert client.get("/api/admin/statistics", headers=job_seeker[1]).status_code == 403


def test_audit_and_activity_logs(client, admin, job_seeker):
    admin_id, headers = admin
    seeker_id, _ = job_seeker
    client.put(f"/api/admin/users/{seeker_id}/block", json={"is_blocked": True, "reason": "Spam"}, headers=headers)

    logs = client.get("/api/admin/audit-logs", params={"action": "USER_BLOCKED"}, headers=headers).json()
    assert logs["pagination"]["total"] == 1
    entry = logs["logs"][0]
    assert entry["admin_id"] == admin_id
    assert entry["admin_email"] == "admin@example.com"
    assert entry["target_id"] == seeker_id
    assert entry["details"]["reason"] == "Spam"

    activity = client.get("/api/admin/activity-logs", params={"user_id": admin_id}, headers=headers).json()
    assert "USER_BLOCKED" in [log["action_type"] for log in activity["logs"]]
