"""
Company API tests: approval mode, status transitions, membership checks.
"""


def _set_mode(client, headers, mode):
    response = client.put("/api/settings/company-approval-mode", json={"mode": mode}, headers=headers)
    assert response.status_code == 200
    return response


def test_auto_approved_company_is_active(client, employer):
    _, _, company = employer

    assert company["status"] == "active"
    assert company["name"] == "Acme Ltd"


def test_settings_are_public(client):
    response = client.get("/api/settings")

    assert response.status_code == 200
    assert response.json()["company_approval_mode"] == "auto_approved"


def test_pending_mode_requires_approval_before_posting(client, admin, register_employer):
    _, admin_headers = admin
    _set_mode(client, admin_headers, "pending")
    assert client.get("/api/settings/company-approval-mode", headers=admin_headers).json()["mode"] == "pending"

    _, headers, company = register_employer()
    assert company["status"] == "pending"

    response = client.post("/api/jobs", json={"company_id": company["id"], "title": "Engineer"}, headers=headers)
    assert response.status_code == 400

    approved = client.patch(f"/api/companies/{company['id']}/approve", headers=admin_headers)
    assert approved.status_code == 200
    assert approved.json()["status"] == "active"
    assert approved.json()["approved_by"] == admin[0]

    notifications = client.get("/api/notifications", params={"type": "company_approved"}, headers=headers).json()
    assert notifications["pagination"]["total"] == 1

    response = client.post("/api/jobs", json={"company_id": company["id"], "title": "Engineer"}, headers=headers)
    assert response.status_code == 201


def test_approving_active_company_fails(client, admin, employer):
    _, admin_headers = admin
    _, _, company = employer

    response = client.patch(f"/api/companies/{company['id']}/approve", headers=admin_headers)

    assert response.status_code == 400


def test_pending_company_cannot_be_activated(client, admin, register_employer):
    _, admin_headers = admin
    _set_mode(client, admin_headers, "pending")
    _, _, company = register_employer()

    response = client.patch(f"/api/companies/{company['id']}/activate", headers=admin_headers)

    assert response.status_code == 400


def test_employer_cannot_deactivate_company(client, employer):
    _, headers, company = employer

    response = client.patch(f"/api/companies/{company['id']}/deactivate", headers=headers)

    assert response.status_code == 403


def test_manager_can_deactivate_and_reactivate(client, make_user, employer):
    _, headers = make_user("HR_MANAGER")
    _, _, company = employer

    response = client.patch(f"/api/companies/{company['id']}/deactivate", headers=headers)
    assert response.status_code == 200
    assert response.json()["status"] == "deactivated"

    response = client.patch(f"/api/companies/{company['id']}/activate", headers=headers)
    assert response.status_code == 200
    assert response.json()["status"] == "active"


def test_non_member_cannot_view_or_edit_company(client, employer, register_employer):
    _, _, company = employer
    _, other_headers, _ = register_employer(email="other@example.com", company_name="Other Co")

    assert client.get(f"/api/companies/{company['id']}", headers=other_headers).status_code == 403
    response = client.put(f"/api/companies/{company['id']}", json={"city": "Lagos"}, headers=other_headers)
    assert response.status_code == 403


def test_company_manager_updates_any_company(client, employer, make_user):
    _, _, company = employer
    _, manager_headers = make_user("HR_MANAGER")

    response = client.put(f"/api/companies/{company['id']}", json={"city": "Accra"}, headers=manager_headers)

    assert response.status_code == 200
    assert response.json()["city"] == "Accra"


def test_member_updates_company(client, employer):
    _, headers, company = employer

    response = client.put(f"/api/companies/{company['id']}", json={"city": "Lagos"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["city"] == "Lagos"

    assert client.put(f"/api/companies/{company['id']}", json={}, headers=headers).status_code == 400


def test_employer_only_lists_own_companies(client, employer, register_employer):
    _, headers, company = employer
    register_employer(email="other@example.com", company_name="Other Co")

    companies = client.get("/api/companies", headers=headers).json()

    assert [c["id"] for c in companies] == [company["id"]]


def test_job_seeker_cannot_change_approval_mode(client, job_seeker):
    _, headers = job_seeker

    response = client.put("/api/settings/company-approval-mode", json={"mode": "pending"}, headers=headers)

    assert response.status_code == 403


def test_company_users(client, employer, make_user):
    employer_id, headers, company = employer
    recruiter_id, _ = make_user("RECRUITER")

    response = client.post(f"/api/companies/{company['id']}/users", json={"user_id": recruiter_id}, headers=headers)
    assert response.status_code == 201
    again = client.post(f"/api/companies/{company['id']}/users", json={"user_id": recruiter_id}, headers=headers)
    assert again.status_code == 409

    members = client.get(f"/api/companies/{company['id']}/users", headers=headers).json()
    assert {m["id"] for m in members} == {employer_id, recruiter_id}

    assert client.delete(f"/api/companies/{company['id']}/users/{employer_id}", headers=headers).status_code == 403
    assert client.delete(f"/api/companies/{company['id']}/users/{recruiter_id}", headers=headers).status_code == 200
