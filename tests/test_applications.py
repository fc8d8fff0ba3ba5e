"""
Application API tests: applying, review workflow and withdrawal.
"""

import pytest


@pytest.fixture
def open_job(employer, create_job):
    _, headers, company = employer
    return create_job(headers, company["id"])


def _apply(client, headers, job_id, **fields):
    return client.post("/api/applications", json={"job_id": job_id, **fields}, headers=headers)


def test_apply_to_job(client, job_seeker, open_job):
    user_id, headers = job_seeker

    response = _apply(client, headers, open_job["id"], cover_letter="Hello")

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "pending"
    assert body["user_id"] == user_id
    assert body["job_title"] == "Backend Engineer"
    assert body["cover_letter"] == "Hello"


def test_apply_twice_conflicts(client, job_seeker, open_job):
    _, headers = job_seeker
    assert _apply(client, headers, open_job["id"]).status_code == 201

    response = _apply(client, headers, open_job["id"])

    assert response.status_code == 409


def test_apply_to_closed_job(client, job_seeker, employer, open_job):
    _, employer_headers, _ = employer
    client.put(f"/api/jobs/{open_job['id']}", json={"status": "closed"}, headers=employer_headers)

    response = _apply(client, job_seeker[1], open_job["id"])

    assert response.status_code == 400


def test_apply_to_job_of_deactivated_company(client, job_seeker, employer, open_job, make_user):
    _, _, company = employer
    _, manager_headers = make_user("HR_MANAGER")
    client.patch(f"/api/companies/{company['id']}/deactivate", headers=manager_headers)

    response = _apply(client, job_seeker[1], open_job["id"])

    assert response.status_code == 400
    assert response.json()["detail"] == "This company is not accepting applications"


def test_apply_after_deadline(client, job_seeker, employer, create_job):
    _, headers, company = employer
    job = create_job(headers, company["id"], application_deadline="2020-01-01")

    response = _apply(client, job_seeker[1], job["id"])

    assert response.status_code == 400
    assert response.json()["detail"] == "The application deadline has passed"


def test_apply_to_missing_job(client, job_seeker):
    assert _apply(client, job_seeker[1], "missing").status_code == 404


def test_employer_cannot_apply(client, employer, open_job):
    _, headers, _ = employer

    assert _apply(client, headers, open_job["id"]).status_code == 403


def test_apply_notifies_employer_and_applicant(client, job_seeker, employer, open_job):
    _, employer_headers, _ = employer
    _apply(client, job_seeker[1], open_job["id"])

    received = client.get("/api/notifications", params={"type": "application_received"},
                          headers=employer_headers).json()
    assert received["pagination"]["total"] == 1
    assert received["notifications"][0]["priority"] == "high"

    submitted = client.get("/api/notifications", params={"type": "application_submitted"},
                           headers=job_seeker[1]).json()
    assert submitted["pagination"]["total"] == 1


def test_list_my_and_employer_applications(client, job_seeker, employer, open_job):
    _, employer_headers, _ = employer
    _apply(client, job_seeker[1], open_job["id"])

    mine = client.get("/api/applications", headers=job_seeker[1]).json()
    assert mine["pagination"]["total"] == 1

    received = client.get("/api/applications/employer", headers=employer_headers).json()
    assert received["pagination"]["total"] == 1
    assert received["applications"][0]["job_id"] == open_job["id"]

    assert client.get("/api/applications/employer", headers=job_seeker[1]).status_code == 403


def test_application_visibility(client, job_seeker, employer, open_job, make_user, admin):
    application = _apply(client, job_seeker[1], open_job["id"]).json()
    _, stranger_headers = make_user("JOB_SEEKER")
    url = f"/api/applications/{application['id']}"

    assert client.get(url, headers=job_seeker[1]).status_code == 200
    assert client.get(url, headers=employer[1]).status_code == 200
    assert client.get(url, headers=admin[1]).status_code == 200
    assert client.get(url, headers=stranger_headers).status_code == 403


def test_update_status(client, job_seeker, employer, open_job):
    _, employer_headers, _ = employer
    application = _apply(client, job_seeker[1], open_job["id"]).json()

    response = client.put(f"/api/applications/{application['id']}/status",
                          json={"status": "interview", "notes": "Strong profile"}, headers=employer_headers)

    assert response.status_code == 200
    assert response.json()["status"] == "interview"
    assert response.json()["notes"] == "Strong profile"
    assert response.json()["reviewed_at"] is not None

    changed = client.get("/api/notifications", params={"type": "application_status_changed"},
                         headers=job_seeker[1]).json()
    assert changed["pagination"]["total"] == 1
    assert changed["notifications"][0]["data"]["status"] == "interview"


def test_employer_cannot_set_withdrawn(client, job_seeker, employer, open_job):
    application = _apply(client, job_seeker[1], open_job["id"]).json()

    response = client.put(f"/api/applications/{application['id']}/status",
                          json={"status": "withdrawn"}, headers=employer[1])

    assert response.status_code == 400


def test_other_company_cannot_update_status(client, job_seeker, open_job, register_employer):
    application = _apply(client, job_seeker[1], open_job["id"]).json()
    _, other_headers, _ = register_employer(email="other@example.com", company_name="Other Co")

    response = client.put(f"/api/applications/{application['id']}/status",
                          json={"status": "reviewed"}, headers=other_headers)

    assert response.status_code == 403


def test_withdraw_application(client, job_seeker, employer, open_job, make_user):
    application = _apply(client, job_seeker[1], open_job["id"]).json()
    url = f"/api/applications/{application['id']}"
    _, stranger_headers = make_user("JOB_SEEKER")

    assert client.delete(url, headers=stranger_headers).status_code == 403

    response = client.delete(url, headers=job_seeker[1])
    assert response.status_code == 200
    assert client.get(url, headers=job_seeker[1]).json()["status"] == "withdrawn"

    update = client.put(f"{url}/status", json={"status": "reviewed"}, headers=employer[1])
    assert update.status_code == 400
    assert update.json()["detail"] == "Cannot update a withdrawn application"


def test_cannot_withdraw_after_interview(client, job_seeker, employer, open_job):
    application = _apply(client, job_seeker[1], open_job["id"]).json()
    url = f"/api/applications/{application['id']}"
    client.put(f"{url}/status", json={"status": "interview"}, headers=employer[1])

    response = client.delete(url, headers=job_seeker[1])

    assert response.status_code == 400
