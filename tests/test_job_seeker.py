"""
Job seeker profile API tests.
"""

from datetime import date, timedelta

BASE = "/api/job-seeker"


def _address(client, headers, **fields):
    payload = {"address_line1": "1 Main St", "city": "Nairobi", "country": "Kenya", **fields}
    response = client.post(f"{BASE}/addresses", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_profile_upsert(client, job_seeker):
    _, headers = job_seeker

    assert client.get(f"{BASE}/profile", headers=headers).json()["professional_summary"] is None

    response = client.put(f"{BASE}/profile", json={"professional_summary": "Backend developer",
                                                    "years_experience": 4}, headers=headers)
    assert response.status_code == 200

    response = client.put(f"{BASE}/profile", json={"field_of_expertise": "Software"}, headers=headers)
    profile = response.json()
    assert profile["professional_summary"] == "Backend developer"
    assert profile["years_experience"] == 4
    assert profile["field_of_expertise"] == "Software"

    assert client.put(f"{BASE}/profile", json={}, headers=headers).status_code == 400


def test_personal_details(client, job_seeker):
    _, headers = job_seeker

    assert client.get(f"{BASE}/personal-details", headers=headers).status_code == 404

    response = client.put(f"{BASE}/personal-details", json={"gender": "female", "date_of_birth": "1990-05-01"},
                          headers=headers)
    assert response.status_code == 200

    details = client.get(f"{BASE}/personal-details", headers=headers).json()
    assert details["gender"] == "female"
    assert details["date_of_birth"] == "1990-05-01"


def test_first_address_becomes_primary(client, job_seeker):
    _, headers = job_seeker

    first = _address(client, headers)
    second = _address(client, headers, city="Mombasa")

    assert first["is_primary"] is True
    assert second["is_primary"] is False


def test_only_one_primary_address(client, job_seeker):
    _, headers = job_seeker
    first = _address(client, headers)
    second = _address(client, headers, city="Mombasa", is_primary=True)

    addresses = {a["id"]: a for a in client.get(f"{BASE}/addresses", headers=headers).json()}
    assert addresses[second["id"]]["is_primary"] is True
    assert addresses[first["id"]]["is_primary"] is False

    response = client.patch(f"{BASE}/addresses/{first['id']}/primary", headers=headers)
    assert response.status_code == 200

    primaries = [a["id"] for a in client.get(f"{BASE}/addresses", headers=headers).json() if a["is_primary"]]
    assert primaries == [first["id"]]


def test_other_users_address_is_not_found(client, job_seeker, make_user):
    _, headers = job_seeker
    _, other_headers = make_user("JOB_SEEKER")
    address = _address(client, headers)

    update = client.put(f"{BASE}/addresses/{address['id']}", json={"city": "Kisumu"}, headers=other_headers)
    delete = client.delete(f"{BASE}/addresses/{address['id']}", headers=other_headers)

    assert update.status_code == 404
    assert delete.status_code == 404
    assert client.get(f"{BASE}/addresses", headers=headers).json()[0]["city"] == "Nairobi"


def test_update_and_delete_address(client, job_seeker):
    _, headers = job_seeker
    address = _address(client, headers)

    response = client.put(f"{BASE}/addresses/{address['id']}", json={"city": "Kisumu"}, headers=headers)
    assert response.json()["city"] == "Kisumu"

    assert client.delete(f"{BASE}/addresses/{address['id']}", headers=headers).status_code == 200
    assert client.get(f"{BASE}/addresses", headers=headers).json() == []


def test_education_date_range(client, job_seeker):
    _, headers = job_seeker

    bad = client.post(f"{BASE}/education", json={
        "institution_name": "MIT", "qualification": "BSc", "start_date": "2020-01-01", "end_date": "2019-01-01",
    }, headers=headers)
    assert bad.status_code == 400

    created = client.post(f"{BASE}/education", json={
        "institution_name": "MIT", "qualification": "BSc", "start_date": "2016-09-01", "end_date": "2020-06-01",
    }, headers=headers)
    assert created.status_code == 201

    # Moving only the end date before the stored start date
    moved = client.put(f"{BASE}/education/{created.json()['id']}", json={"end_date": "2015-01-01"}, headers=headers)
    assert moved.status_code == 400

    updated = client.put(f"{BASE}/education/{created.json()['id']}", json={"grade": "First"}, headers=headers)
    assert updated.status_code == 200
    assert updated.json()["grade"] == "First"


def test_experience_crud(client, job_seeker):
    _, headers = job_seeker

    created = client.post(f"{BASE}/experience", json={
        "company_name": "Acme", "job_title": "Developer", "start_date": "2021-01-01", "is_current": True,
    }, headers=headers)
    assert created.status_code == 201
    experience_id = created.json()["id"]

    updated = client.put(f"{BASE}/experience/{experience_id}", json={"job_title": "Senior Developer"}, headers=headers)
    assert updated.json()["job_title"] == "Senior Developer"
    assert client.put(f"{BASE}/experience/{experience_id}", json={}, headers=headers).status_code == 400

    assert client.delete(f"{BASE}/experience/{experience_id}", headers=headers).status_code == 200
    assert client.delete(f"{BASE}/experience/{experience_id}", headers=headers).status_code == 404


def test_references(client, job_seeker):
    _, headers = job_seeker

    created = client.post(f"{BASE}/references", json={"full_name": "Jane Ref", "email": "ref@example.com"},
                          headers=headers)
    assert created.status_code == 201

    bad_email = client.post(f"{BASE}/references", json={"full_name": "X", "email": "not-an-email"}, headers=headers)
    assert bad_email.status_code == 400

    assert [r["full_name"] for r in client.get(f"{BASE}/references", headers=headers).json()] == ["Jane Ref"]


def _skill(client, headers, name, **fields):
    response = client.post(f"{BASE}/skills", json={"name": name, **fields}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def _certification(client, headers, name, issue_date, **fields):
    payload = {"name": name, "issuing_organization": "Cloud Institute", "issue_date": issue_date, **fields}
    response = client.post(f"{BASE}/certifications", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_skills(client, job_seeker):
    _, headers = job_seeker
    python = _skill(client, headers, "  Python ", proficiency_level="Expert", years_of_experience=6, is_primary=True)
    _skill(client, headers, "SQL", proficiency_level="Advanced", years_of_experience=4)
    _skill(client, headers, "Go", proficiency_level="Beginner")

    assert python["name"] == "Python"
    assert python["is_primary"] is True

    body = client.get(f"{BASE}/skills", headers=headers).json()
    assert [s["name"] for s in body["skills"]] == ["Python", "SQL", "Go"]
    assert body["total_count"] == 3
    assert body["primary_count"] == 1

    advanced = client.get(f"{BASE}/skills", params={"proficiency": "Advanced"}, headers=headers).json()
    assert [s["name"] for s in advanced["skills"]] == ["SQL"]
    assert advanced["total_count"] == 3
    searched = client.get(f"{BASE}/skills", params={"search": "PYT"}, headers=headers).json()
    assert [s["name"] for s in searched["skills"]] == ["Python"]


def test_duplicate_skill_ignores_case(client, job_seeker):
    _, headers = job_seeker
    _skill(client, headers, "Python")

    response = client.post(f"{BASE}/skills", json={"name": "python"}, headers=headers)

    assert response.status_code == 409
    assert response.json()["detail"] == "Skill already exists"
    assert client.post(f"{BASE}/skills", json={"name": "   "}, headers=headers).status_code == 400
    assert client.post(f"{BASE}/skills", json={"name": "Rust", "years_of_experience": 51},
                       headers=headers).status_code == 400


def test_only_one_primary_skill(client, job_seeker):
    _, headers = job_seeker
    first = _skill(client, headers, "Python", is_primary=True)
    second = _skill(client, headers, "SQL", is_primary=True)

    primary = client.get(f"{BASE}/skills", params={"is_primary": True}, headers=headers).json()
    assert [s["id"] for s in primary["skills"]] == [second["id"]]

    response = client.patch(f"{BASE}/skills/{first['id']}/primary", headers=headers)
    assert response.status_code == 200
    assert response.json()["is_primary"] is True

    body = client.get(f"{BASE}/skills", headers=headers).json()
    assert body["primary_count"] == 1
    assert body["skills"][0]["id"] == first["id"]


def test_other_users_skill_is_not_found(client, job_seeker, make_user):
    _, headers = job_seeker
    _, other_headers = make_user("JOB_SEEKER")
    skill = _skill(client, headers, "Python")

    assert client.patch(f"{BASE}/skills/{skill['id']}/primary", headers=other_headers).status_code == 404
    assert client.delete(f"{BASE}/skills/{skill['id']}", headers=other_headers).status_code == 404

    response = client.delete(f"{BASE}/skills/{skill['id']}", headers=headers)
    assert response.status_code == 200
    assert response.json()["message"] == "Skill deleted"
    assert client.get(f"{BASE}/skills", headers=headers).json()["total_count"] == 0


def test_certification_dates(client, job_seeker):
    _, headers = job_seeker

    bad = client.post(f"{BASE}/certifications", json={
        "name": "AWS SAA", "issuing_organization": "AWS", "issue_date": "2023-05-01", "expiration_date": "2023-01-01",
    }, headers=headers)
    assert bad.status_code == 400

    bad_url = client.post(f"{BASE}/certifications", json={
        "name": "AWS SAA", "issuing_organization": "AWS", "issue_date": "2023-05-01", "credential_url": "aws.com/x",
    }, headers=headers)
    assert bad_url.status_code == 400

    lifetime = _certification(client, headers, "CKA", "2022-01-01", expiration_date="2025-01-01",
                              does_not_expire=True)
    assert lifetime["does_not_expire"] is True
    assert lifetime["expiration_date"] is None


def test_certification_counts_and_sorting(client, job_seeker):
    _, headers = job_seeker
    today = date.today()
    _certification(client, headers, "Expired", "2019-01-01", expiration_date=str(today - timedelta(days=10)))
    _certification(client, headers, "Expiring", "2021-01-01", expiration_date=str(today + timedelta(days=10)))
    _certification(client, headers, "Valid", "2023-01-01", expiration_date=str(today + timedelta(days=365)))
    _certification(client, headers, "Forever", "2020-01-01", does_not_expire=True,
                   issuing_organization="Linux Foundation")

    body = client.get(f"{BASE}/certifications", headers=headers).json()
    assert [c["name"] for c in body["certifications"]] == ["Valid", "Expiring", "Forever", "Expired"]
    assert body["total_count"] == 4
    assert body["expired_count"] == 1
    assert body["expiring_soon_count"] == 1

    oldest = client.get(f"{BASE}/certifications", params={"sort": "oldest"}, headers=headers).json()
    assert oldest["certifications"][0]["name"] == "Expired"
    expiring = client.get(f"{BASE}/certifications", params={"sort": "expiring_soon"}, headers=headers).json()
    assert [c["name"] for c in expiring["certifications"]] == ["Expired", "Expiring", "Valid", "Forever"]

    by_issuer = client.get(f"{BASE}/certifications", params={"issuer": "linux"}, headers=headers).json()
    assert [c["name"] for c in by_issuer["certifications"]] == ["Forever"]


def test_update_and_delete_certification(client, job_seeker, make_user):
    _, headers = job_seeker
    _, other_headers = make_user("JOB_SEEKER")
    created = _certification(client, headers, "AWS SAA", "2023-05-01")
    replacement = {"name": "AWS SAP", "issuing_organization": "AWS", "issue_date": "2024-02-01",
                   "credential_id": "ABC-123", "credential_url": "https://aws.example.com/abc"}

    response = client.put(f"{BASE}/certifications/{created['id']}", json=replacement, headers=headers)
    assert response.status_code == 200
    assert response.json()["name"] == "AWS SAP"
    assert response.json()["credential_id"] == "ABC-123"
    assert client.put(f"{BASE}/certifications/{created['id']}", json=replacement,
                      headers=other_headers).status_code == 404

    deleted = client.delete(f"{BASE}/certifications/{created['id']}", headers=headers)
    assert deleted.json()["message"] == "Certification deleted"
    assert client.delete(f"{BASE}/certifications/{created['id']}", headers=headers).status_code == 404


def test_full_profile(client, job_seeker):
    user_id, headers = job_seeker
    _address(client, headers)
    client.post(f"{BASE}/references", json={"full_name": "Jane Ref"}, headers=headers)
    _skill(client, headers, "Python", is_primary=True)
    _certification(client, headers, "AWS SAA", "2023-05-01", does_not_expire=True)

    response = client.get(f"{BASE}/full-profile", headers=headers)

    assert response.status_code == 200
    body = response.json()
    assert body["user"]["id"] == user_id
    assert body["profile"]["user_id"] == user_id
    assert body["personal_details"] is None
    assert len(body["addresses"]) == 1
    assert len(body["references"]) == 1
    assert body["education"] == []
    assert [s["name"] for s in body["skills"]] == ["Python"]
    assert [c["name"] for c in body["certifications"]] == ["AWS SAA"]
    assert body["documents"] == []


def test_employer_is_forbidden(client, employer):
    _, headers, _ = employer

    assert client.get(f"{BASE}/profile", headers=headers).status_code == 403
    assert client.get(f"{BASE}/full-profile", headers=headers).status_code == 403
