"""
Job API tests: validation, visibility, search and delete-or-close.
"""

from conftest import auth


def test_create_job(client, employer, create_job):
    employer_id, headers, company = employer

    job = create_job(headers, company["id"], requirements=["Python", "SQL"], employment_type="Full-time")

    assert job["status"] == "active"
    assert job["employer_id"] == employer_id
    assert job["company_name"] == "Acme Ltd"
    assert job["requirements"] == ["Python", "SQL"]
    assert job["salary_currency"] == "USD"


def test_create_job_requires_title(client, employer):
    _, headers, company = employer

    missing = client.post("/api/jobs", json={"company_id": company["id"]}, headers=headers)
    blank = client.post("/api/jobs", json={"company_id": company["id"], "title": "   "}, headers=headers)

    assert missing.status_code == 400
    assert blank.status_code == 400
    assert blank.json()["detail"] == "Validation failed"


def test_create_job_rejects_inverted_salary_range(client, employer):
    _, headers, company = employer

    response = client.post("/api/jobs", json={
        "company_id": company["id"], "title": "Engineer", "salary_min": 5000, "salary_max": 100,
    }, headers=headers)

    assert response.status_code == 400


def test_job_seeker_cannot_create_job(client, job_seeker, employer):
    _, headers = job_seeker
    _, _, company = employer

    response = client.post("/api/jobs", json={"company_id": company["id"], "title": "Engineer"}, headers=headers)

    assert response.status_code == 403


def test_employer_cannot_post_for_other_company(client, employer, register_employer):
    _, _, company = employer
    _, other_headers, _ = register_employer(email="other@example.com", company_name="Other Co")

    response = client.post("/api/jobs", json={"company_id": company["id"], "title": "Engineer"}, headers=other_headers)

    assert response.status_code == 403


def test_public_listing_shows_active_jobs_only(client, employer, create_job):
    _, headers, company = employer
    create_job(headers, company["id"], title="Data Engineer", location="Berlin")
    create_job(headers, company["id"], title="Draft Role", status="draft")

    listing = client.get("/api/jobs")
    assert listing.status_code == 200
    body = listing.json()
    assert [j["title"] for j in body["jobs"]] == ["Data Engineer"]
    assert body["pagination"] == {"page": 1, "limit": 20, "total": 1, "pages": 1}

    mine = client.get("/api/jobs/mine", headers=headers).json()
    assert mine["pagination"]["total"] == 2


def test_listing_filters(client, employer, create_job):
    _, headers, company = employer
    create_job(headers, company["id"], title="Data Engineer", location="Berlin", remote=False,
               salary_min=3000, salary_max=4000)
    create_job(headers, company["id"], title="Frontend Developer", location="Remote", remote=True,
               salary_min=1000, salary_max=1500)

    def titles(**params):
        return [j["title"] for j in client.get("/api/jobs", params=params).json()["jobs"]]

    assert titles(q="data") == ["Data Engineer"]
    assert titles(location="berl") == ["Data Engineer"]
    assert titles(remote=True) == ["Frontend Developer"]
    assert titles(min_salary=2000) == ["Data Engineer"]
    assert sorted(titles(max_salary=5000)) == ["Data Engineer", "Frontend Developer"]


def test_pagination(client, employer, create_job):
    _, headers, company = employer
    for i in range(3):
        create_job(headers, company["id"], title=f"Role {i}")

    body = client.get("/api/jobs", params={"page": 2, "limit": 2}).json()

    assert len(body["jobs"]) == 1
    assert body["pagination"]["pages"] == 2


def test_job_details_count_views(client, employer, create_job):
    _, headers, company = employer
    job = create_job(headers, company["id"])

    first = client.get(f"/api/jobs/{job['id']}").json()
    second = client.get(f"/api/jobs/{job['id']}").json()

    assert second["views"] == first["views"] + 1
    assert first["application_counts"] is None

    owner_view = client.get(f"/api/jobs/{job['id']}", headers=headers).json()
    assert owner_view["application_counts"] == {"total": 0}


def test_inactive_job_hidden_from_public(client, employer, create_job, job_seeker):
    _, headers, company = employer
    job = create_job(headers, company["id"], status="draft")

    assert client.get(f"/api/jobs/{job['id']}").status_code == 403
    assert client.get(f"/api/jobs/{job['id']}", headers=job_seeker[1]).status_code == 403
    assert client.get(f"/api/jobs/{job['id']}", headers=headers).status_code == 200
    assert client.get("/api/jobs/missing").status_code == 404


def test_update_job(client, employer, create_job):
    _, headers, company = employer
    job = create_job(headers, company["id"])

    response = client.put(f"/api/jobs/{job['id']}", json={"title": "Senior Engineer", "salary_max": 3000}, headers=headers)
    assert response.status_code == 200
    assert response.json()["title"] == "Senior Engineer"
    assert response.json()["salary_max"] == 3000

    inverted = client.put(f"/api/jobs/{job['id']}", json={"salary_max": 10}, headers=headers)
    assert inverted.status_code == 400

    assert client.put(f"/api/jobs/{job['id']}", json={}, headers=headers).status_code == 400


def test_cannot_publish_job_of_inactive_company(client, employer, create_job, make_user):
    _, headers, company = employer
    _, manager_headers = make_user("HR_MANAGER")
    job = create_job(headers, company["id"])
    client.put(f"/api/jobs/{job['id']}", json={"status": "draft"}, headers=headers)
    client.patch(f"/api/companies/{company['id']}/deactivate", headers=manager_headers)

    response = client.put(f"/api/jobs/{job['id']}", json={"status": "active"}, headers=headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Company must be active to publish jobs"

    assert client.put(f"/api/jobs/{job['id']}", json={"title": "Renamed"}, headers=headers).status_code == 200

    client.patch(f"/api/companies/{company['id']}/activate", headers=manager_headers)
    response = client.put(f"/api/jobs/{job['id']}", json={"status": "active"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["status"] == "active"


def test_delete_job_without_applications(client, employer, create_job):
    _, headers, company = employer
    job = create_job(headers, company["id"])

    response = client.delete(f"/api/jobs/{job['id']}", headers=headers)

    assert response.status_code == 200
    assert response.json()["action"] == "deleted"
    assert client.get(f"/api/jobs/{job['id']}").status_code == 404


def test_delete_job_with_applications_closes_it(client, employer, create_job, job_seeker):
    _, headers, company = employer
    job = create_job(headers, company["id"])
    applied = client.post("/api/applications", json={"job_id": job["id"]}, headers=job_seeker[1])
    assert applied.status_code == 201

    response = client.delete(f"/api/jobs/{job['id']}", headers=headers)

    assert response.status_code == 200
    assert response.json()["action"] == "closed"
    assert client.get(f"/api/jobs/{job['id']}", headers=headers).json()["status"] == "closed"


def test_new_job_notifies_job_seekers(client, employer, create_job, job_seeker):
    _, headers, company = employer
    create_job(headers, company["id"], title="Data Engineer")

    body = client.get("/api/notifications", headers=job_seeker[1]).json()

    assert body["pagination"]["total"] == 1
    assert body["notifications"][0]["type"] == "job_posted"
    assert body["notifications"][0]["priority"] == "low"


def test_job_applications_listing(client, employer, create_job, job_seeker, register_employer):
    _, headers, company = employer
    job = create_job(headers, company["id"])
    client.post("/api/applications", json={"job_id": job["id"]}, headers=job_seeker[1])

    body = client.get(f"/api/jobs/{job['id']}/applications", headers=headers).json()
    assert body["pagination"]["total"] == 1
    assert body["applications"][0]["applicant_email"] == "seeker@example.com"

    _, other_headers, _ = register_employer(email="other@example.com", company_name="Other Co")
    assert client.get(f"/api/jobs/{job['id']}/applications", headers=other_headers).status_code == 403
    assert client.get(f"/api/jobs/{job['id']}/applications", headers=auth("bad")).status_code == 401
