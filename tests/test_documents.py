"""
Document upload API tests.
"""

import os

from app.core.config import get_settings

PDF = ("cv.pdf", b"%PDF-1.4 minimal test document", "application/pdf")


def _stored_files():
    folder = os.path.join(get_settings().upload_dir, "documents")
    return os.listdir(folder) if os.path.isdir(folder) else []


def _upload(client, headers, file=PDF, **data):
    return client.post("/api/documents/upload", files={"file": file}, data=data, headers=headers)


def test_upload_pdf(client, job_seeker):
    user_id, headers = job_seeker

    response = _upload(client, headers, document_type="resume", description="My CV")

    assert response.status_code == 201
    body = response.json()
    assert body["user_id"] == user_id
    assert body["document_type"] == "resume"
    assert body["original_name"] == "cv.pdf"
    assert body["mime_type"] == "application/pdf"
    assert body["file_size"] == len(PDF[1])
    assert body["file_url"].startswith("http://testserver/uploads/documents/")
    assert _stored_files() == [body["file_name"]]


def test_unsupported_type_is_rejected(client, job_seeker):
    response = _upload(client, job_seeker[1], file=("run.exe", b"MZ", "application/octet-stream"))

    assert response.status_code == 400
    assert _stored_files() == []


def test_extension_must_match_mime_type(client, job_seeker):
    response = _upload(client, job_seeker[1], file=("cv.png", b"%PDF", "application/pdf"))

    assert response.status_code == 400


def test_oversized_file_is_rejected(client, job_seeker, monkeypatch):
    monkeypatch.setattr(get_settings(), "max_upload_size_mb", 1)

    response = _upload(client, job_seeker[1], file=("big.pdf", b"0" * (1024 * 1024 + 1), "application/pdf"))

    assert response.status_code == 413


def test_empty_file_is_rejected(client, job_seeker):
    assert _upload(client, job_seeker[1], file=("empty.txt", b"", "text/plain")).status_code == 400


def test_private_document_visible_to_owner_only(client, job_seeker, make_user):
    _, headers = job_seeker
    _, other_headers = make_user("JOB_SEEKER")
    document = _upload(client, headers).json()
    url = f"/api/documents/{document['id']}"

    assert client.get(url, headers=headers).status_code == 200
    assert client.get(url, headers=other_headers).status_code == 403
    assert client.patch(url, json={"is_public": True}, headers=other_headers).status_code == 403

    response = client.patch(url, json={"is_public": True}, headers=headers)
    assert response.status_code == 200
    assert response.json()["is_public"] is True
    assert client.get(url, headers=other_headers).status_code == 200


def test_update_requires_fields(client, job_seeker):
    _, headers = job_seeker
    document = _upload(client, headers).json()

    response = client.patch(f"/api/documents/{document['id']}", json={}, headers=headers)

    assert response.status_code == 400


def test_primary_document_per_type(client, job_seeker):
    _, headers = job_seeker
    first = _upload(client, headers, document_type="resume", is_primary="true").json()
    second = _upload(client, headers, document_type="resume").json()
    assert first["is_primary"] is True

    response = client.patch(f"/api/documents/{second['id']}/primary", headers=headers)
    assert response.status_code == 200

    documents = client.get("/api/documents/my-documents", params={"document_type": "resume"}, headers=headers).json()
    assert [d["id"] for d in documents if d["is_primary"]] == [second["id"]]


def test_delete_removes_file(client, job_seeker, make_user):
    _, headers = job_seeker
    _, other_headers = make_user("JOB_SEEKER")
    document = _upload(client, headers).json()

    assert client.delete(f"/api/documents/{document['id']}", headers=other_headers).status_code == 403

    response = client.delete(f"/api/documents/{document['id']}", headers=headers)
    assert response.status_code == 200
    assert _stored_files() == []
    assert client.get(f"/api/documents/{document['id']}", headers=headers).status_code == 404


def test_upload_multiple(client, job_seeker):
    _, headers = job_seeker
    files = [("files", ("a.pdf", b"%PDF a", "application/pdf")), ("files", ("b.txt", b"notes", "text/plain"))]

    response = client.post("/api/documents/upload/multiple", files=files, headers=headers)

    assert response.status_code == 201
    assert sorted(d["original_name"] for d in response.json()) == ["a.pdf", "b.txt"]
    assert len(_stored_files()) == 2


def test_upload_multiple_is_all_or_nothing(client, job_seeker):
    files = [("files", ("a.pdf", b"%PDF a", "application/pdf")), ("files", ("run.exe", b"MZ", "application/octet-stream"))]

    response = client.post("/api/documents/upload/multiple", files=files, headers=job_seeker[1])

    assert response.status_code == 400
    assert _stored_files() == []


def test_too_many_files(client, job_seeker):
    count = get_settings().max_upload_files + 1
    files = [("files", (f"{i}.txt", b"x", "text/plain")) for i in range(count)]

    response = client.post("/api/documents/upload/multiple", files=files, headers=job_seeker[1])

    assert response.status_code == 400


def test_company_documents(client, employer, register_employer):
    _, headers, company = employer
    _, other_headers, _ = register_employer(email="other@example.com", company_name="Other Co")
    url = f"/api/documents/company/{company['id']}"

    response = client.post(f"{url}/upload", files={"file": PDF}, headers=headers)
    assert response.status_code == 201
    assert response.json()["company_id"] == company["id"]
    assert response.json()["document_type"] == "company_document"

    assert client.post(f"{url}/upload", files={"file": PDF}, headers=other_headers).status_code == 403
    assert client.post("/api/documents/company/missing/upload", files={"file": PDF}, headers=headers).status_code == 404

    assert len(client.get(url, headers=headers).json()) == 1
    assert client.get(url, headers=other_headers).status_code == 403


def test_application_with_document(client, job_seeker, employer, create_job):
    _, headers = job_seeker
    _, employer_headers, company = employer
    job = create_job(employer_headers, company["id"])
    document = _upload(client, headers, document_type="resume").json()

    response = client.post("/api/applications", json={"job_id": job["id"], "document_id": document["id"]},
                           headers=headers)

    assert response.status_code == 201
    assert response.json()["document_id"] == document["id"]
    assert response.json()["resume_url"] == document["file_url"]
