"""
Document Routes

POST   /documents/upload - Upload one document (multipart)
POST   /documents/upload/multiple - Upload several documents at once
GET    /documents/my-documents - My documents, optionally filtered by type
POST   /documents/company/{company_id}/upload - Upload a company document
GET    /documents/company/{company_id} - List company documents
GET    /documents/{document_id} - Document metadata (public, owner or company member)
PATCH  /documents/{document_id} - Update description, visibility or type
PATCH  /documents/{document_id}/primary - Mark as primary for its type
DELETE /documents/{document_id} - Delete document and its file
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, File, Form, Query, UploadFile
from sqlalchemy import text

from app.core.auth import get_current_user, ensure_company_access, is_admin, is_company_member
from app.core.config import get_settings
from app.db.postgres import get_db_session, execute_raw_sql, fetch_one, new_id, utcnow
from app.schemas.schemas import DocumentResponse, DocumentUpdate, DocumentType, MessageResponse
from app.services.audit_service import log_audit
from app.utils.file_upload import StoredFile, save_upload, delete_stored_file

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["Documents"])


def _get_document(db, document_id: str) -> dict:
    document = fetch_one(db, "SELECT * FROM documents WHERE id = :id", {"id": document_id})
    if not document:
        raise HTTPException(status_code=404, detail="Document not found")
    return document


def _get_owned_document(db, document_id: str, user: dict) -> dict:
    document = _get_document(db, document_id)
    if document["user_id"] == user["user_id"] or is_admin(user):
        return document
    if document["company_id"] and is_company_member(db, user["user_id"], document["company_id"]):
        return document
    raise HTTPException(status_code=403, detail="You can only modify your own documents")


def _clear_primary(db, owner_column: str, owner_id: str, document_type: str, keep_id: str) -> None:
    db.execute(
        text(f"""
            UPDATE documents SET is_primary = FALSE
            WHERE {owner_column} = :owner AND document_type = :type AND id != :keep
        """),
        {"owner": owner_id, "type": document_type, "keep": keep_id}
    )


def _insert_document(
    db,
    stored: StoredFile,
    uploaded_by: str,
    document_type: str,
    description: Optional[str],
    is_primary: bool,
    user_id: Optional[str] = None,
    company_id: Optional[str] = None,
) -> dict:
    document_id = new_id()
    now = utcnow()
    db.execute(
        text("""
            INSERT INTO documents (id, user_id, company_id, document_type, file_name, original_name, file_path,
                file_url, file_size, mime_type, description, is_primary, is_public, uploaded_by,
                created_at, updated_at)
            VALUES (:id, :user_id, :company_id, :document_type, :file_name, :original_name, :file_path,
                :file_url, :file_size, :mime_type, :description, :is_primary, FALSE, :uploaded_by, :now, :now)
        """),
        {
            "id": document_id, "user_id": user_id, "company_id": company_id,
            "document_type": document_type, "file_name": stored.file_name,
            "original_name": stored.original_name, "file_path": stored.file_path,
            "file_url": stored.file_url, "file_size": stored.file_size, "mime_type": stored.mime_type,
            "description": description, "is_primary": is_primary, "uploaded_by": uploaded_by, "now": now,
        }
    )
    if is_primary:
        if company_id:
            _clear_primary(db, "company_id", company_id, document_type, document_id)
        else:
            _clear_primary(db, "user_id", user_id, document_type, document_id)

    log_audit(db, uploaded_by, "DOCUMENT_UPLOADED", "documents", "documents", document_id,
              {"document_type": document_type, "original_name": stored.original_name, "company_id": company_id})
    return fetch_one(db, "SELECT * FROM documents WHERE id = :id", {"id": document_id})


async def _save_all(files: List[UploadFile]) -> List[StoredFile]:
    """Store every file or none of them."""
    stored = []
    try:
        for upload in files:
            stored.append(await save_upload(upload))
    except HTTPException:
        for item in stored:
            delete_stored_file(item.file_path)
        raise
    return stored


# ============================================================
# UPLOAD
# ============================================================

@router.post("/upload", response_model=DocumentResponse, status_code=201)
async def upload_document(
    file: UploadFile = File(...),
    document_type: DocumentType = Form(DocumentType.other),
    description: Optional[str] = Form(None, max_length=1000),
    is_primary: bool = Form(False),
    user: dict = Depends(get_current_user)
):
    """
    Upload a document for the current user.

    Allowed: JPEG, PNG, GIF, PDF, DOC, DOCX, XLS, XLSX, TXT up to MAX_UPLOAD_SIZE_MB.
    """
    stored = await save_upload(file)
    try:
        with get_db_session() as db:
            return _insert_document(db, stored, user["user_id"], document_type.value, description, is_primary,
                                    user_id=user["user_id"])
    except Exception:
        delete_stored_file(stored.file_path)
        raise


@router.post("/upload/multiple", response_model=List[DocumentResponse], status_code=201)
async def upload_multiple_documents(
    files: List[UploadFile] = File(...),
    document_type: DocumentType = Form(DocumentType.other),
    user: dict = Depends(get_current_user)
):
    max_files = get_settings().max_upload_files
    if len(files) > max_files:
        raise HTTPException(status_code=400, detail=f"Too many files. Maximum: {max_files}")

    stored = await _save_all(files)
    try:
        with get_db_session() as db:
            return [
                _insert_document(db, item, user["user_id"], document_type.value, None, False,
                                 user_id=user["user_id"])
                for item in stored
            ]
    except Exception:
        for item in stored:
            delete_stored_file(item.file_path)
        raise


@router.get("/my-documents", response_model=List[DocumentResponse])
async def list_my_documents(
    document_type: Optional[DocumentType] = Query(None),
    user: dict = Depends(get_current_user)
):
    sql = "SELECT * FROM documents WHERE user_id = :uid"
    params = {"uid": user["user_id"]}
    if document_type:
        sql += " AND document_type = :type"
        params["type"] = document_type.value
    sql += " ORDER BY is_primary DESC, created_at DESC"
    return execute_raw_sql(sql, params)


# ============================================================
# COMPANY DOCUMENTS
# ============================================================

@router.post("/company/{company_id}/upload", response_model=DocumentResponse, status_code=201)
async def upload_company_document(
    company_id: str,
    file: UploadFile = File(...),
    document_type: DocumentType = Form(DocumentType.company_document),
    description: Optional[str] = Form(None, max_length=1000),
    is_primary: bool = Form(False),
    user: dict = Depends(get_current_user)
):
    with get_db_session() as db:
        if not db.execute(text("SELECT 1 FROM companies WHERE id = :id"), {"id": company_id}).fetchone():
            raise HTTPException(status_code=404, detail="Company not found")
        ensure_company_access(db, user, company_id)

    stored = await save_upload(file)
    try:
        with get_db_session() as db:
            return _insert_document(db, stored, user["user_id"], document_type.value, description, is_primary,
                                    company_id=company_id)
    except Exception:
        delete_stored_file(stored.file_path)
        raise


@router.get("/company/{company_id}", response_model=List[DocumentResponse])
async def list_company_documents(
    company_id: str,
    document_type: Optional[DocumentType] = Query(None),
    user: dict = Depends(get_current_user)
):
    with get_db_session() as db:
        ensure_company_access(db, user, company_id)

    sql = "SELECT * FROM documents WHERE company_id = :cid"
    params = {"cid": company_id}
    if document_type:
        sql += " AND document_type = :type"
        params["type"] = document_type.value
    sql += " ORDER BY created_at DESC"
    return execute_raw_sql(sql, params)


# ============================================================
# SINGLE DOCUMENT
# ============================================================

@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document(document_id: str, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        document = _get_document(db, document_id)
        allowed = (
            document["is_public"]
            or document["user_id"] == user["user_id"]
            or is_admin(user)
            or (document["company_id"] and is_company_member(db, user["user_id"], document["company_id"]))
        )
    if not allowed:
        raise HTTPException(status_code=403, detail="You do not have access to this document")
    return document


@router.patch("/{document_id}", response_model=DocumentResponse)
async def update_document(document_id: str, update: DocumentUpdate, user: dict = Depends(get_current_user)):
    data = update.model_dump(exclude_unset=True, mode="json")
    data = {k: v for k, v in data.items() if v is not None or k == "description"}
    if not data:
        raise HTTPException(status_code=400, detail="No fields to update")

    with get_db_session() as db:
        _get_owned_document(db, document_id, user)
        assignments = [f"{k} = :{k}" for k in data] + ["updated_at = :now"]
        db.execute(
            text(f"UPDATE documents SET {', '.join(assignments)} WHERE id = :id"),
            {**data, "id": document_id, "now": utcnow()}
        )
        log_audit(db, user["user_id"], "DOCUMENT_UPDATED", "documents", "documents", document_id, data)
        return _get_document(db, document_id)


@router.patch("/{document_id}/primary", response_model=DocumentResponse)
async def set_primary_document(document_id: str, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        document = _get_owned_document(db, document_id, user)
        db.execute(
            text("UPDATE documents SET is_primary = TRUE, updated_at = :now WHERE id = :id"),
            {"id": document_id, "now": utcnow()}
        )
        if document["company_id"]:
            _clear_primary(db, "company_id", document["company_id"], document["document_type"], document_id)
        else:
            _clear_primary(db, "user_id", document["user_id"], document["document_type"], document_id)
        return _get_document(db, document_id)


@router.delete("/{document_id}", response_model=MessageResponse)
async def delete_document(document_id: str, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        document = _get_owned_document(db, document_id, user)
        db.execute(text("DELETE FROM documents WHERE id = :id"), {"id": document_id})
        log_audit(db, user["user_id"], "DOCUMENT_DELETED", "documents", "documents", document_id,
                  {"original_name": document["original_name"]})

    delete_stored_file(document["file_path"])
    logger.info("Document %s deleted by %s", document_id, user["user_id"])
    return MessageResponse(message="Document deleted")
