"""
File Upload Utility - validate and store uploaded documents on local disk.

Supported types:
- Images (.jpg, .jpeg, .png, .gif) -> uploads/images
- Documents (.pdf, .doc, .docx, .xls, .xlsx, .txt) -> uploads/documents

Max file size: MAX_UPLOAD_SIZE_MB (default 10MB)
"""

import logging
import os
import uuid
from dataclasses import dataclass

from fastapi import UploadFile, HTTPException

from app.core.config import get_settings

logger = logging.getLogger(__name__)

IMAGE_MIME_TYPES = {
    "image/jpeg": {".jpg", ".jpeg"},
    "image/png": {".png"},
    "image/gif": {".gif"},
}

DOCUMENT_MIME_TYPES = {
    "application/pdf": {".pdf"},
    "application/msword": {".doc"},
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": {".docx"},
    "application/vnd.ms-excel": {".xls"},
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": {".xlsx"},
    "text/plain": {".txt"},
}

ALLOWED_MIME_TYPES = {**IMAGE_MIME_TYPES, **DOCUMENT_MIME_TYPES}
ALLOWED_EXTENSIONS = set().union(*ALLOWED_MIME_TYPES.values())


@dataclass
class StoredFile:
    file_name: str
    original_name: str
    file_path: str
    file_url: str
    file_size: int
    mime_type: str


def get_file_extension(filename: str) -> str:
    """Get lowercase file extension."""
    if '.' not in filename:
        return ''
    return '.' + filename.rsplit('.', 1)[1].lower()


def folder_for(mime_type: str) -> str:
    return "images" if mime_type.startswith("image/") else "documents"


def validate_upload(filename: str, mime_type: str, size: int) -> None:
    """
    Raises:
        HTTPException 400 for unsupported types, 413 for oversized files
    """
    settings = get_settings()
    if not filename:
        raise HTTPException(status_code=400, detail="No filename provided")

    mime_type = (mime_type or "").split(";")[0].strip().lower()
    ext = get_file_extension(filename)
    if mime_type not in ALLOWED_MIME_TYPES or ext not in ALLOWED_MIME_TYPES[mime_type]:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type '{ext or mime_type}'. Allowed: JPEG, PNG, GIF, PDF, DOC, DOCX, XLS, XLSX, TXT"
        )

    if size > settings.max_upload_size_mb * 1024 * 1024:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size: {settings.max_upload_size_mb}MB"
        )

    if size == 0:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")


async def save_upload(file: UploadFile) -> StoredFile:
    """
    Validate and write an uploaded file under UPLOAD_DIR/<folder>/<uuid><ext>.

    Args:
        file: FastAPI UploadFile

    Returns:
        StoredFile describing what was written
    """
    settings = get_settings()
    content = await file.read()
    mime_type = (file.content_type or "").split(";")[0].strip().lower()
    validate_upload(file.filename or "", mime_type, len(content))

    folder = folder_for(mime_type)
    file_name = f"{uuid.uuid4()}{get_file_extension(file.filename)}"
    directory = os.path.join(settings.upload_dir, folder)
    os.makedirs(directory, exist_ok=True)
    file_path = os.path.join(directory, file_name)

    with open(file_path, "wb") as f:
        f.write(content)

    return StoredFile(
        file_name=file_name,
        original_name=os.path.basename(file.filename),
        file_path=file_path,
        file_url=f"{settings.api_url.rstrip('/')}/uploads/{folder}/{file_name}",
        file_size=len(content),
        mime_type=mime_type,
    )


def delete_stored_file(file_path: str) -> bool:
    """Remove a stored file; missing files are not an error."""
    try:
        os.remove(file_path)
        return True
    except FileNotFoundError:
        logger.warning("Stored file already missing: %s", file_path)
        return False
