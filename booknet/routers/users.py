from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from booknet.db.models import User
from booknet.repositories.sql_repository import SQLRepository
from booknet.services.file_storage import FileStorageService
from booknet.services.session_service import require_user

router = APIRouter(prefix="/users", tags=["users"])

MAX_UPLOAD_BYTES = 2 * 1024 * 1024
JPEG_MAGIC = b"\xFF\xD8\xFF"
PNG_MAGIC = b"\x89PNG\r\n\x1a\n"

_sql_repo = SQLRepository()


def get_file_storage() -> FileStorageService:
    return FileStorageService()


def _has_valid_signature(data: bytes, content_type: str) -> bool:
    if content_type in {"image/jpeg", "image/jpg", "image/pjpeg"}:
        return data.startswith(JPEG_MAGIC)
    if content_type == "image/png":
        return data.startswith(PNG_MAGIC)
    return False


def _profile(user: User) -> dict:
    return {
        "id": user.id,
        "firstname": user.firstname,
        "lastname": user.lastname,
        "fullName": user.full_name,
        "email": user.email,
        "dateOfBirth": user.date_of_birth.isoformat() if user.date_of_birth else None,
        "photo": user.photo,
        "roles": sorted(role.name for role in user.roles),
    }


@router.get("/me")
def me(user: User = Depends(require_user)):
    return _profile(user)


@router.post("/me/photo")
def upload_photo(
    photo: UploadFile = File(...),
    user: User = Depends(require_user),
    storage: FileStorageService = Depends(get_file_storage),
):
    data = photo.file.read(MAX_UPLOAD_BYTES + 1)
    if not data:
        raise HTTPException(400, "Empty file.")
    if len(data) > MAX_UPLOAD_BYTES:
        raise HTTPException(400, "File too large (max 2MB).")
    if not _has_valid_signature(data, (photo.content_type or "").lower()):
        raise HTTPException(400, "Only JPEG or PNG images are accepted.")
    path = storage.save_file(data, photo.filename, user.id)
    if not path:
        raise HTTPException(500, "Could not store the photo.")
    _sql_repo.update_user_photo(user.id, path)
    return {"photo": path}
