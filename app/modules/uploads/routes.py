from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.engine import Engine
from supabase import Client
from typing import Dict

from app.core.dependencies import get_current_user_id
from app.database.sql import get_db
from app.database.supabase_client import get_supabase
from app.modules.uploads.schemas import UploadResponse
from app.modules.uploads.service import UploadService, build_s3_storage, read_upload

router = APIRouter(prefix="/upload", tags=["upload"])


def get_upload_service(
    supabase: Client = Depends(get_supabase),
    db: Engine = Depends(get_db)
) -> UploadService:
    return UploadService(supabase, db, build_s3_storage())


@router.post("/public", response_model=UploadResponse)
def upload_public(
    file: UploadFile = File(...),
    current_user: Dict = Depends(get_current_user_id),
    service: UploadService = Depends(get_upload_service)
):
    """Upload any file and get its public URL"""
    content = read_upload(file)
    return service.upload(content, file.filename, file.content_type, current_user["id"])


@router.post("/avatar", response_model=UploadResponse)
def upload_avatar(
    file: UploadFile = File(...),
    current_user: Dict = Depends(get_current_user_id),
    service: UploadService = Depends(get_upload_service)
):
    """Upload an image and set it as the caller's avatar"""
    content = read_upload(file)
    return service.upload_avatar(content, file.filename, file.content_type, current_user["id"])
