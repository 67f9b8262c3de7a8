from supabase import Client
from sqlalchemy.engine import Engine
from fastapi import HTTPException
from typing import Optional
import logging
import os
import uuid

from app.config import settings
from app.modules.uploads.s3_storage import S3Storage
from app.modules.uploads.schemas import UploadResponse
from app.modules.users.service import UserService

logger = logging.getLogger(__name__)


def build_s3_storage() -> Optional[S3Storage]:
    """S3 when credentials and a bucket are configured, otherwise None (Supabase Storage is used)"""
    if not all([settings.aws_access_key_id, settings.aws_secret_access_key, settings.s3_bucket_name]):
        logger.info("S3 credentials not fully configured, will use Supabase Storage")
        return None
    try:
        return S3Storage()
    except Exception as e:
        logger.warning(f"S3 storage initialization failed ({str(e)}), will use Supabase Storage")
        return None


def read_upload(file) -> bytes:
    """At most upload_max_bytes + 1 bytes; a longer read fails validation as too large"""
    return file.file.read(settings.upload_max_bytes + 1)


class UploadService:
    def __init__(self, supabase: Client, db: Engine, s3_storage: Optional[S3Storage] = None):
        self.supabase = supabase
        self.db = db
        self.s3_storage = s3_storage

    def _validate(self, content: bytes, content_type: Optional[str], image_only: bool) -> None:
        if not content:
            raise HTTPException(status_code=400, detail="Empty file")
        if len(content) > settings.upload_max_bytes:
            raise HTTPException(status_code=400, detail="File too large")
        if image_only and not (content_type or "").startswith("image/"):
            raise HTTPException(status_code=400, detail="Only image files are accepted")

    def _store(self, content: bytes, key: str, content_type: str) -> str:
        if self.s3_storage:
            try:
                url = self.s3_storage.upload_file(content, key, content_type)
            except Exception as e:
                logger.error(f"S3 upload failed: {str(e)}")
                raise HTTPException(status_code=500, detail="Failed to upload file")
        else:
            try:
                bucket = self.supabase.storage.from_(settings.supabase_storage_bucket)
                bucket.upload(key, content, file_options={"content-type": content_type})
                url = bucket.get_public_url(key)
            except Exception as e:
                logger.error(f"Supabase Storage upload failed: {str(e)}")
                raise HTTPException(status_code=500, detail="Failed to upload file")
        logger.info(f"Uploaded {key} ({len(content)} bytes)")
        return url

    def upload(self, content: bytes, filename: Optional[str], content_type: Optional[str],
               user_id: int, folder: str = "public", image_only: bool = False) -> UploadResponse:
        self._validate(content, content_type, image_only)
        extension = os.path.splitext(filename or "")[1].lower()
        key = f"{folder}/{user_id}/{uuid.uuid4().hex}{extension}"
        return UploadResponse(url=self._store(content, key, content_type or "application/octet-stream"))

    def upload_avatar(self, content: bytes, filename: Optional[str], content_type: Optional[str],
                      user_id: int) -> UploadResponse:
        """Store an image and make it the user's avatar"""
        response = self.upload(content, filename, content_type, user_id, folder="avatar", image_only=True)
        UserService(self.db).set_avatar(user_id, response.url)
        return response
