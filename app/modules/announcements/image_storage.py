import logging
import uuid
from pathlib import PurePosixPath
from supabase import Client
from app.config import settings
from typing import Optional

logger = logging.getLogger(__name__)


class ImageStorage:
    """Announcement images in a public Supabase Storage bucket, stored under "<user_id>/<uuid>.<ext>"."""

    def __init__(self, supabase: Client, bucket_name: Optional[str] = None):
        self.supabase = supabase
        self.bucket_name = bucket_name or settings.storage_bucket

    @staticmethod
    def build_path(user_id: str, filename: str) -> str:
        extension = PurePosixPath(filename or "").suffix.lower() or ".bin"
        return f"{user_id}/{uuid.uuid4().hex}{extension}"

    def upload_image(self, file_content: bytes, user_id: str, filename: str, content_type: str) -> dict:
        """Upload image and return its storage path and public URL"""
        path = self.build_path(user_id, filename)
        try:
            self.supabase.storage.from_(self.bucket_name).upload(
                path,
                file_content,
                {"content-type": content_type}
            )
        except Exception as e:
            logger.error(f"Failed to upload image to {self.bucket_name}/{path}: {str(e)}")
            raise
        url = self.supabase.storage.from_(self.bucket_name).get_public_url(path)
        return {"path": path, "url": url}
