"""
Local file storage for uploads, served under CDN_BASE_URL
"""
import logging
import os
import uuid
from typing import Optional

from buildtrack.config import get_settings
from buildtrack.utils.helpers import file_category

settings = get_settings()
logger = logging.getLogger(__name__)

MB = 1024 * 1024

# Maximum file sizes by category
MAX_FILE_SIZES = {
    "image": settings.MAX_IMAGE_SIZE_MB * MB,
    "document": 25 * MB,
    "video": 100 * MB,
    "audio": 25 * MB,
    "other": settings.MAX_FILE_SIZE_MB * MB,
}


class FileTooLargeError(ValueError):
    pass


class StorageService:
    def __init__(self, root: Optional[str] = None, base_url: Optional[str] = None):
        self.root = root or settings.UPLOAD_DIR
        self.base_url = (base_url or settings.CDN_BASE_URL).rstrip("/")

    def check_size(self, size: int, mime_type: Optional[str]) -> str:
        """Return the file category, or raise if the size exceeds its limit"""
        category = file_category(mime_type)
        limit = MAX_FILE_SIZES[category]
        if size > limit:
            raise FileTooLargeError(f"File too large. Maximum size for {category} files: {limit // MB}MB")
        return category

    def save(self, project_id: int, original_name: str, content: bytes) -> tuple[str, str, str]:
        """Write content to disk; returns (stored name, path, public url)"""
        ext = os.path.splitext(original_name or "file")[1].lower()
        unique_name = f"{uuid.uuid4().hex}{ext}"
        relative = f"projects/{project_id}/{unique_name}"
        file_path = os.path.join(self.root, relative)
        os.makedirs(os.path.dirname(file_path), exist_ok=True)

        with open(file_path, "wb") as f:
            f.write(content)

        return unique_name, file_path, f"{self.base_url}/{relative}"

    def delete(self, file_path: str) -> None:
        real_path = os.path.realpath(file_path)
        if not real_path.startswith(os.path.realpath(self.root)):
            logger.warning(f"Refusing to delete file outside upload root: {file_path}")
            return
        if os.path.exists(real_path):
            os.remove(real_path)


storage_service = StorageService()
