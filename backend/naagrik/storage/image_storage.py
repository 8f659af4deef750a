import logging
import uuid
from pathlib import Path
from fastapi import UploadFile
from naagrik.core.config import settings
from naagrik.core.errors import ValidationError

logger = logging.getLogger(__name__)

# Subdirectory of UPLOAD_DIR holding issue photos
IMAGE_FOLDER = "issues"
# URL path under which UPLOAD_DIR is served
UPLOADS_URL_PATH = "/uploads"

# Accepted content types, the extension they are stored under and the
# leading bytes every such file starts with
IMAGE_TYPES = {
    "image/png": (".png", (b"\x89PNG\r\n\x1a\n",)),
    "image/jpeg": (".jpg", (b"\xff\xd8\xff",)),
    "image/gif": (".gif", (b"GIF87a", b"GIF89a")),
    "image/webp": (".webp", (b"RIFF",)),
}


class ImageStorage:
    """
    Local image host for issue photos.

    Saves an uploaded image under a generated name and hands back a durable
    URL. Issues only ever store that URL.
    """

    def __init__(self, upload_dir: str | None = None, max_size: int | None = None):
        self.upload_dir = Path(upload_dir or settings.UPLOAD_DIR)
        self.max_size = max_size if max_size is not None else settings.MAX_IMAGE_SIZE
        (self.upload_dir / IMAGE_FOLDER).mkdir(parents=True, exist_ok=True)

    async def save_image(self, file: UploadFile) -> tuple[str, str]:
        """Validate and store an image, returning (url, public_id)"""
        if not file.filename:
            raise ValidationError("No file uploaded")
        image_type = IMAGE_TYPES.get((file.content_type or "").lower())
        if image_type is None:
            raise ValidationError("Only image files are allowed")
        # The stored extension decides how /uploads serves the file, so it never comes from the client
        file_ext, signatures = image_type

        # Read one byte past the limit so oversize uploads are caught without buffering them whole
        content = await file.read(self.max_size + 1)
        if len(content) > self.max_size:
            raise ValidationError(
                f"File size must be less than {self.max_size // (1024 * 1024)}MB")
        if not content:
            raise ValidationError("No file uploaded")
        if not self._matches_signature(content, file.content_type.lower(), signatures):
            raise ValidationError("Only image files are allowed")

        public_id = f"{IMAGE_FOLDER}/{uuid.uuid4().hex}"
        file_path = self.get_image_path(public_id + file_ext)

        with open(file_path, "wb") as f:
            f.write(content)

        logger.info(f"Stored image {public_id} ({len(content)} bytes)")
        return self.build_url(public_id + file_ext), public_id

    @staticmethod
    def _matches_signature(content: bytes, content_type: str, signatures: tuple[bytes, ...]) -> bool:
        if not content.startswith(signatures):
            return False
        if content_type == "image/webp":
            return content[8:12] == b"WEBP"
        return True

    def get_image_path(self, relative_name: str) -> Path:
        """Get full path to a stored image"""
        return self.upload_dir / relative_name

    def build_url(self, relative_name: str) -> str:
        base = settings.PUBLIC_BASE_URL.rstrip("/")
        return f"{base}{UPLOADS_URL_PATH}/{relative_name}"


image_storage = ImageStorage()
