"""
Image upload storage on the local filesystem.

Files are written to the upload directory under "<epoch-ms><ext>" and served
back statically at {base_url}/uploads/<filename>.
"""

import shutil
import threading
import time
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Optional
from urllib.parse import unquote, urlparse

from ..utils.exceptions import ValidationError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class MediaService:
    """Stores uploaded images and deletes them by URL"""

    def __init__(self, upload_dir, base_url: str = "http://localhost:8000"):
        self.upload_dir = Path(upload_dir)
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        self.base_url = base_url.rstrip("/")
        self._lock = threading.Lock()

    def url_for(self, filename: str) -> str:
        return f"{self.base_url}/uploads/{filename}"

    def _reserve_filename(self, extension: str) -> Path:
        """Pick an unused <epoch-ms><ext> name and create the file"""
        with self._lock:
            stamp = int(time.time() * 1000)
            while True:
                path = self.upload_dir / f"{stamp}{extension}"
                if not path.exists():
                    path.touch()
                    return path
                stamp += 1

    def upload(self, stream: Optional[BinaryIO], mime_type: Optional[str], original_name: Optional[str]) -> str:
        """Save an image and return the URL it is served from"""
        if stream is None or not original_name:
            raise ValidationError("No image uploaded")
        if not mime_type or not mime_type.startswith("image/"):
            raise ValidationError("Only images are allowed")

        extension = PurePosixPath(original_name).suffix
        file_path = self._reserve_filename(extension)
        try:
            with open(file_path, "wb") as buffer:
                shutil.copyfileobj(stream, buffer)
        except OSError:
            file_path.unlink(missing_ok=True)
            raise

        logger.info(
            "Image uploaded",
            filename=file_path.name,
            size=file_path.stat().st_size,
            mime_type=mime_type,
        )
        return self.url_for(file_path.name)

    def path_for_url(self, url: str) -> Optional[Path]:
        """Map an image URL to its file in the upload directory"""
        filename = PurePosixPath(unquote(urlparse(url).path)).name
        if not filename or filename in (".", ".."):
            return None
        return self.upload_dir / filename

    def delete_by_url(self, url: str) -> bool:
        """Delete the file behind url; False when it does not exist"""
        path = self.path_for_url(url)
        if path is None or not path.is_file():
            return False
        path.unlink()
        logger.info("Image deleted", filename=path.name)
        return True

    def discard(self, url: Optional[str]) -> None:
        """Best-effort delete; failures are logged, never raised"""
        if not url:
            return
        try:
            if not self.delete_by_url(url):
                logger.info("Image already absent", url=url)
        except OSError as e:
            logger.error("Failed to delete image file", url=url, error=str(e))
