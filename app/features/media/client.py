"""
Cloudinary access: upload signatures for browsers and signed server-side uploads.
"""
import asyncio
import io
import time
from typing import Any, Dict, Optional
import cloudinary.uploader
import cloudinary.utils
from cloudinary.exceptions import Error as CloudinaryError

from app.core import config
from app.core.errors import UpstreamFailure
from app.utils import get_logger


log = get_logger(__name__)


class CloudinaryClient:
    """Cloudinary account settings plus the two calls the media routes need."""

    def __init__(
        self,
        cloud_name: Optional[str],
        api_key: Optional[str],
        api_secret: Optional[str],
        folder: str = "uploads",
    ):
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.folder = folder

    @classmethod
    def from_config(cls) -> "CloudinaryClient":
        return cls(
            cloud_name=config.CLOUDINARY_CLOUD_NAME,
            api_key=config.CLOUDINARY_API_KEY,
            api_secret=config.CLOUDINARY_API_SECRET,
            folder=config.CLOUDINARY_UPLOAD_FOLDER,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.cloud_name and self.api_key and self.api_secret)

    def sign(self, params: Dict[str, Any]) -> str:
        return cloudinary.utils.api_sign_request(params, self.api_secret)

    def signature_payload(self, timestamp: Optional[int] = None) -> Dict[str, Any]:
        """Timestamp signature handed to browsers for direct uploads."""
        timestamp = timestamp if timestamp is not None else int(time.time())
        return {
            "timestamp": timestamp,
            "signature": self.sign({"timestamp": timestamp}),
            "cloudName": self.cloud_name,
            "apiKey": self.api_key,
        }

    async def upload(self, filename: str, content: bytes) -> Dict[str, Any]:
        """
        Upload a file into the configured folder and return Cloudinary's response.

        Raises:
            UpstreamFailure: Cloudinary rejected the upload or could not be reached
        """
        try:
            return await asyncio.to_thread(
                cloudinary.uploader.upload,
                io.BytesIO(content),
                filename=filename,
                folder=self.folder,
                resource_type="auto",
                cloud_name=self.cloud_name,
                api_key=self.api_key,
                api_secret=self.api_secret,
            )
        except CloudinaryError as e:
            log.error("Cloudinary rejected upload of %s: %s", filename, e)
            raise UpstreamFailure("Upload failed", str(e)) from e
