"""
Cloudinary image CDN access.

Generated diagrams are imported server-side from their render URL; user
images are uploaded directly by the browser with a signature issued here.
"""

import logging
import time
from typing import Any, Optional

import cloudinary
import cloudinary.uploader
import cloudinary.utils

from repobook.config import settings
from repobook.exceptions import DiagramGenerationError

logger = logging.getLogger(__name__)


class CloudinaryUploader:
    """
    Upload images to Cloudinary.

    Args:
        cloud_name: Cloud name (defaults to settings)
        api_key: API key (defaults to settings)
        api_secret: API secret (defaults to settings)
    """

    def __init__(
        self,
        cloud_name: Optional[str] = None,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
    ):
        self.cloud_name = cloud_name or settings.cloudinary_cloud_name
        self.api_key = api_key or settings.cloudinary_api_key
        self.api_secret = api_secret or settings.cloudinary_api_secret

    def _options(self) -> dict[str, Any]:
        return {
            "cloud_name": self.cloud_name,
            "api_key": self.api_key,
            "api_secret": self.api_secret,
            "secure": True,
        }

    def upload(self, source: str, public_id: str, folder: Optional[str] = None) -> str:
        """
        Import an image (URL or local path) and return its HTTPS URL.

        Raises:
            DiagramGenerationError: If the upload fails
        """
        folder = folder or settings.cloudinary_diagram_folder
        try:
            result = cloudinary.uploader.upload(
                source, folder=folder, public_id=public_id, **self._options()
            )
        except Exception as e:
            logger.error(f"Cloudinary upload of {public_id} failed: {e}")
            raise DiagramGenerationError(f"Image upload failed: {e}") from e

        secure_url = result.get("secure_url")
        if not secure_url:
            raise DiagramGenerationError("Image upload returned no URL")
        logger.info(f"Uploaded {folder}/{public_id}")
        return secure_url

    def sign_upload(self, folder: Optional[str] = None) -> dict[str, Any]:
        """
        Build signed parameters for a browser-side upload.

        Returns:
            Timestamp, folder, signature, API key and cloud name
        """
        folder = folder or settings.cloudinary_upload_folder
        timestamp = int(time.time())
        signature = cloudinary.utils.api_sign_request(
            {"timestamp": timestamp, "folder": folder}, self.api_secret
        )
        return {
            "timestamp": timestamp,
            "folder": folder,
            "signature": signature,
            "api_key": self.api_key,
            "cloud_name": self.cloud_name,
        }
