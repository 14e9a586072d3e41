"""
Receipt Image Storage using Cloudinary

DESIGN DECISION: We use Cloudinary because:
1. Reliable cloud infrastructure with public, cacheable URLs
2. Simple API
3. Free tier sufficient for a small business

The receipt is uploaded BEFORE the transaction is built, so the
canonical record can carry its URL and no compensating rollback
is ever needed if the upload fails.
"""

import asyncio
import posixpath
from typing import Optional

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from biashara_ledger.config import CloudinarySettings, get_settings
from biashara_ledger.errors import UploadError
from biashara_ledger.services.storage.interface import BlobStorageInterface


class CloudinaryReceiptStorage(BlobStorageInterface):
    """
    Blob storage collaborator backed by Cloudinary.

    Flow:
    1. Receive raw image bytes and a storage path
    2. Upload under the configured folder
    3. Return the secure URL or raise UploadError
    """

    def __init__(self, settings: Optional[CloudinarySettings] = None):
        self._settings = settings or get_settings().cloudinary
        self._configured = False

    def _configure(self):
        """Configure Cloudinary SDK."""
        if not self._configured:
            cloudinary.config(
                cloud_name=self._settings.cloud_name,
                api_key=self._settings.api_key,
                api_secret=self._settings.api_secret,
                secure=True,
            )
            self._configured = True

    @staticmethod
    def _public_id(path: str) -> str:
        """Cloudinary public IDs carry no file extension."""
        stem, _ = posixpath.splitext(path.strip("/"))
        return stem

    @retry(
        retry=retry_if_exception_type(cloudinary.exceptions.Error),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _upload(self, data: bytes, public_id: str) -> dict:
        return cloudinary.uploader.upload(
            data,
            public_id=public_id,
            folder=self._settings.folder,
            resource_type="image",
            overwrite=False,
        )

    async def upload(self, data: bytes, path: str, mime_type: str) -> str:
        """
        Upload a receipt image.

        Raises:
            UploadError: If Cloudinary rejects the upload or returns no URL
        """
        if not data:
            raise UploadError("Refusing to upload an empty image")

        self._configure()
        try:
            result = await asyncio.to_thread(self._upload, data, self._public_id(path))
        except cloudinary.exceptions.Error as e:
            raise UploadError(f"Cloudinary error: {e}") from e
        except Exception as e:
            raise UploadError(f"Failed to upload receipt: {e}") from e

        url = result.get("secure_url") or result.get("url")
        if not url:
            raise UploadError("No URL returned from Cloudinary")
        return url
