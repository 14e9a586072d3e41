"""
Photo Capture Queue

Collects receipt images from the file picker and the live camera.
Each accepted image is its own RawImageInput; the queue keeps them in
the order they were added and hands them over for sequential
processing.
"""

from datetime import datetime
from typing import Optional

from pydantic import ValidationError

from biashara_ledger.audit.logger import AuditLogger
from biashara_ledger.capture.devices import CameraDevice
from biashara_ledger.config import AppSettings, get_settings
from biashara_ledger.errors import InvalidImageError
from biashara_ledger.models.capture import IMAGE_FORMAT_TYPES, ImageSource, RawImageInput

_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


class PhotoCaptureQueue:
    """Ordered queue of receipt images waiting to be processed."""

    def __init__(
        self,
        settings: Optional[AppSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._settings = settings or get_settings().app
        self._audit = audit_logger
        self._images: list[RawImageInput] = []

    def __len__(self) -> int:
        return len(self._images)

    @property
    def images(self) -> list[RawImageInput]:
        return list(self._images)

    @property
    def allowed_types(self) -> set[str]:
        """Image types enabled by `supported_image_formats`."""
        return {
            IMAGE_FORMAT_TYPES[fmt]
            for fmt in self._settings.supported_formats_list
            if fmt in IMAGE_FORMAT_TYPES
        }

    def _build(
        self,
        data: bytes,
        mime_type: str,
        filename: str,
        source: ImageSource,
    ) -> RawImageInput:
        if not data:
            raise InvalidImageError(f"{filename} is empty")

        allowed = self.allowed_types
        if mime_type.lower() not in allowed:
            raise InvalidImageError(
                f"{filename} is not a supported image ({mime_type}). "
                f"Allowed: {', '.join(sorted(allowed))}"
            )

        if len(data) > self._settings.max_upload_size_bytes:
            raise InvalidImageError(
                f"{filename} is larger than {self._settings.max_upload_size_mb} MB"
            )

        try:
            return RawImageInput(
                data=data,
                mime_type=mime_type,
                filename=filename,
                source=source,
            )
        except ValidationError as e:
            raise InvalidImageError(f"{filename} could not be accepted: {e}") from e

    async def _accepted(self, image: RawImageInput) -> None:
        self._images.append(image)
        if self._audit is not None:
            await self._audit.log_image_accepted(
                input_id=image.input_id,
                filename=image.filename,
                size_bytes=image.size_bytes,
                source=image.source.value,
            )

    async def add_upload(
        self,
        data: bytes,
        mime_type: str,
        filename: str,
    ) -> RawImageInput:
        """
        Queue a file chosen from the device.

        Raises:
            InvalidImageError: If the file is empty, too large or not an image
        """
        image = self._build(data, mime_type, filename, ImageSource.UPLOAD)
        await self._accepted(image)
        return image

    async def capture_frame(self, camera: CameraDevice) -> RawImageInput:
        """
        Take one photo with the camera and queue it.

        The camera is released whether or not the capture succeeds.

        Raises:
            CapturePermissionError: Camera access denied
            DeviceUnavailableError: No camera present
            InvalidImageError: The frame is not a usable image
        """
        try:
            await camera.acquire()
            data, mime_type = await camera.capture_frame()
        finally:
            await camera.release()

        extension = _EXTENSIONS.get(mime_type.lower(), "jpg")
        filename = f"camera-{datetime.utcnow():%Y%m%d-%H%M%S}.{extension}"
        image = self._build(data, mime_type, filename, ImageSource.CAMERA)
        await self._accepted(image)
        return image

    def remove(self, index: int) -> RawImageInput:
        """Drop a queued image by position."""
        if not 0 <= index < len(self._images):
            raise IndexError(f"No queued image at position {index}")
        return self._images.pop(index)

    def drain(self) -> list[RawImageInput]:
        """Hand over every queued image, in order, and empty the queue."""
        images, self._images = self._images, []
        return images
