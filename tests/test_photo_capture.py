"""Tests for the photo capture queue."""

import pytest

from conftest import FakeCamera

from biashara_ledger.capture import PhotoCaptureQueue
from biashara_ledger.config import AppSettings
from biashara_ledger.errors import CapturePermissionError, DeviceUnavailableError, InvalidImageError
from biashara_ledger.models import AuditEventType, ImageSource


@pytest.fixture
def queue(app_settings, audit_logger):
    return PhotoCaptureQueue(app_settings, audit_logger)


class TestUploads:
    @pytest.mark.asyncio
    async def test_uploads_keep_order(self, queue):
        """Each file becomes its own input, in the order added."""
        await queue.add_upload(b"jpeg-1", "image/jpeg", "one.jpg")
        await queue.add_upload(b"png-2", "image/png", "two.png")
        await queue.add_upload(b"webp-3", "image/webp", "three.webp")

        assert len(queue) == 3
        assert [image.filename for image in queue.images] == ["one.jpg", "two.png", "three.webp"]
        assert all(image.source == ImageSource.UPLOAD for image in queue.images)

    @pytest.mark.asyncio
    async def test_non_image_rejected(self, queue):
        with pytest.raises(InvalidImageError):
            await queue.add_upload(b"%PDF-1.4", "application/pdf", "invoice.pdf")
        assert len(queue) == 0

    @pytest.mark.asyncio
    async def test_empty_file_rejected(self, queue):
        with pytest.raises(InvalidImageError):
            await queue.add_upload(b"", "image/jpeg", "empty.jpg")

    @pytest.mark.asyncio
    async def test_oversize_file_rejected(self):
        queue = PhotoCaptureQueue(AppSettings(max_upload_size_mb=1))
        with pytest.raises(InvalidImageError):
            await queue.add_upload(b"x" * (1024 * 1024 + 1), "image/jpeg", "huge.jpg")

    @pytest.mark.asyncio
    async def test_supported_formats_setting_limits_types(self):
        queue = PhotoCaptureQueue(AppSettings(supported_image_formats="jpg, PNG"))

        assert queue.allowed_types == {"image/jpeg", "image/png"}
        await queue.add_upload(b"png", "image/png", "two.png")
        with pytest.raises(InvalidImageError):
            await queue.add_upload(b"webp", "image/webp", "three.webp")
        assert len(queue) == 1

    @pytest.mark.asyncio
    async def test_mime_type_case_insensitive(self, queue):
        image = await queue.add_upload(b"jpeg", "IMAGE/JPEG", "caps.jpg")
        assert image.mime_type == "image/jpeg"

    @pytest.mark.asyncio
    async def test_accepted_image_is_audited(self, queue, audit_storage):
        await queue.add_upload(b"jpeg", "image/jpeg", "one.jpg")
        event = audit_storage.events[-1]
        assert event.event_type == AuditEventType.IMAGE_ACCEPTED
        assert event.details["filename"] == "one.jpg"


class TestCamera:
    @pytest.mark.asyncio
    async def test_capture_frame(self, queue):
        camera = FakeCamera()

        image = await queue.capture_frame(camera)

        assert image.source == ImageSource.CAMERA
        assert image.filename.startswith("camera-")
        assert image.filename.endswith(".jpg")
        assert camera.release_count == 1
        assert not camera.acquired
        assert len(queue) == 1

    @pytest.mark.asyncio
    async def test_png_frame_extension(self, queue):
        image = await queue.capture_frame(FakeCamera(frame=b"png", mime_type="image/png"))
        assert image.filename.endswith(".png")

    @pytest.mark.asyncio
    async def test_camera_denied(self, queue):
        camera = FakeCamera(acquire_error=CapturePermissionError("denied"))
        with pytest.raises(CapturePermissionError):
            await queue.capture_frame(camera)
        assert len(queue) == 0

    @pytest.mark.asyncio
    async def test_camera_released_when_capture_fails(self, queue):
        camera = FakeCamera(capture_error=DeviceUnavailableError("unplugged"))

        with pytest.raises(DeviceUnavailableError):
            await queue.capture_frame(camera)

        assert camera.release_count == 1
        assert not camera.acquired

    @pytest.mark.asyncio
    async def test_empty_frame_rejected_after_release(self, queue):
        camera = FakeCamera(frame=b"")
        with pytest.raises(InvalidImageError):
            await queue.capture_frame(camera)
        assert camera.release_count == 1


class TestQueueManagement:
    @pytest.mark.asyncio
    async def test_remove(self, queue):
        await queue.add_upload(b"1", "image/jpeg", "one.jpg")
        await queue.add_upload(b"2", "image/jpeg", "two.jpg")

        removed = queue.remove(0)

        assert removed.filename == "one.jpg"
        assert [image.filename for image in queue.images] == ["two.jpg"]

    def test_remove_out_of_range(self, queue):
        with pytest.raises(IndexError):
            queue.remove(0)

    @pytest.mark.asyncio
    async def test_drain_empties_queue(self, queue):
        await queue.add_upload(b"1", "image/jpeg", "one.jpg")
        images = queue.drain()
        assert len(images) == 1
        assert len(queue) == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
