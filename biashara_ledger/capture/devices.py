"""
Capture Device Contracts

Microphones, cameras and speech recognizers live on the client. The
pipeline only sees these interfaces, so a browser bridge, a desktop
microphone or a test fake can sit behind them.

Device errors MUST surface as CapturePermissionError or
DeviceUnavailableError so the caller can tell "blocked" from "missing".
"""

from abc import ABC, abstractmethod
from typing import Protocol, Sequence

from biashara_ledger.models.capture import SpeechSegment


class MediaDevice(ABC):
    """A microphone or camera that must be released after use."""

    @abstractmethod
    async def acquire(self) -> None:
        """
        Open the device.

        Raises:
            CapturePermissionError: The user denied access
            DeviceUnavailableError: No such device is present
        """
        pass

    @abstractmethod
    async def release(self) -> None:
        """Close the device. Safe to call when not acquired."""
        pass


class CameraDevice(MediaDevice):
    """A camera that can hand back one still frame."""

    @abstractmethod
    async def capture_frame(self) -> tuple[bytes, str]:
        """
        Grab the current frame.

        Returns:
            (image_bytes, mime_type)
        """
        pass


class RecognitionListener(Protocol):
    """Receives recognizer events. VoiceCaptureSession implements this."""

    def handle_result(self, segments: Sequence[SpeechSegment]) -> None: ...

    def handle_end(self) -> None: ...

    def handle_error(self, code: str) -> None: ...


class SpeechRecognizer(ABC):
    """
    A continuous speech recognizer with interim results.

    Recognizers end on their own after silence; the session decides
    whether to restart them.
    """

    @abstractmethod
    def start(self, language: str, listener: RecognitionListener) -> None:
        """Begin recognizing speech in a BCP-47 language (e.g. "sw-KE")."""
        pass

    @abstractmethod
    def stop(self) -> None:
        """Finish gracefully: flush pending results, then report end."""
        pass

    @abstractmethod
    def abort(self) -> None:
        """Stop immediately, dropping pending results."""
        pass
