"""
Capture Adapter

Voice sessions and photo queues that turn device input into RawInput.
"""

from biashara_ledger.capture.devices import (
    CameraDevice,
    MediaDevice,
    RecognitionListener,
    SpeechRecognizer,
)
from biashara_ledger.capture.photo import PhotoCaptureQueue
from biashara_ledger.capture.voice import (
    VoiceCaptureSession,
    recognizer_error,
    speech_language_tag,
)

__all__ = [
    "CameraDevice",
    "MediaDevice",
    "PhotoCaptureQueue",
    "RecognitionListener",
    "SpeechRecognizer",
    "VoiceCaptureSession",
    "recognizer_error",
    "speech_language_tag",
]
