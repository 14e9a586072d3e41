"""
Capture Models

RawInput is what one capture attempt produces: either a transcript
or a single image. It is ephemeral, created per attempt and dropped
once extraction completes or fails.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Union
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


# Format names accepted in settings, and the image type each one means
IMAGE_FORMAT_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
}
ALLOWED_IMAGE_TYPES = set(IMAGE_FORMAT_TYPES.values())


class SessionState(str, Enum):
    """Voice capture session lifecycle."""
    IDLE = "idle"
    LISTENING = "listening"
    STOPPING = "stopping"
    STOPPED = "stopped"


class ImageSource(str, Enum):
    CAMERA = "camera"
    UPLOAD = "upload"


class RawTextInput(BaseModel):
    """A transcript or typed description."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["text"] = "text"
    input_id: UUID = Field(default_factory=uuid4)
    text: str
    locale: Optional[str] = None
    from_voice: bool = False
    captured_at: datetime = Field(default_factory=datetime.utcnow)


class RawImageInput(BaseModel):
    """A single receipt image, from the camera or a file picker."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["image"] = "image"
    input_id: UUID = Field(default_factory=uuid4)
    data: bytes = Field(..., repr=False)
    mime_type: str
    filename: str = "receipt.jpg"
    source: ImageSource = ImageSource.UPLOAD
    captured_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator('mime_type')
    @classmethod
    def validate_mime_type(cls, v: str) -> str:
        """Only allow image types."""
        if v.lower() not in ALLOWED_IMAGE_TYPES:
            raise ValueError(f"Unsupported image type: {v}. Allowed: {sorted(ALLOWED_IMAGE_TYPES)}")
        return v.lower()

    @field_validator('data')
    @classmethod
    def validate_not_empty(cls, v: bytes) -> bytes:
        if not v:
            raise ValueError("Image data is empty")
        return v

    @property
    def size_bytes(self) -> int:
        return len(self.data)


RawInput = Annotated[
    Union[RawTextInput, RawImageInput],
    Field(discriminator="kind"),
]


class SpeechSegment(BaseModel):
    """One recognizer result: interim results get replaced, final ones kept."""

    text: str
    is_final: bool = False
