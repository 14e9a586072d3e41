"""
Voice Capture Session

State machine around a continuous speech recognizer:

    IDLE --start()--> LISTENING --stop()--> STOPPING --end--> STOPPED
                          |  ^                                  ^
                          |  | recognizer ended: restart        |
                          |  +------ (up to the restart cap) ---+
                          +--- error / cap reached / close() ---+

Recognizers stop by themselves after a pause. While LISTENING that is
not the end of the recording, so the session restarts the recognizer
transparently, but only up to `max_recognizer_restarts` times. Past the
cap the session ends as if the speaker had stopped.

The microphone is released on every exit path: stop(), close(), leaving
the async context manager, or the session ending by itself on an error
or at the restart cap. The last case is released on the event loop as
soon as the recognizer reports it, and wait_ended() returns only once
the microphone is free.
"""

import asyncio
from typing import Optional, Sequence
from uuid import UUID, uuid4

import structlog

from biashara_ledger.agents.prompts import resolve_instruction_locale
from biashara_ledger.audit.logger import AuditLogger
from biashara_ledger.capture.devices import MediaDevice, SpeechRecognizer
from biashara_ledger.config import AppSettings, get_settings
from biashara_ledger.errors import (
    CaptureError,
    CapturePermissionError,
    DeviceUnavailableError,
)
from biashara_ledger.models.capture import RawTextInput, SessionState, SpeechSegment

logger = structlog.get_logger(__name__)

SPEECH_LANGUAGE_TAGS = {
    "sw": "sw-KE",
    "en": "en-US",
}

# Recognizer error codes
IGNORED_ERRORS = {"aborted"}
PERMISSION_ERRORS = {"not-allowed", "service-not-allowed"}
DEVICE_ERRORS = {"audio-capture"}


def speech_language_tag(locale: str) -> str:
    """Recognizer language for an app locale."""
    return SPEECH_LANGUAGE_TAGS[resolve_instruction_locale(locale)]


def recognizer_error(code: str) -> CaptureError:
    """Map a recognizer error code onto the capture error family."""
    if code in PERMISSION_ERRORS:
        return CapturePermissionError(f"Microphone access denied ({code})")
    if code in DEVICE_ERRORS:
        return DeviceUnavailableError(f"No microphone available ({code})")
    return CaptureError(f"Speech recognition failed ({code})")


class VoiceCaptureSession:
    """
    One voice recording, from start() to the transcript.

    The recognizer reports back through handle_result, handle_end and
    handle_error. Those are plain methods because recognizers call them
    from their own callbacks; restarts they record are written to the
    audit log on the next await in stop(), close() or wait_ended().
    """

    def __init__(
        self,
        recognizer: SpeechRecognizer,
        microphone: MediaDevice,
        locale: str = "en",
        settings: Optional[AppSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
        correlation_id: Optional[UUID] = None,
    ):
        self._recognizer = recognizer
        self._microphone = microphone
        self._settings = settings or get_settings().app
        self._audit = audit_logger
        self.locale = locale
        self.language_tag = speech_language_tag(locale)
        self.session_id = uuid4()
        self.correlation_id = correlation_id or uuid4()

        self.state = SessionState.IDLE
        self.restart_count = 0
        self.reached_restart_cap = False
        self._final_parts: list[str] = []
        self._interim = ""
        self._error: Optional[CaptureError] = None
        self._device_held = False
        self._release_task: Optional[asyncio.Task] = None
        self._ended = asyncio.Event()
        self._pending_restarts: list[int] = []

    # -------------------------------------------------------------------------
    # Transcript
    # -------------------------------------------------------------------------

    @property
    def transcript(self) -> str:
        parts = list(self._final_parts)
        if self._interim:
            parts.append(self._interim)
        return " ".join(parts).strip()

    @property
    def error(self) -> Optional[CaptureError]:
        return self._error

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self) -> None:
        """
        Acquire the microphone and start listening.

        Raises:
            CapturePermissionError: Microphone access denied
            DeviceUnavailableError: No microphone present
            CaptureError: Session already started or recognizer failed
        """
        if self.state != SessionState.IDLE:
            raise CaptureError(f"Voice session cannot start from {self.state.value}")

        try:
            await self._microphone.acquire()
        except CaptureError as e:
            self.state = SessionState.STOPPED
            self._ended.set()
            await self._log_failure(e)
            raise
        self._device_held = True

        try:
            self._recognizer.start(self.language_tag, self)
        except CaptureError as e:
            self.state = SessionState.STOPPED
            self._ended.set()
            await self._release()
            await self._log_failure(e)
            raise

        self.state = SessionState.LISTENING
        if self._audit is not None:
            await self._audit.log_voice_session_started(
                session_id=self.session_id,
                locale=self.locale,
                correlation_id=self.correlation_id,
            )

    async def stop(self) -> RawTextInput:
        """
        Stop listening and hand back the transcript.

        Waits for the recognizer to flush pending results, bounded by
        `recognizer_stop_timeout_seconds`; on timeout the recognizer is
        aborted and whatever was heard so far is returned.

        Raises:
            CaptureError: If the recognizer failed during the session
        """
        if self.state == SessionState.IDLE:
            raise CaptureError("Voice session was never started")

        try:
            if self.state == SessionState.LISTENING:
                self.state = SessionState.STOPPING
                self._recognizer.stop()
                try:
                    await asyncio.wait_for(
                        self._ended.wait(),
                        timeout=self._settings.recognizer_stop_timeout_seconds,
                    )
                except asyncio.TimeoutError:
                    logger.warning(
                        "recognizer_stop_timeout",
                        session_id=str(self.session_id),
                        timeout=self._settings.recognizer_stop_timeout_seconds,
                    )
                    self._recognizer.abort()
                    self._finish()
        finally:
            await self._release()
            await self._flush()

        if self._error is not None:
            await self._log_failure(self._error)
            raise self._error

        transcript = self.transcript
        if self._audit is not None:
            await self._audit.log_voice_session_stopped(
                session_id=self.session_id,
                transcript_length=len(transcript),
                restart_count=self.restart_count,
                correlation_id=self.correlation_id,
            )

        return RawTextInput(
            text=transcript,
            locale=self.locale,
            from_voice=True,
        )

    async def close(self) -> None:
        """Abandon the session. Always releases the microphone."""
        try:
            if self.state in (SessionState.LISTENING, SessionState.STOPPING):
                self._recognizer.abort()
                self._finish()
        finally:
            await self._release()
            await self._flush()

    async def wait_ended(self) -> None:
        """
        Wait until the session ends on its own (error or restart cap).

        The microphone is released before this returns. Call stop() after
        it for the transcript or the error.
        """
        await self._ended.wait()
        await self._release()
        await self._flush()

    async def __aenter__(self) -> "VoiceCaptureSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Recognizer callbacks
    # -------------------------------------------------------------------------

    def handle_result(self, segments: Sequence[SpeechSegment]) -> None:
        """Final segments are kept; the interim text is replaced each time."""
        if self.state not in (SessionState.LISTENING, SessionState.STOPPING):
            return

        interim_parts = []
        for segment in segments:
            text = segment.text.strip()
            if not text:
                continue
            if segment.is_final:
                self._final_parts.append(text)
            else:
                interim_parts.append(text)
        self._interim = " ".join(interim_parts)

    def handle_end(self) -> None:
        if self.state == SessionState.STOPPING:
            self._finish()
            return

        if self.state != SessionState.LISTENING:
            return

        if self.restart_count >= self._settings.max_recognizer_restarts:
            logger.info(
                "recognizer_restart_cap_reached",
                session_id=str(self.session_id),
                restarts=self.restart_count,
            )
            self.reached_restart_cap = True
            self._finish()
            return

        self.restart_count += 1
        try:
            self._recognizer.start(self.language_tag, self)
        except CaptureError as e:
            self._error = e
            self._finish()
            return

        self._pending_restarts.append(self.restart_count)

    def handle_error(self, code: str) -> None:
        if code in IGNORED_ERRORS:
            return
        if self.state not in (SessionState.LISTENING, SessionState.STOPPING):
            return

        logger.warning("recognizer_error", session_id=str(self.session_id), code=code)
        self._error = recognizer_error(code)
        self._finish()

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _finish(self) -> None:
        self.state = SessionState.STOPPED
        self._ended.set()
        self._schedule_release()

    def _schedule_release(self) -> None:
        if not self._device_held or self._release_task is not None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Outside the loop thread; the next await on the session releases it
            return
        self._release_task = loop.create_task(self._release_microphone())

    async def _release(self) -> None:
        task = self._release_task
        if task is not None:
            await task
        await self._release_microphone()

    async def _release_microphone(self) -> None:
        if self._device_held:
            self._device_held = False
            await self._microphone.release()

    async def _flush(self) -> None:
        restarts, self._pending_restarts = self._pending_restarts, []
        if self._audit is None:
            return
        for restart_count in restarts:
            await self._audit.log_voice_session_restarted(
                session_id=self.session_id,
                restart_count=restart_count,
                correlation_id=self.correlation_id,
            )

    async def _log_failure(self, error: CaptureError) -> None:
        if self._audit is not None:
            await self._audit.log_capture_failed(
                category=error.category.value,
                error_message=str(error),
                correlation_id=self.correlation_id,
            )
