from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, Callable, Optional

import websockets
from pydantic import ValidationError

from asr_client.aggregator import aggregate
from asr_client.errors import (
    ProviderError,
    TranscriptionError,
    TranscriptionTimeoutError,
    TransportError,
)
from asr_client.framing import build_frame_payload, build_terminal_payload, iter_frames
from asr_client.models import Credentials, SessionState
from asr_client.signer import create_signed_url
from common.config import VoiceAPISettings
from common.schemas import BusinessParams, FrameStatus, RecognizerMessage

logger = logging.getLogger(__name__)

STREAM_CHUNK_SIZE = 1280  # bytes, 40ms of 16kHz 16-bit mono
STREAM_INTERVAL_S = 0.04
STREAM_TIMEOUT_S = 20.0
CLOSE_TIMEOUT_S = 1.0

CLOSE_NORMAL = 1000
CLOSE_PROTOCOL_ERROR = 1002


class TranscriptionSession:
    """One signed streaming recognition request.

    A driver task opens the connection, starts the paced send loop and reads
    results until the connection ends. Every terminal event (final result,
    provider error, transport error, close, timeout) goes through ``_finish``
    or ``_fail``, which settle a single future and ignore later calls.
    """

    def __init__(
        self,
        credentials: Credentials,
        business: Optional[BusinessParams] = None,
        chunk_size: int = STREAM_CHUNK_SIZE,
        interval_s: float = STREAM_INTERVAL_S,
        timeout_s: float = STREAM_TIMEOUT_S,
        connect: Callable[..., Any] = websockets.connect,
    ) -> None:
        self.credentials = credentials
        self.business = business or BusinessParams()
        self.chunk_size = chunk_size
        self.interval_s = interval_s
        self.timeout_s = timeout_s
        self._connect = connect

        self.state = SessionState.connecting
        self.segments: dict[int, str] = {}
        self.transcript = ""

        self._ws = None
        self._result: Optional[asyncio.Future[str]] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._close_code = CLOSE_NORMAL
        self._close_reason = "done"
        self._closed = False

    @classmethod
    def from_settings(cls, settings: VoiceAPISettings, **kwargs: Any) -> TranscriptionSession:
        business = BusinessParams(
            language=settings.language,
            domain=settings.domain,
            accent=settings.accent,
            vad_eos=settings.vad_eos,
        )
        return cls(
            Credentials.from_settings(settings),
            business=business,
            chunk_size=settings.chunk_size,
            interval_s=settings.frame_interval_s,
            timeout_s=settings.timeout_s,
            **kwargs,
        )

    @property
    def settled(self) -> bool:
        return self._result is not None and self._result.done()

    async def run(self, audio: bytes) -> str:
        """Stream ``audio`` (16kHz mono 16-bit PCM) and return the trimmed transcript."""
        self.credentials.validate()
        signed = create_signed_url(
            self.credentials.url, self.credentials.api_key, self.credentials.api_secret
        )

        if not audio:
            logger.info("Empty audio, skipping recognition")
            self.state = SessionState.settled
            return ""

        loop = asyncio.get_running_loop()
        self._result = loop.create_future()
        self._timer = loop.call_later(self.timeout_s, self._on_timeout)
        driver = asyncio.create_task(self._drive(signed.url, audio))
        driver.add_done_callback(self._on_driver_done)
        try:
            return await self._result
        finally:
            self._timer.cancel()
            driver.cancel()
            # wait() never re-raises, the driver's own error is already settled.
            await asyncio.wait([driver])
            await self._close()

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    async def _drive(self, url: str, audio: bytes) -> None:
        try:
            self._ws = await self._connect(
                url, open_timeout=self.timeout_s, close_timeout=CLOSE_TIMEOUT_S
            )
        except (OSError, asyncio.TimeoutError, websockets.WebSocketException) as exc:
            self._fail(TransportError("Failed to connect to recognizer", exc))
            return

        if self.settled:
            return
        self.state = SessionState.streaming
        logger.info("Recognizer session opened: %d bytes of audio", len(audio))

        sender = asyncio.create_task(self._send_audio(audio))
        try:
            await self._receive()
        finally:
            sender.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sender

    async def _send_audio(self, audio: bytes) -> None:
        total = len(audio)
        try:
            for frame in iter_frames(total, self.chunk_size):
                if self.settled:
                    return
                payload = build_frame_payload(
                    frame, audio[frame.start : frame.end], self.credentials.app_id, self.business
                )
                await self._ws.send(payload.model_dump_json(exclude_none=True))
                logger.debug("Sent frame %d [%d, %d) status=%d", frame.index, frame.start, frame.end, frame.status)
                if frame.end < total:
                    await asyncio.sleep(self.interval_s)

            if self.settled:
                return
            # Always end explicitly, the last data frame may have been marked "first".
            await self._ws.send(build_terminal_payload().model_dump_json(exclude_none=True))
            self.state = SessionState.awaiting_final
            logger.debug("Sent end of stream")
        except websockets.ConnectionClosed:
            logger.debug("Connection closed while streaming audio")
        except (OSError, websockets.WebSocketException) as exc:
            self._fail(TransportError("Failed to stream audio", exc))

    async def _receive(self) -> None:
        try:
            async for raw in self._ws:
                if self.settled:
                    return
                self._handle_message(raw)
        except websockets.ConnectionClosedError as exc:
            # A bare 1006 is still a close; only a socket error is a failure.
            if isinstance(exc.__cause__, OSError):
                self._fail(TransportError("Recognizer connection lost", exc.__cause__))
                return
        except OSError as exc:
            self._fail(TransportError("Recognizer connection failed", exc))
            return

        # Closed before any final marker: keep what we have.
        if not self.settled:
            logger.info("Recognizer closed the connection before the final result")
        self._finish(self.transcript)

    def _handle_message(self, raw: str | bytes) -> None:
        try:
            message = RecognizerMessage.model_validate_json(raw)
        except ValidationError as exc:
            self._fail(TransportError("Malformed message from recognizer", exc))
            return

        if message.code != 0:
            self._fail(ProviderError(message.code, message.message))
            return

        data = message.data
        if data is None:
            return
        if data.result is not None:
            self.transcript = aggregate(self.segments, data.result)

        if data.status == FrameStatus.last or (data.result is not None and data.result.ls):
            self._finish(self.transcript)

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------

    def _finish(self, text: str) -> None:
        if self.settled:
            return
        self._settle(CLOSE_NORMAL, "done")
        self._result.set_result(text.strip())
        logger.info("Recognition finished: %d characters", len(text.strip()))

    def _fail(self, error: TranscriptionError, code: int = CLOSE_PROTOCOL_ERROR, reason: str = "error") -> None:
        if self.settled:
            return
        self._settle(code, reason)
        self._result.set_exception(error)
        logger.warning("Recognition failed: %s", error)

    def _settle(self, code: int, reason: str) -> None:
        self.state = SessionState.settled
        self._close_code = code
        self._close_reason = reason
        if self._timer is not None:
            self._timer.cancel()

    def _on_driver_done(self, task: asyncio.Task) -> None:
        if task.cancelled() or task.exception() is None:
            return
        self._fail(TransportError("Recognizer session crashed", task.exception()))

    def _on_timeout(self) -> None:
        self._fail(
            TranscriptionTimeoutError(f"Speech recognition timed out after {self.timeout_s:g}s"),
            code=CLOSE_NORMAL,
            reason="timeout",
        )

    async def _close(self) -> None:
        if self._closed or self._ws is None:
            return
        self._closed = True
        try:
            await self._ws.close(code=self._close_code, reason=self._close_reason)
        except (OSError, websockets.WebSocketException):
            logger.warning("Failed to close recognizer connection", exc_info=True)


async def transcribe(
    audio: bytes,
    settings: Optional[VoiceAPISettings] = None,
    **kwargs: Any,
) -> str:
    """Transcribe 16kHz mono 16-bit PCM ``audio`` with the configured recognizer."""
    settings = settings or VoiceAPISettings()
    session = TranscriptionSession.from_settings(settings, **kwargs)
    return await session.run(audio)
