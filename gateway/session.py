from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class TranscriptionRequest:
    request_id: str
    audio_bytes: int = 0
    filename: str | None = None
    started_at: float = field(default_factory=time.monotonic)


class SessionManager:
    """Caps the number of recognizer sessions the gateway runs at once."""

    def __init__(self, max_sessions: int = 10) -> None:
        self._max = max_sessions
        self._sessions: dict[str, TranscriptionRequest] = {}
        self._lock = asyncio.Lock()

    async def create(self, request_id: str, **kwargs) -> TranscriptionRequest:
        async with self._lock:
            if len(self._sessions) >= self._max:
                raise RuntimeError(f"Max sessions ({self._max}) reached")
            if request_id in self._sessions:
                raise RuntimeError(f"Session {request_id} already exists")
            request = TranscriptionRequest(request_id=request_id, **kwargs)
            self._sessions[request_id] = request
            logger.info("Transcription started: %s (%d active)", request_id, len(self._sessions))
            return request

    async def remove(self, request_id: str) -> None:
        async with self._lock:
            request = self._sessions.pop(request_id, None)
            if request is not None:
                logger.info(
                    "Transcription ended: %s after %.2fs (%d active)",
                    request_id,
                    time.monotonic() - request.started_at,
                    len(self._sessions),
                )

    def get(self, request_id: str) -> TranscriptionRequest | None:
        return self._sessions.get(request_id)

    @property
    def active_count(self) -> int:
        return len(self._sessions)
