"""Internal models for the streaming recognition client."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from asr_client.errors import ConfigurationError
from common.config import VoiceAPISettings
from common.schemas import FrameStatus


@dataclass(frozen=True)
class Credentials:
    url: str
    app_id: str
    api_key: str
    api_secret: str

    @classmethod
    def from_settings(cls, settings: VoiceAPISettings) -> Credentials:
        return cls(
            url=settings.url,
            app_id=settings.app_id,
            api_key=settings.key,
            api_secret=settings.secret,
        )

    def validate(self) -> None:
        missing = [
            name
            for name, value in (
                ("VOICE_API_URL", self.url),
                ("VOICE_API_APP_ID", self.app_id),
                ("VOICE_API_KEY", self.api_key),
                ("VOICE_API_SECRET", self.api_secret),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(f"Voice API configuration missing: {', '.join(missing)}")


@dataclass(frozen=True)
class Frame:
    index: int
    start: int
    end: int
    status: FrameStatus


class SessionState(str, Enum):
    connecting = "connecting"
    streaming = "streaming"
    awaiting_final = "awaiting_final"
    settled = "settled"
