"""Errors raised by a transcription session."""

from __future__ import annotations


class TranscriptionError(Exception):
    pass


class ConfigurationError(TranscriptionError):
    """Credentials or endpoint URL are missing or malformed."""


class TranscriptionTimeoutError(TranscriptionError, TimeoutError):
    """No terminal signal arrived before the session deadline."""


class ProviderError(TranscriptionError):
    """The recognizer answered with a non-zero status code."""

    def __init__(self, code: int, message: str = "") -> None:
        self.code = code
        self.message = message or f"Speech recognition failed ({code})"
        super().__init__(f"[{code}] {self.message}")


class TransportError(TranscriptionError):
    """The connection failed or delivered something unreadable."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(f"{message}: {cause}" if cause else message)
        self.cause = cause
        self.__cause__ = cause
