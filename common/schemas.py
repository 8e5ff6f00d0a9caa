from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel


# --- WebSocket messages: gateway -> recognizer ---

class FrameStatus(int, Enum):
    first = 0
    middle = 1
    last = 2


class CommonParams(BaseModel):
    app_id: str


class BusinessParams(BaseModel):
    language: str = "zh_cn"
    domain: str = "iat"
    accent: str = "mandarin"
    vad_eos: int = 3000
    dwa: str = "wpgs"  # dynamic correction, enables pgs/rg in results
    ptt: int = 1


class AudioData(BaseModel):
    status: FrameStatus
    format: Optional[str] = None
    encoding: Optional[str] = None
    audio: Optional[str] = None  # base64


class FramePayload(BaseModel):
    common: Optional[CommonParams] = None
    business: Optional[BusinessParams] = None
    data: AudioData


# --- WebSocket messages: recognizer -> gateway ---

class Word(BaseModel):
    w: str = ""


class WordGroup(BaseModel):
    cw: list[Word] = []


class RecognitionResult(BaseModel):
    ws: list[WordGroup] = []
    sn: Optional[int] = None
    pgs: Optional[str] = None  # "apd" appends, "rpl" replaces the rg range
    rg: Optional[list[int]] = None
    ls: Optional[bool] = None

    @property
    def text(self) -> str:
        return "".join(word.w for group in self.ws for word in group.cw)


class ResultData(BaseModel):
    status: int = 0
    result: Optional[RecognitionResult] = None


class RecognizerMessage(BaseModel):
    code: int
    message: str = ""
    sid: Optional[str] = None
    data: Optional[ResultData] = None


# --- HTTP API ---

class TranscribeResponse(BaseModel):
    transcript: str
