from __future__ import annotations

import base64
from typing import Iterator

from asr_client.models import Frame
from common.schemas import (
    AudioData,
    BusinessParams,
    CommonParams,
    FramePayload,
    FrameStatus,
)

AUDIO_FORMAT = "audio/L16;rate=16000"
AUDIO_ENCODING = "raw"


def iter_frames(length: int, chunk_size: int) -> Iterator[Frame]:
    """Split ``length`` bytes into consecutive frames of at most ``chunk_size``.

    Frame 0 is ``first``; the frame that reaches ``length`` is ``last`` unless it
    is also frame 0. Everything in between is ``middle``.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    index = 0
    offset = 0
    while offset < length:
        end = min(offset + chunk_size, length)
        if index == 0:
            status = FrameStatus.first
        elif end >= length:
            status = FrameStatus.last
        else:
            status = FrameStatus.middle
        yield Frame(index=index, start=offset, end=end, status=status)
        offset = end
        index += 1


def build_frame_payload(
    frame: Frame,
    chunk: bytes,
    app_id: str,
    business: BusinessParams,
) -> FramePayload:
    payload = FramePayload(
        data=AudioData(
            status=frame.status,
            format=AUDIO_FORMAT,
            encoding=AUDIO_ENCODING,
            audio=base64.b64encode(chunk).decode("ascii"),
        )
    )
    # Session metadata travels once, with the first frame.
    if frame.index == 0:
        payload.common = CommonParams(app_id=app_id)
        payload.business = business
    return payload


def build_terminal_payload() -> FramePayload:
    return FramePayload(data=AudioData(status=FrameStatus.last))
