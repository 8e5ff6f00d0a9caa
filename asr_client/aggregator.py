from __future__ import annotations

from typing import Optional

from common.schemas import RecognitionResult

REPLACE = "rpl"


def reconstruct(segments: dict[int, str]) -> str:
    return "".join(segments[sn] for sn in sorted(segments))


def aggregate(segments: dict[int, str], result: Optional[RecognitionResult]) -> str:
    """Merge one partial result into ``segments`` and return the full text.

    ``segments`` maps sequence numbers to text and is mutated in place. A
    replace correction (``pgs == "rpl"`` with a two-element ``rg``) first drops
    every entry whose key lies in the inclusive range. The transcript is rebuilt
    from scratch each time since a correction can touch any earlier key.
    """
    if result is None:
        return reconstruct(segments)

    if result.sn is not None:
        if result.pgs == REPLACE and result.rg is not None and len(result.rg) == 2:
            start, end = result.rg
            for sn in [key for key in segments if start <= key <= end]:
                del segments[sn]
        segments[result.sn] = result.text

    return reconstruct(segments)
