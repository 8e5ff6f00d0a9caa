"""End-to-end tests: need a running gateway or live recognizer credentials, skipped otherwise."""

import os

import pytest

E2E = os.environ.get("RUN_E2E", "").lower() in ("1", "true", "yes")
pytestmark = pytest.mark.skipif(not E2E, reason="E2E tests disabled (set RUN_E2E=1)")


@pytest.mark.asyncio
async def test_recognizer_silence():
    import numpy as np

    from asr_client.session import transcribe
    from common.config import VoiceAPISettings

    # 2 seconds of silence; the recognizer should settle with little or no text
    silence = np.zeros(32000, dtype=np.int16).tobytes()
    transcript = await transcribe(silence, VoiceAPISettings())
    assert isinstance(transcript, str)


@pytest.mark.asyncio
async def test_gateway_transcribe():
    import httpx
    import numpy as np

    url = os.environ.get("GATEWAY_URL", "http://localhost:8000/voice/transcribe")
    t = np.linspace(0, 1, 16000, dtype=np.float32)
    tone = (np.sin(2 * np.pi * 440 * t) * 8000).astype(np.int16).tobytes()

    async with httpx.AsyncClient(timeout=60) as client:
        resp = await client.post(url, files={"file": ("recording.pcm", tone, "application/octet-stream")})
        assert resp.status_code == 200
        assert "transcript" in resp.json()
