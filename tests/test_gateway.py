import numpy as np
import pytest
from fastapi.testclient import TestClient

from asr_client.errors import (
    ConfigurationError,
    ProviderError,
    TranscriptionTimeoutError,
    TransportError,
)
from gateway import main
from gateway.audio_utils import _ffmpeg_format, float32_to_pcm16, normalize_audio
from gateway.session import SessionManager


class TestAudioUtils:
    def test_passthrough_when_already_correct_format(self):
        pcm = b"\x00\x01" * 100
        result = normalize_audio(pcm, input_sample_rate=16000, input_channels=1, input_encoding="pcm_s16le")
        assert result == pcm

    def test_float32_converted_in_process(self):
        samples = np.array([0.0, 1.0, -1.0, 2.0, -0.5], dtype="<f4")
        result = normalize_audio(samples.tobytes(), input_encoding="pcm_f32le")
        assert np.frombuffer(result, dtype="<i2").tolist() == [0, 32767, -32768, 32767, -16384]

    def test_float32_rejects_partial_samples(self):
        with pytest.raises(ValueError):
            float32_to_pcm16(b"\x00\x00\x00")

    def test_ffmpeg_format_mapping(self):
        assert _ffmpeg_format("pcm_s16le") == "s16le"
        assert _ffmpeg_format("wav") == "wav"
        assert _ffmpeg_format("webm") == "webm"
        assert _ffmpeg_format("unknown") == "s16le"


class TestSessionManager:
    @pytest.fixture
    def manager(self):
        return SessionManager(max_sessions=2)

    @pytest.mark.asyncio
    async def test_create_and_remove(self, manager):
        request = await manager.create("r1", audio_bytes=3200)
        assert request.request_id == "r1"
        assert request.audio_bytes == 3200
        assert manager.active_count == 1
        assert manager.get("r1") is request
        await manager.remove("r1")
        assert manager.active_count == 0
        assert manager.get("r1") is None

    @pytest.mark.asyncio
    async def test_max_sessions_enforced(self, manager):
        await manager.create("r1")
        await manager.create("r2")
        with pytest.raises(RuntimeError, match="Max sessions"):
            await manager.create("r3")

    @pytest.mark.asyncio
    async def test_duplicate_request_id_rejected(self, manager):
        await manager.create("r1")
        with pytest.raises(RuntimeError, match="already exists"):
            await manager.create("r1")

    @pytest.mark.asyncio
    async def test_remove_unknown_is_noop(self, manager):
        await manager.remove("missing")
        assert manager.active_count == 0


class TestTranscribeEndpoint:
    @pytest.fixture
    def client(self):
        return TestClient(main.app)

    def _fake_transcribe(self, monkeypatch, result=None, error=None):
        calls = []

        async def fake(audio, settings):
            calls.append(audio)
            if error is not None:
                raise error
            return result

        monkeypatch.setattr(main, "transcribe", fake)
        return calls

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "active_sessions": 0}

    def test_returns_transcript(self, client, monkeypatch):
        calls = self._fake_transcribe(monkeypatch, result="我想去成都玩五天")
        pcm = b"\x00\x01" * 1600
        resp = client.post("/voice/transcribe", files={"file": ("recording.pcm", pcm, "application/octet-stream")})
        assert resp.status_code == 200
        assert resp.json() == {"transcript": "我想去成都玩五天"}
        assert calls == [pcm]
        assert main.manager.active_count == 0

    def test_missing_file(self, client, monkeypatch):
        calls = self._fake_transcribe(monkeypatch, result="")
        resp = client.post("/voice/transcribe", data={"encoding": "pcm_s16le"})
        assert resp.status_code == 400
        assert calls == []

    def test_undecodable_float_audio(self, client, monkeypatch):
        self._fake_transcribe(monkeypatch, result="")
        resp = client.post(
            "/voice/transcribe",
            files={"file": ("recording.raw", b"\x00\x00\x00", "application/octet-stream")},
            data={"encoding": "pcm_f32le"},
        )
        assert resp.status_code == 400

    @pytest.mark.parametrize(
        "error,status",
        [
            (ConfigurationError("Voice API configuration missing: VOICE_API_KEY"), 500),
            (TranscriptionTimeoutError("timed out"), 504),
            (TransportError("Failed to connect to recognizer", OSError("reset")), 502),
        ],
    )
    def test_error_mapping(self, client, monkeypatch, error, status):
        self._fake_transcribe(monkeypatch, error=error)
        resp = client.post("/voice/transcribe", files={"file": ("recording.pcm", b"\x00" * 64)})
        assert resp.status_code == status
        assert main.manager.active_count == 0

    def test_provider_error_detail(self, client, monkeypatch):
        self._fake_transcribe(monkeypatch, error=ProviderError(10165, "invalid handle"))
        resp = client.post("/voice/transcribe", files={"file": ("recording.pcm", b"\x00" * 64)})
        assert resp.status_code == 502
        assert resp.json()["detail"] == {"code": 10165, "message": "invalid handle"}

    def test_rejects_when_busy(self, client, monkeypatch):
        self._fake_transcribe(monkeypatch, result="")
        monkeypatch.setattr(main, "manager", SessionManager(max_sessions=0))
        resp = client.post("/voice/transcribe", files={"file": ("recording.pcm", b"\x00" * 64)})
        assert resp.status_code == 429
