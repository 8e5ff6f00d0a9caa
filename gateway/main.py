from __future__ import annotations

import logging
import subprocess
import uuid
from typing import Optional

from fastapi import FastAPI, File, Form, HTTPException, UploadFile

from asr_client.errors import (
    ConfigurationError,
    ProviderError,
    TranscriptionTimeoutError,
    TransportError,
)
from asr_client.session import transcribe
from common.config import GatewaySettings, VoiceAPISettings
from common.schemas import TranscribeResponse
from gateway.audio_utils import normalize_audio
from gateway.session import SessionManager

logger = logging.getLogger(__name__)

settings = GatewaySettings()
voice_settings = VoiceAPISettings()
app = FastAPI(title="Voice Travel Planner Gateway")
manager = SessionManager(max_sessions=settings.max_sessions)


@app.get("/health")
async def health():
    return {"status": "ok", "active_sessions": manager.active_count}


@app.post("/voice/transcribe", response_model=TranscribeResponse)
async def transcribe_endpoint(
    file: Optional[UploadFile] = File(None),
    encoding: str = Form("pcm_s16le"),
    sample_rate: int = Form(16000),
    channels: int = Form(1),
):
    if file is None:
        raise HTTPException(status_code=400, detail="Missing audio file")

    raw = await file.read()
    try:
        audio = normalize_audio(
            raw,
            input_sample_rate=sample_rate,
            input_channels=channels,
            input_encoding=encoding,
        )
    except (subprocess.CalledProcessError, ValueError):
        logger.warning("Could not decode upload %s (%s)", file.filename, encoding)
        raise HTTPException(status_code=400, detail="Unsupported audio format")

    request_id = uuid.uuid4().hex
    try:
        await manager.create(request_id, audio_bytes=len(audio), filename=file.filename)
    except RuntimeError as exc:
        logger.warning("Rejected transcription: %s", exc)
        raise HTTPException(status_code=429, detail=str(exc))

    try:
        transcript = await transcribe(audio, voice_settings)
    except ConfigurationError as exc:
        logger.error("Voice API misconfigured: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc))
    except TranscriptionTimeoutError as exc:
        raise HTTPException(status_code=504, detail=str(exc))
    except ProviderError as exc:
        raise HTTPException(status_code=502, detail={"code": exc.code, "message": exc.message})
    except TransportError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    except Exception:
        logger.exception("Unexpected error in transcribe endpoint")
        raise HTTPException(status_code=500, detail="Internal transcription error")
    finally:
        await manager.remove(request_id)

    return TranscribeResponse(transcript=transcript)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)
