import asyncio
import logging
import sys
import wave

import numpy as np

from asr_client.errors import TranscriptionError
from asr_client.session import transcribe
from common.config import VoiceAPISettings
from gateway.audio_utils import normalize_audio


async def check(wav_path=None):
    settings = VoiceAPISettings()
    if wav_path:
        with wave.open(wav_path, "rb") as wf:
            print(f"WAV: {wf.getnchannels()}ch, {wf.getframerate()}Hz, {wf.getnframes()} frames")
            data = wf.readframes(wf.getnframes())
            data = normalize_audio(
                data,
                input_sample_rate=wf.getframerate(),
                input_channels=wf.getnchannels(),
            )
    else:
        t = np.linspace(0, 3, 16000 * 3, dtype=np.float32)
        tone = (np.sin(2 * np.pi * 440 * t) * 16000).astype(np.int16)
        data = tone.tobytes()

    print(f"Streaming {len(data)} bytes to {settings.url or '<unset VOICE_API_URL>'}...")
    transcript = await transcribe(data, settings)
    print(f"Transcript: {transcript!r}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG)
    path = sys.argv[1] if len(sys.argv) > 1 else None
    try:
        asyncio.run(check(path))
    except TranscriptionError as exc:
        print(f"Failed: {exc}")
        sys.exit(1)
