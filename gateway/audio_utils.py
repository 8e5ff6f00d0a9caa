from __future__ import annotations

import subprocess

import numpy as np


def normalize_audio(
    data: bytes,
    input_sample_rate: int = 16000,
    input_channels: int = 1,
    input_encoding: str = "pcm_s16le",
) -> bytes:
    """Convert uploaded audio to 16kHz mono 16-bit PCM.

    If the audio is already in the target format, return as-is. 16kHz mono
    float32 PCM is converted in-process. Anything else goes through ffmpeg.
    """
    if input_sample_rate == 16000 and input_channels == 1:
        if input_encoding == "pcm_s16le":
            return data
        if input_encoding == "pcm_f32le":
            return float32_to_pcm16(data)

    cmd = [
        "ffmpeg",
        "-hide_banner",
        "-loglevel", "error",
        "-f", _ffmpeg_format(input_encoding),
        "-ar", str(input_sample_rate),
        "-ac", str(input_channels),
        "-i", "pipe:0",
        "-f", "s16le",
        "-ar", "16000",
        "-ac", "1",
        "pipe:1",
    ]
    result = subprocess.run(cmd, input=data, capture_output=True, check=True)
    return result.stdout


def float32_to_pcm16(data: bytes) -> bytes:
    """Clamp float samples to [-1, 1] and scale to little-endian int16."""
    samples = np.clip(np.frombuffer(data, dtype="<f4"), -1.0, 1.0)
    scaled = np.where(samples < 0, samples * 0x8000, samples * 0x7FFF)
    return scaled.astype("<i2").tobytes()


def _ffmpeg_format(encoding: str) -> str:
    mapping = {
        "pcm_s16le": "s16le",
        "pcm_f32le": "f32le",
        "wav": "wav",
        "ogg": "ogg",
        "webm": "webm",
        "mp3": "mp3",
    }
    return mapping.get(encoding, "s16le")
