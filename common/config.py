from pydantic_settings import BaseSettings


class GatewaySettings(BaseSettings):
    host: str = "0.0.0.0"
    port: int = 8000
    max_sessions: int = 10

    model_config = {"env_prefix": "GATEWAY_"}


class VoiceAPISettings(BaseSettings):
    url: str = ""
    app_id: str = ""
    key: str = ""
    secret: str = ""

    language: str = "zh_cn"
    domain: str = "iat"
    accent: str = "mandarin"
    vad_eos: int = 3000

    chunk_size: int = 1280
    frame_interval_s: float = 0.04
    timeout_s: float = 20.0

    model_config = {"env_prefix": "VOICE_API_"}
