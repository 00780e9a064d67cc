"""Application configuration."""
from pathlib import Path
from typing import Literal, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


SuggestionMode = Literal["openai", "ollama", "ollama_then_openai"]


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SHORTCLIPS_",
    )

    # App settings
    app_name: str = "ShortClips"
    debug: bool = False

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8000

    # Data directories
    download_dir: Path = Path("./data/downloads")
    output_dir: Optional[Path] = None  # None = next to the input video

    # Clip selection
    min_clip_seconds: float = 30.0  # Cuts shorter than this are expanded or dropped
    min_viable_clip_seconds: float = 5.0  # Expanded cuts below this are discarded
    max_expanded_clip_seconds: float = 120.0  # Cap on expansion growth
    max_clips: Optional[int] = None  # None = render every normalized cut
    convert_to_vertical: bool = True

    # Suggestion service
    suggestion_mode: SuggestionMode = "openai"
    suggestion_retry_count: int = 2  # Extra attempts after the first call
    suggestion_retry_delay_ms: int = 1000
    suggestion_chunk_max_chars: int = 12000  # <= 0 disables chunking
    suggestion_http_timeout_seconds: float = 120.0

    # OpenAI-compatible API (chat completions + audio transcriptions)
    openai_api_key: Optional[str] = None
    openai_api_base: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-4o-mini"

    # Ollama
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "llama3"

    # Transcription
    transcription_model: str = "whisper-1"
    transcription_http_timeout_seconds: float = 600.0

    # FFmpeg settings
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"

    # yt-dlp settings
    ytdlp_path: str = "yt-dlp"

    # Export settings
    export_video_codec: str = "libx264"
    export_video_preset: str = "veryfast"
    export_video_crf: int = 18
    export_audio_codec: str = "aac"
    export_audio_bitrate: str = "192k"
    vertical_width: int = 1080
    vertical_height: int = 1920


settings = Settings()
