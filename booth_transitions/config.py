"""
Configuration management for the transition pipeline
"""

import os
from functools import lru_cache
from pathlib import Path
from pydantic_settings import BaseSettings

# Generation always runs at 16fps; the fps setting only controls interpolation
BASE_GENERATION_FPS = 16


def get_default_download_path() -> str:
    """Get default download directory based on environment."""
    # In Docker, downloads land in /app/storage/downloads
    if os.path.exists("/app/storage"):
        return "/app/storage/downloads"
    return str(Path.home() / "Downloads")


def frames_for_duration(duration_seconds: float) -> int:
    """Frame count for a clip of the given length (16fps base + 1 frame)."""
    return int(BASE_GENERATION_FPS * duration_seconds + 1)


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Redis
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str = ""

    # Worker
    worker_count: int = 1
    log_level: str = "INFO"
    log_file: str = ""

    # Queue Names (must match the web API)
    queue_transition_batch: str = "transition-batch"
    queue_results: str = "results"
    preferences_prefix: str = "booth:prefs"

    # Generation service
    generation_api_url: str = "http://localhost:3001"
    video_resolution: str = "480p"
    video_fps: int = 32
    clip_duration_seconds: float = 5.0
    transition_positive_prompt: str = (
        "Cinematic transition between the person in the starting frame image to "
        "the person in the ending frame image with a creative physical transition. "
        "Preserve the same subject identity and facial structure. Transition using "
        "only existing elements and environment to morph smoothly into the new "
        "scene with cinematic flare"
    )
    transition_negative_prompt: str = (
        "slow motion, talking, blurry, low quality, static, deformed overexposed, "
        "blurred details, worst quality, JPEG compression, ugly, still picture, "
        "walking backwards"
    )
    max_generation_attempts: int = 2  # initial attempt + one retry
    retry_backoff_seconds: float = 2.0
    max_in_flight_jobs: int = 0  # 0 = no cap
    job_poll_interval_seconds: float = 2.0
    job_timeout_seconds: float = 240.0

    # Image loading
    app_origin: str = "http://localhost:5173"
    http_timeout_seconds: float = 30.0
    image_export_format: str = "PNG"

    # Audio
    transcode_api_url: str = "http://localhost:3001"
    waveform_buckets: int = 200
    offset_snap_seconds: float = 0.25
    max_upload_bytes: int = 20 * 1024 * 1024

    # Delivery
    download_dir: str = get_default_download_path()
    blob_revoke_delay_seconds: float = 1.0
    output_filename_prefix: str = "photobooth-transition"

    @property
    def frames(self) -> int:
        """Frame count for the configured clip duration."""
        return frames_for_duration(self.clip_duration_seconds)

    class Config:
        env_file = ".env"
        extra = "ignore"
        case_sensitive = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
