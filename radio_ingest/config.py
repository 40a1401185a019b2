"""
Runtime settings and show profile loading
"""

import json
from pathlib import Path
from typing import List, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ProfileError
from .models import ShowProfile


class Settings(BaseSettings):
    """Processing settings.

    Environment variables:
        RADIO_FFMPEG_PATH / RADIO_FFPROBE_PATH: transcoder and prober binaries
        RADIO_PROBE_TIMEOUT / RADIO_TRANSCODE_TIMEOUT: child process limits in seconds
        RADIO_FALLBACK_DURATION: duration assumed when probing fails
        RADIO_FADE_IN_SECONDS / RADIO_FADE_OUT_SECONDS: fade lengths
        RADIO_ALLOWED_EXTENSIONS: comma-separated list of accepted suffixes
        RADIO_OUTPUT_BASE_DIR: output folder for shows without their own
        RADIO_MAX_CONCURRENT_JOBS: parallel jobs in batch mode
        RADIO_LOG_LEVEL / RADIO_LOG_FILE: logging setup
    """

    model_config = SettingsConfigDict(
        env_prefix="RADIO_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    ffmpeg_path: str = Field(default="ffmpeg")
    ffprobe_path: str = Field(default="ffprobe")
    probe_timeout: float = Field(default=30.0, gt=0)
    transcode_timeout: float = Field(default=3600.0, gt=0)
    fallback_duration: float = Field(default=300.0, gt=0)
    fade_in_seconds: float = Field(default=0.5, ge=0)
    fade_out_seconds: float = Field(default=0.5, ge=0)
    allowed_extensions: str = Field(default=".mp3,.wav,.flac,.aac,.m4a")
    output_base_dir: Path = Field(default=Path("Output"))
    max_concurrent_jobs: int = Field(default=2, ge=1)
    log_level: str = Field(default="INFO")
    log_file: Optional[Path] = None

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError("Log level must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL")
        return v

    @property
    def extensions(self) -> List[str]:
        exts = []
        for ext in self.allowed_extensions.split(","):
            ext = ext.strip().lower()
            if ext:
                exts.append(ext if ext.startswith(".") else f".{ext}")
        return exts


def load_show_profile(path: Path) -> ShowProfile:
    """Load and validate a show profile from a JSON file"""
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise ProfileError(f"Show profile not found: {path}")
    except (OSError, json.JSONDecodeError) as e:
        raise ProfileError(f"Cannot read show profile {path}: {e}")

    try:
        return ShowProfile.model_validate(raw)
    except ValidationError as e:
        raise ProfileError(f"Invalid show profile {path}:\n{e}")
