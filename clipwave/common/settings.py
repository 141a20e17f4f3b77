# clipwave/common/settings.py
from __future__ import annotations

from functools import lru_cache
from typing import List

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _to_bool(v: str | bool | int | None, default: bool = False) -> bool:
    if isinstance(v, bool):
        return v
    if v is None:
        return default
    s = str(v).strip().lower()
    return s in {"1", "true", "yes", "y", "on"}


class BinariesConfig(BaseModel):
    # Checked in order, only when no hint directory is configured.
    bin_dir_env_vars: List[str] = Field(
        default_factory=lambda: ["VIDEO_TRIM_FFMPEG_BIN_DIR", "FFMPEG_BIN_DIR"]
    )
    bundled_app_dir_name: str = "Clip Wave"
    versioned_dir_prefix: str = "ffmpeg-"
    versioned_dir_marker: str = "essentials_build"
    scan_limit: int = Field(20, ge=0)


class ProbeConfig(BaseModel):
    probesize: str = "10M"
    analyzeduration: str = "10M"
    native_enabled: bool = True
    stderr_head_bytes: int = Field(200, ge=0)

    @field_validator("native_enabled", mode="before")
    @classmethod
    def _boolify(cls, v):
        return _to_bool(v, default=True)


class KeyframeConfig(BaseModel):
    windows_sec: List[float] = Field(default_factory=lambda: [60.0, 600.0, 3600.0])
    epsilon: float = 1e-6


class TrimConfig(BaseModel):
    min_output_bytes: int = Field(10_000, ge=0)
    duration_tolerance_sec: float = 0.5
    max_name_attempts: int = Field(999, ge=1)

    # Fixed re-encode defaults for exact mode
    video_codec: str = "libx264"
    crf: int = 18
    preset: str = "veryfast"
    pix_fmt: str = "yuv420p"

    mp4_family_exts: List[str] = Field(default_factory=lambda: ["mp4", "m4v", "mov"])
    default_ext: str = "mp4"


class ConcurrencyConfig(BaseModel):
    workers: int = Field(2, ge=1)
    thread_queue_maxsize: int = 16


class Settings(BaseSettings):
    # -------- App / Env --------
    app_name: str = "clipwave"
    app_env: str = "development"  # development|test|production
    log_level: str = "INFO"

    # -------- Tools --------
    # Directory expected to hold both ffmpeg and ffprobe; empty means auto-resolve.
    # Not read from FFMPEG_BIN_DIR: that one is a lenient fallback for the resolver.
    ffmpeg_bin_dir: str = Field(default="", validation_alias="CLIPWAVE_FFMPEG_BIN_DIR")

    # -------- Sub-configs --------
    binaries: BinariesConfig = BinariesConfig()
    probe: ProbeConfig = ProbeConfig()
    keyframes: KeyframeConfig = KeyframeConfig()
    trim: TrimConfig = TrimConfig()
    concurrency: ConcurrencyConfig = ConcurrencyConfig()

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("ffmpeg_bin_dir", mode="before")
    @classmethod
    def _strip_dir(cls, v):
        return "" if v is None else str(v).strip()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Global settings accessor (cached). Use this where no Settings was injected:
        from clipwave.common.settings import get_settings
        cfg = get_settings()
    """
    return Settings()
