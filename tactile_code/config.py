"""
tactile-code configuration
"""
import sys
from pathlib import Path
from typing import Literal, Optional

from loguru import logger
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Logging
    log_level: str = "INFO"

    # Navigation
    history_limit: int = 200
    search_cache_size: int = 100
    search_result_limit: int = 20

    # Scanner
    name_max_length: int = 50
    summary_max_length: int = 30
    scope_tracking: Literal["stack", "last-seen"] = "stack"

    # Audio
    audio_sink: Literal["null", "wav"] = "null"
    wav_output_dir: Path = Path("cues")
    sample_rate: int = 22050
    max_voices: int = 4

    # Server
    host: str = "127.0.0.1"
    port: int = 8110

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="TACTILE_CODE_",
        extra="ignore",
    )


settings = Settings()


def configure_logging(level: Optional[str] = None):
    """Replace loguru's default sink with a stderr sink at the configured level"""
    logger.remove()
    logger.add(sys.stderr, level=(level or settings.log_level).upper())
