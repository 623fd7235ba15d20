"""
pulsargraph configuration.

Values come from the environment (``PULSARGRAPH_*``) or a local ``.env``
file; anything unset falls back to the defaults below.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PULSARGRAPH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Definitions ───────────────────────────────────────────────────
    definitions_path: Optional[Path] = None
    load_builtin_definitions: bool = True

    # ── Code generation ───────────────────────────────────────────────
    comment_prefix: str = "//"
    generated_header: str = "Generated Rust Code"
    error_header: str = "Fix validation errors before generating code"
    unconnected_input: str = "Default::default()"

    # ── Editing ───────────────────────────────────────────────────────
    duplicate_offset: float = Field(default=20.0)

    log_level: str = "WARNING"


@lru_cache
def get_settings() -> Settings:
    return Settings()
