#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Settings - Centralized configuration management
"""

from pathlib import Path
from typing import List
from pydantic_settings import BaseSettings

from .constants import (
    DEFAULT_MAX_BATCH_CHARS,
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_PARALLEL_JOBS,
    TRANSLATION_TEMPERATURE,
    CONVERTER_COMMAND,
    CONVERTER_TIMEOUT_SECONDS,
    RENDERER_API_URL,
    RENDERER_TIMEOUT_SECONDS,
    DEFAULT_PAGE_FORMAT,
    GENERATION_POLICY_FAIL_JOB,
    GENERATION_POLICY_ISOLATE_FILE,
    MAX_UPLOAD_FILES,
    MAX_UPLOAD_SIZE_MB,
    LOG_LEVEL,
    LOG_FILE,
)


# Base directory
BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Application settings"""

    # ========== API Keys ==========
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    renderer_api_key: str = ""

    # ========== Translation backend ==========
    provider: str = "openai"  # openai | anthropic
    model: str = ""  # empty = provider default
    temperature: float = TRANSLATION_TEMPERATURE

    # ========== Performance ==========
    max_batch_chars: int = DEFAULT_MAX_BATCH_CHARS
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY  # 0 = no cap
    request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT
    max_parallel_jobs: int = DEFAULT_PARALLEL_JOBS

    # ========== External tools ==========
    converter_command: str = CONVERTER_COMMAND
    converter_timeout_seconds: int = CONVERTER_TIMEOUT_SECONDS
    renderer_api_url: str = RENDERER_API_URL
    renderer_timeout_seconds: float = RENDERER_TIMEOUT_SECONDS
    page_format: str = DEFAULT_PAGE_FORMAT

    # fail_job: a rendering failure fails the whole job
    # isolate_file: the file stays untranslated, the job completes
    generation_failure_policy: str = GENERATION_POLICY_FAIL_JOB

    # ========== File Upload ==========
    max_upload_files: int = MAX_UPLOAD_FILES
    max_upload_size_mb: int = MAX_UPLOAD_SIZE_MB

    # ========== Directories ==========
    upload_dir: Path = BASE_DIR / "data" / "uploads"
    db_path: Path = BASE_DIR / "data" / "jobs.db"

    # ========== Logging ==========
    log_level: str = LOG_LEVEL
    log_file: str = LOG_FILE  # empty = console only

    class Config:
        env_file = str(BASE_DIR / ".env")
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"  # Allow extra fields from .env that aren't defined in model

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if self.generation_failure_policy not in (
            GENERATION_POLICY_FAIL_JOB,
            GENERATION_POLICY_ISOLATE_FILE,
        ):
            raise ValueError(
                f"Unsupported generation_failure_policy: {self.generation_failure_policy}"
            )
        # Create directories
        for dir_path in [self.upload_dir, self.db_path.parent]:
            dir_path.mkdir(exist_ok=True, parents=True)

    def missing_credentials(self) -> List[str]:
        """Names of the credentials the configured backends still need."""
        missing = []
        if self.provider == "openai" and not self.openai_api_key:
            missing.append("OPENAI_API_KEY")
        if self.provider == "anthropic" and not self.anthropic_api_key:
            missing.append("ANTHROPIC_API_KEY")
        if not self.renderer_api_key:
            missing.append("RENDERER_API_KEY")
        return missing


# Global settings instance
settings = Settings()
