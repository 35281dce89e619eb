"""
Configuration for Intake Service
================================

Environment variables:
- CONTEXT_STORE: redis|memory (default: redis)
- REDIS_URL: Redis connection URL for the context store
- CONTEXT_TTL_SECONDS: Rolling expiry for conversation context (default: 3600)
- FILE_ANALYSIS_TIMEOUT: Per-file analysis timeout in seconds (default: 30)
- CAPABILITY_TIMEOUT: Timeout for every other external call (default: 30)
- LLM_MODE: none|openrouter (default: none)
- OPENROUTER_API_KEY: API key for OpenRouter (document analysis)
- OPENROUTER_MODEL: Model to use (default: anthropic/claude-3-haiku)
- UPLOAD_DIR: Directory holding uploaded files by file id
- SMTP_HOST / SMTP_PORT / SMTP_USER / SMTP_PASSWORD / SMTP_FROM: notifications
"""

from typing import Optional, List
from pydantic_settings import BaseSettings
from functools import lru_cache

from .schemas import LLMMode


class Settings(BaseSettings):
    """Application settings from environment variables"""

    # Context store
    context_store: str = "redis"  # redis | memory
    redis_url: str = "redis://localhost:6379/0"
    context_key_prefix: str = "conv_ctx:"
    context_ttl_seconds: int = 3600

    # Timeouts (seconds)
    file_analysis_timeout: float = 30.0
    capability_timeout: float = 30.0
    llm_timeout: int = 30

    # Content policy
    max_message_length: int = 2000
    repetition_min_messages: int = 10
    repetition_unique_ratio: float = 0.3

    # LLM Configuration (document analysis)
    llm_mode: LLMMode = LLMMode.NONE
    openrouter_api_key: Optional[str] = None
    openrouter_model: str = "anthropic/claude-3-haiku"
    openrouter_base_url: str = "https://openrouter.ai/api/v1"

    # Uploaded files
    upload_dir: str = "./uploads"
    max_analysis_chars: int = 20000

    # Notifications
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_from: str = "noreply@intake.legal"
    smtp_use_tls: bool = True

    # Service info
    service_version: str = "1.0.0"

    class Config:
        env_prefix = ""
        case_sensitive = False
        env_file = ".env"
        env_file_encoding = "utf-8"

    def validate_config(self) -> List[str]:
        """Validate configuration, return list of warnings"""
        warnings = []

        if self.llm_mode == LLMMode.OPENROUTER and not self.openrouter_api_key:
            warnings.append("LLM_MODE=openrouter but OPENROUTER_API_KEY not set")

        if self.llm_mode == LLMMode.NONE:
            warnings.append("LLM_MODE=none - uploaded documents will not be analyzed")

        if self.context_store not in ("redis", "memory"):
            warnings.append(f"Unknown CONTEXT_STORE={self.context_store}, falling back to memory")

        if self.context_ttl_seconds < 60:
            warnings.append("CONTEXT_TTL_SECONDS below 60 - contexts will expire mid-conversation")

        return warnings


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
