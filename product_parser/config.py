"""
Configuration management for the Product URL Parser.
Handles environment variables and engine settings.
"""
import os
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


class Config:
    """Application configuration loaded from environment variables."""

    # Server settings
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = os.getenv("LOG_FORMAT", "json")  # json or console

    # Network timeouts (seconds)
    SHORTENER_TIMEOUT: float = float(os.getenv("SHORTENER_TIMEOUT", "5"))
    SIMPLE_TIMEOUT: float = float(os.getenv("SIMPLE_TIMEOUT", "5"))
    ENHANCED_TIMEOUT: float = float(os.getenv("ENHANCED_TIMEOUT", "8"))
    REMOTE_RENDER_TIMEOUT: float = float(os.getenv("REMOTE_RENDER_TIMEOUT", "12"))

    # Remote rendering / extraction proxy
    # Loaded from environment variables, NEVER hardcoded
    REMOTE_RENDER_URL: Optional[str] = os.getenv("REMOTE_RENDER_URL")
    REMOTE_RENDER_API_KEY: Optional[str] = os.getenv("REMOTE_RENDER_API_KEY")

    # Result cache
    CACHE_TTL_SECONDS: float = float(os.getenv("CACHE_TTL_SECONDS", "900"))
    CACHE_MAX_SIZE: int = int(os.getenv("CACHE_MAX_SIZE", "100"))

    # Escalation thresholds
    ESCALATION_THRESHOLD: float = float(os.getenv("ESCALATION_THRESHOLD", "0.6"))
    REMOTE_RENDER_ESCALATION_THRESHOLD: float = float(
        os.getenv("REMOTE_RENDER_ESCALATION_THRESHOLD", "0.6")
    )

    @classmethod
    def is_remote_render_configured(cls) -> bool:
        """Check if the remote rendering proxy endpoint is configured."""
        return bool(cls.REMOTE_RENDER_URL)


config = Config()
