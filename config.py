#!/usr/bin/env python3
"""
Configuration Module - Centralized configuration for Canvas Participation Verify

Loads and validates all configuration from environment variables.
"""

import os
from typing import Optional, List
from dataclasses import dataclass, field
from dotenv import load_dotenv

load_dotenv()

DEFAULT_SESSION_KEYS = ["session1", "session2", "session3"]


@dataclass
class CanvasConfig:
    """Canvas API configuration."""
    api_url: str = ""
    api_key: str = ""
    course_id: str = ""
    timeout: int = 15  # seconds

    def is_valid(self) -> bool:
        return bool(self.api_url and self.api_key)


@dataclass
class ReconcileConfig:
    """Participant reconciliation settings."""
    match_threshold: float = 0.6
    short_duration_minutes: int = 30
    session_keys: List[str] = field(default_factory=lambda: list(DEFAULT_SESSION_KEYS))

    def is_valid(self) -> bool:
        return 0.0 <= self.match_threshold <= 1.0 and bool(self.session_keys)


@dataclass
class GradingConfig:
    """Submission fetching settings."""
    fetch_workers: int = 8
    page_size: int = 100


@dataclass
class CacheConfig:
    """Response cache location (empty = in-memory only)."""
    directory: str = ""


@dataclass
class LoggingConfig:
    """Logging settings for CLI entry points."""
    level: str = "INFO"


@dataclass
class Config:
    """Main configuration container."""
    canvas: CanvasConfig = field(default_factory=CanvasConfig)
    reconcile: ReconcileConfig = field(default_factory=ReconcileConfig)
    grading: GradingConfig = field(default_factory=GradingConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _parse_float(value: str, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _parse_int(value: str, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def load_config() -> Config:
    """
    Load configuration from environment variables.

    Returns:
        Config object with all settings
    """
    config = Config()

    # Canvas
    config.canvas.api_url = os.getenv("CANVAS_API_URL", "https://yourschool.instructure.com")
    config.canvas.api_key = os.getenv("CANVAS_API_KEY", "")
    config.canvas.course_id = os.getenv("CANVAS_COURSE_ID", "")
    config.canvas.timeout = _parse_int(os.getenv("CANVAS_TIMEOUT", "15"), 15)

    # Reconciliation
    config.reconcile.match_threshold = _parse_float(os.getenv("MATCH_THRESHOLD", "0.6"), 0.6)
    config.reconcile.short_duration_minutes = _parse_int(os.getenv("SHORT_DURATION_MINUTES", "30"), 30)
    sessions_str = os.getenv("SESSION_KEYS", "")
    sessions = [s.strip() for s in sessions_str.split(",") if s.strip()]
    if sessions:
        config.reconcile.session_keys = sessions

    # Grading
    config.grading.fetch_workers = max(1, _parse_int(os.getenv("SUBMISSION_FETCH_WORKERS", "8"), 8))
    config.grading.page_size = _parse_int(os.getenv("SUBMISSIONS_PAGE_SIZE", "100"), 100)

    # Cache
    config.cache.directory = os.getenv("CACHE_DIR", "")

    # Logging
    config.logging.level = os.getenv("LOG_LEVEL", "INFO").upper()

    return config


def validate_config(config: Config, require_canvas: bool = True) -> List[str]:
    """
    Validate configuration and return list of errors.

    Args:
        config: Config object to validate
        require_canvas: Whether Canvas credentials are mandatory

    Returns:
        List of error messages (empty if valid)
    """
    errors = []

    if require_canvas and not config.canvas.is_valid():
        errors.append("Canvas API not configured (CANVAS_API_URL and CANVAS_API_KEY required)")

    if not config.reconcile.is_valid():
        errors.append("MATCH_THRESHOLD must be between 0 and 1 and SESSION_KEYS must not be empty")

    return errors


def print_config_status(config: Config):
    """Print configuration status for debugging."""
    print("Configuration Status")
    print("=" * 50)

    print(f"\nCanvas API:")
    print(f"  URL: {config.canvas.api_url}")
    print(f"  Key: {'*' * 20}..." if config.canvas.api_key else "  Key: NOT SET")
    print(f"  Course: {config.canvas.course_id or 'NOT SET'}")
    print(f"  Status: {'OK' if config.canvas.is_valid() else 'MISSING'}")

    print(f"\nReconciliation:")
    print(f"  Match Threshold: {config.reconcile.match_threshold}")
    print(f"  Short Duration: {config.reconcile.short_duration_minutes} min")
    print(f"  Sessions: {', '.join(config.reconcile.session_keys)}")

    print(f"\nGrading:")
    print(f"  Fetch Workers: {config.grading.fetch_workers}")

    print(f"\nCache:")
    print(f"  Directory: {config.cache.directory or 'in-memory'}")

    print(f"\nLog Level: {config.logging.level}")


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """
    Get the global configuration instance.

    Returns:
        Config object (loaded on first call)
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


# =============================================================================
# MAIN (for testing)
# =============================================================================

if __name__ == "__main__":
    config = get_config()
    print_config_status(config)

    errors = validate_config(config)
    if errors:
        print("\nConfiguration Errors:")
        for error in errors:
            print(f"  - {error}")
    else:
        print("\nConfiguration is valid!")
