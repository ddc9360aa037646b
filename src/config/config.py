"""
Configuration module for Weekly Best.

Loads environment variables from .env file and exposes them as typed configuration values.
Uses python-dotenv for loading and provides safe defaults where appropriate.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env file from project root
# The .env file should be in the root directory (parent of src/)
_project_root = Path(__file__).parent.parent.parent
_env_path = _project_root / ".env"
load_dotenv(_env_path)


# =============================================================================
# Application Environment
# =============================================================================

# Application environment: "development", "staging", or "production"
# Default: "development" for safe local testing
APP_ENV: str = os.getenv("APP_ENV", "development")

# Enable debug mode for verbose output (only in development)
DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"


# =============================================================================
# Supabase Configuration
# =============================================================================

# Project URL, e.g. https://abcd.supabase.co
# Required for production; empty string as default for development
SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")

# Service role key used for server-side reads and the weekly snapshot insert
SUPABASE_SERVICE_KEY: str = os.getenv("SUPABASE_SERVICE_KEY", "")

# Shared secret the scheduler sends as "Authorization: Bearer <secret>"
CRON_SECRET: str = os.getenv("CRON_SECRET", "")


# =============================================================================
# Ranking Configuration
# =============================================================================

# Number of items per kind in the weekly best report
WEEKLY_BEST_LIMIT: int = int(os.getenv("WEEKLY_BEST_LIMIT", "5"))

# Rows fetched per kind before scoring (newest first)
CANDIDATE_LIMIT: int = int(os.getenv("CANDIDATE_LIMIT", "10"))

# Length of the rolling window in days
WINDOW_DAYS: int = int(os.getenv("WINDOW_DAYS", "7"))

# Scoring formula per call site ("primary" or "weekly")
RESOURCE_FORMULA: str = os.getenv("RESOURCE_FORMULA", "primary")
POST_FORMULA: str = os.getenv("POST_FORMULA", "primary")


# =============================================================================
# HTTP / Retry Configuration
# =============================================================================

# HTTP request timeout in seconds
REQUEST_TIMEOUT: int = int(os.getenv("REQUEST_TIMEOUT", "30"))

# Attempts per request (1 = no retry)
RETRY_MAX_ATTEMPTS: int = int(os.getenv("RETRY_MAX_ATTEMPTS", "3"))

# First retry delay in seconds, multiplied on every further retry
RETRY_BASE_DELAY: float = float(os.getenv("RETRY_BASE_DELAY", "1.0"))
RETRY_BACKOFF_MULTIPLIER: float = float(os.getenv("RETRY_BACKOFF_MULTIPLIER", "2.0"))


# =============================================================================
# Rate Limiting
# =============================================================================

# Requests allowed per client per route within one window
RATE_LIMIT_MAX_REQUESTS: int = int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "100"))
RATE_LIMIT_WINDOW_SECONDS: int = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60"))


# =============================================================================
# Helper Functions
# =============================================================================

_KNOWN_FORMULAS = ("primary", "weekly")


def is_production() -> bool:
    """Check if running in production environment."""
    return APP_ENV == "production"


def is_development() -> bool:
    """Check if running in development environment."""
    return APP_ENV == "development"


def is_supabase_configured() -> bool:
    """Check if both Supabase URL and key are set."""
    return bool(SUPABASE_URL and SUPABASE_SERVICE_KEY)


def validate_config() -> list[str]:
    """
    Validate that required configuration is present for production.

    Returns:
        List of missing or invalid configuration keys (empty if all valid).
    """
    errors = []

    if is_production():
        if not SUPABASE_URL:
            errors.append("SUPABASE_URL is required in production")
        if not SUPABASE_SERVICE_KEY:
            errors.append("SUPABASE_SERVICE_KEY is required in production")
        if not CRON_SECRET:
            errors.append("CRON_SECRET is required in production")

    if WEEKLY_BEST_LIMIT < 0:
        errors.append("WEEKLY_BEST_LIMIT cannot be negative")

    if CANDIDATE_LIMIT < 1:
        errors.append("CANDIDATE_LIMIT must be at least 1")

    if WINDOW_DAYS < 1:
        errors.append("WINDOW_DAYS must be at least 1")

    if RESOURCE_FORMULA not in _KNOWN_FORMULAS:
        errors.append(f"RESOURCE_FORMULA must be one of {_KNOWN_FORMULAS}, got {RESOURCE_FORMULA!r}")

    if POST_FORMULA not in _KNOWN_FORMULAS:
        errors.append(f"POST_FORMULA must be one of {_KNOWN_FORMULAS}, got {POST_FORMULA!r}")

    if REQUEST_TIMEOUT < 1:
        errors.append("REQUEST_TIMEOUT must be at least 1 second")

    if RETRY_MAX_ATTEMPTS < 1:
        errors.append("RETRY_MAX_ATTEMPTS must be at least 1")

    if RETRY_BASE_DELAY < 0:
        errors.append("RETRY_BASE_DELAY cannot be negative")

    if RATE_LIMIT_MAX_REQUESTS < 1:
        errors.append("RATE_LIMIT_MAX_REQUESTS must be at least 1")

    if RATE_LIMIT_WINDOW_SECONDS < 1:
        errors.append("RATE_LIMIT_WINDOW_SECONDS must be at least 1")

    return errors


def print_config_summary() -> None:
    """Print a summary of current configuration (safe for logs, no secrets)."""
    print(f"  APP_ENV: {APP_ENV}")
    print(f"  DEBUG: {DEBUG}")
    print(f"  SUPABASE_URL: {SUPABASE_URL or '(not set)'}")
    print(f"  SUPABASE_SERVICE_KEY: {'***' if SUPABASE_SERVICE_KEY else '(not set)'}")
    print(f"  CRON_SECRET: {'***' if CRON_SECRET else '(not set)'}")
    print(f"  WEEKLY_BEST_LIMIT: {WEEKLY_BEST_LIMIT}")
    print(f"  CANDIDATE_LIMIT: {CANDIDATE_LIMIT}")
    print(f"  WINDOW_DAYS: {WINDOW_DAYS}")
    print(f"  RESOURCE_FORMULA: {RESOURCE_FORMULA}")
    print(f"  POST_FORMULA: {POST_FORMULA}")
    print(f"  REQUEST_TIMEOUT: {REQUEST_TIMEOUT}s")
    print(f"  RETRY: {RETRY_MAX_ATTEMPTS} attempts, {RETRY_BASE_DELAY}s x{RETRY_BACKOFF_MULTIPLIER}")
    print(f"  RATE_LIMIT: {RATE_LIMIT_MAX_REQUESTS} req / {RATE_LIMIT_WINDOW_SECONDS}s")
