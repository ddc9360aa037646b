"""
Configuration module.

Handles environment variables, Supabase credentials, and ranking settings.
"""

from src.config.config import (
    APP_ENV,
    DEBUG,
    SUPABASE_URL,
    SUPABASE_SERVICE_KEY,
    CRON_SECRET,
    WEEKLY_BEST_LIMIT,
    CANDIDATE_LIMIT,
    WINDOW_DAYS,
    RESOURCE_FORMULA,
    POST_FORMULA,
    REQUEST_TIMEOUT,
    RETRY_MAX_ATTEMPTS,
    RETRY_BASE_DELAY,
    RETRY_BACKOFF_MULTIPLIER,
    RATE_LIMIT_MAX_REQUESTS,
    RATE_LIMIT_WINDOW_SECONDS,
    is_production,
    is_development,
    is_supabase_configured,
    validate_config,
    print_config_summary,
)

__all__ = [
    "APP_ENV",
    "DEBUG",
    "SUPABASE_URL",
    "SUPABASE_SERVICE_KEY",
    "CRON_SECRET",
    "WEEKLY_BEST_LIMIT",
    "CANDIDATE_LIMIT",
    "WINDOW_DAYS",
    "RESOURCE_FORMULA",
    "POST_FORMULA",
    "REQUEST_TIMEOUT",
    "RETRY_MAX_ATTEMPTS",
    "RETRY_BASE_DELAY",
    "RETRY_BACKOFF_MULTIPLIER",
    "RATE_LIMIT_MAX_REQUESTS",
    "RATE_LIMIT_WINDOW_SECONDS",
    "is_production",
    "is_development",
    "is_supabase_configured",
    "validate_config",
    "print_config_summary",
]
