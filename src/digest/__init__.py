"""
Digest module.

Builds the weekly best report and renders it as a Markdown digest.
"""

from src.digest.report import (
    WeeklyStats,
    WeeklyBestReport,
    build_weekly_best,
)
from src.digest.generator import (
    DigestGenerator,
    DigestConfig,
    DigestResult,
    generate_digest,
    generate_digest_content,
)

__all__ = [
    "WeeklyStats",
    "WeeklyBestReport",
    "build_weekly_best",
    "DigestGenerator",
    "DigestConfig",
    "DigestResult",
    "generate_digest",
    "generate_digest_content",
]
