"""
Weekly Best - Web API

A small Flask app serving the weekly best ranking, the contributor
leaderboard and the cron trigger that saves the weekly snapshot.

Run with: python -m web.app
Or: cd web && python app.py
"""

import sys
from pathlib import Path
from typing import Optional

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from flask import Flask, g, jsonify, render_template_string, request
from datetime import datetime, timezone
from src.models.scorable_item import ContentKind
from src.pipeline import PipelineConfig, WeeklyBestPipeline
from src.ratelimit import RateLimiter, client_key
from src.scoring import DEFAULT_FORMULA, WINDOW_MODES, WINDOW_ROLLING, WINDOW_WEEK, get_formula_names
from src.storage import ContentStore, DatabaseError, SupabaseStore
from src.config import (
    CRON_SECRET,
    DEBUG,
    POST_FORMULA,
    RATE_LIMIT_MAX_REQUESTS,
    RATE_LIMIT_WINDOW_SECONDS,
    RESOURCE_FORMULA,
    WEEKLY_BEST_LIMIT,
    WINDOW_DAYS,
    is_supabase_configured,
)

app = Flask(__name__)

# Per-process limiter; replace in tests or when running several workers
limiter = RateLimiter(
    max_requests=RATE_LIMIT_MAX_REQUESTS,
    window_seconds=RATE_LIMIT_WINDOW_SECONDS,
)

WEEKLY_BEST_MAX_LIMIT = 20
CONTRIBUTORS_DEFAULT_LIMIT = 10
CONTRIBUTORS_MAX_LIMIT = 100
MAX_DAYS = 365

FETCH_FAILED_MESSAGE = "주간 베스트 콘텐츠를 가져오는데 실패했습니다"
RATE_LIMITED_MESSAGE = "요청이 너무 많습니다"


def get_store() -> Optional[ContentStore]:
    """Get configured Supabase store."""
    if not is_supabase_configured():
        return None
    return SupabaseStore(verbose=DEBUG)


# =============================================================================
# Request Helpers
# =============================================================================

def _int_arg(name: str, default: int, minimum: int, maximum: int) -> int:
    """Read an integer query param, clamped; bad values fall back to default."""
    try:
        value = int(request.args.get(name, default))
    except (TypeError, ValueError):
        return default
    return max(minimum, min(value, maximum))


def _choice_arg(name: str, choices, default: str) -> str:
    value = request.args.get(name, default)
    return value if value in choices else default


def _formula_arg(name: str, kind: str, configured: str) -> str:
    """Formula from the query string; a bad configured default falls back too."""
    choices = get_formula_names(kind)
    default = configured if configured in choices else DEFAULT_FORMULA
    return _choice_arg(name, choices, default)


def _weekly_config(**overrides) -> PipelineConfig:
    """PipelineConfig from the query string."""
    params = {
        "limit": _int_arg("limit", WEEKLY_BEST_LIMIT, 1, WEEKLY_BEST_MAX_LIMIT),
        "window": _choice_arg("window", WINDOW_MODES, WINDOW_WEEK),
        "days": _int_arg("days", WINDOW_DAYS, 1, MAX_DAYS),
        "resource_formula": _formula_arg("resource_formula", ContentKind.RESOURCE, RESOURCE_FORMULA),
        "post_formula": _formula_arg("post_formula", ContentKind.POST, POST_FORMULA),
        "dry_run": True,
        "skip_digest": True,
        "verbose": DEBUG,
    }
    params.update(overrides)
    return PipelineConfig(**params)


def _is_authorized_cron() -> bool:
    if not CRON_SECRET:
        return False
    return request.headers.get("Authorization", "") == f"Bearer {CRON_SECRET}"


# =============================================================================
# Rate Limiting
# =============================================================================

@app.before_request
def apply_rate_limit():
    """Reject /api/ requests over the per-client limit."""
    if not request.path.startswith("/api/"):
        return None

    key = client_key(
        request.path,
        remote_addr=request.remote_addr,
        forwarded_for=request.headers.get("X-Forwarded-For"),
        real_ip=request.headers.get("X-Real-IP"),
    )
    decision = limiter.check(key)
    g.rate_limit = decision

    if not decision.allowed:
        response = jsonify({"success": False, "error": RATE_LIMITED_MESSAGE})
        response.status_code = 429
        response.headers.update(decision.headers())
        return response

    return None


@app.after_request
def add_rate_limit_headers(response):
    decision = g.get("rate_limit")
    if decision is not None and decision.allowed:
        response.headers.update(decision.headers())
    return response


# =============================================================================
# Routes
# =============================================================================

@app.route("/api/health")
def api_health():
    """Liveness check."""
    return jsonify({
        "status": "ok",
        "supabase_configured": is_supabase_configured(),
        "time": datetime.now(timezone.utc).isoformat(),
    })


@app.route("/api/weekly-best", methods=["GET"])
def api_weekly_best():
    """Compute this week's best resources and posts."""
    store = get_store()

    if not store:
        return jsonify({"success": False, "error": "Supabase not configured"}), 500

    pipeline = WeeklyBestPipeline(_weekly_config(), store=store)

    try:
        report = pipeline.build_report()
    except DatabaseError as e:
        print(f"[weekly-best] Fetch failed: {e}")
        return jsonify({"success": False, "error": FETCH_FAILED_MESSAGE}), 500

    return jsonify({"success": True, "data": report.to_dict()})


@app.route("/api/weekly-best", methods=["POST"])
def api_weekly_best_cron():
    """Cron trigger: compute and save the weekly snapshot."""
    if not _is_authorized_cron():
        return jsonify({"success": False, "error": "Unauthorized"}), 401

    store = get_store()

    if not store:
        print("[cron] Supabase not configured")
        return jsonify({"success": False, "error": "Cron job failed"}), 500

    config = PipelineConfig(
        limit=WEEKLY_BEST_LIMIT,
        resource_formula=RESOURCE_FORMULA,
        post_formula=POST_FORMULA,
        skip_digest=True,
        verbose=DEBUG,
    )
    result = WeeklyBestPipeline(config, store=store).run()

    saved = result.save_result is not None and result.save_result.success
    if not saved or result.report is None:
        for error in result.errors:
            print(f"[cron] {error}")
        return jsonify({"success": False, "error": "Cron job failed"}), 500

    return jsonify({
        "success": True,
        "message": "Weekly best saved",
        "data": result.report.to_dict(),
        "duration_seconds": result.duration_seconds,
    })


@app.route("/api/leaderboard/contributors")
def api_contributors():
    """Top contributors over the last N days."""
    store = get_store()

    if not store:
        return jsonify({"success": False, "error": "Supabase not configured"}), 500

    limit = _int_arg("limit", CONTRIBUTORS_DEFAULT_LIMIT, 1, CONTRIBUTORS_MAX_LIMIT)
    config = _weekly_config(
        window=WINDOW_ROLLING,
        candidate_limit=None,
        contributor_limit=limit,
    )

    try:
        report = WeeklyBestPipeline(config, store=store).build_report()
    except DatabaseError as e:
        print(f"[leaderboard] Fetch failed: {e}")
        return jsonify({"success": False, "error": FETCH_FAILED_MESSAGE}), 500

    return jsonify({
        "success": True,
        "data": {
            "periodStart": report.week_start.isoformat(),
            "periodEnd": report.week_end.isoformat(),
            "contributors": [c.to_dict() for c in report.top_contributors],
        },
    })


DIGEST_PREVIEW_TEMPLATE = """\
{% autoescape false -%}
# Weekly Best - {{ report.week_start | format_date }} to {{ report.week_end | format_date }}

## Best Resources
{% for scored in report.best_resources %}
{{ loop.index }}. {{ scored.score | score_badge }} {{ scored.item.title or scored.item.id }}{% if scored.item.author_name %} - by @{{ scored.item.author_name }}{% endif %}
{%- else %}
_Nothing this week._
{%- endfor %}

## Best Posts
{% for scored in report.best_posts %}
{{ loop.index }}. {{ scored.score | score_badge }} {{ scored.item.title or scored.item.id }}{% if scored.item.author_name %} - by @{{ scored.item.author_name }}{% endif %}
{%- else %}
_Nothing this week._
{%- endfor %}
{% endautoescape %}"""


@app.route("/api/weekly-best/digest")
def api_weekly_best_digest():
    """Markdown preview of the current weekly best."""
    store = get_store()

    if not store:
        return jsonify({"success": False, "error": "Supabase not configured"}), 500

    try:
        report = WeeklyBestPipeline(_weekly_config(), store=store).build_report()
    except DatabaseError as e:
        print(f"[digest] Fetch failed: {e}")
        return jsonify({"success": False, "error": FETCH_FAILED_MESSAGE}), 500

    content = render_template_string(DIGEST_PREVIEW_TEMPLATE, report=report)
    return app.response_class(content, mimetype="text/markdown")


@app.template_filter("score_badge")
def score_badge(score):
    """Prefix a score with a badge by tier."""
    if score is None:
        return "[0]"
    if score >= 100:
        return f"🔥 [{score:g}]"
    elif score >= 30:
        return f"⭐ [{score:g}]"
    else:
        return f"[{score:g}]"


@app.template_filter("format_date")
def format_date(dt):
    """Format datetime for display."""
    if not dt:
        return "Unknown"
    if isinstance(dt, str):
        return dt
    return dt.strftime("%b %d, %Y")


if __name__ == "__main__":
    print("=" * 50)
    print("🏆 Weekly Best API")
    print("=" * 50)
    print("Open http://localhost:5001/api/weekly-best in your browser")
    print("Press Ctrl+C to stop")
    print("=" * 50)
    app.run(debug=DEBUG, port=5001)
