"""
Tests for the Web API.

Tests the Flask routes, cron authorization, rate limiting, template
filters and error handling.
"""

import pytest
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import patch

# Import the Flask app
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

import web.app as web_app
from web.app import app, score_badge, format_date
from src.models.scorable_item import ContentKind, ScorableItem
from src.ratelimit import RateLimiter
from src.scoring import week_bounds
from src.storage import DatabaseError, MemoryStore, SaveResult
from tests.test_config import EXPECTED, MESSAGES

pytestmark = pytest.mark.web_app


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def fresh_limiter(monkeypatch):
    """Each test gets its own limiter."""
    limiter = RateLimiter(max_requests=1000, window_seconds=60)
    monkeypatch.setattr(web_app, "limiter", limiter)
    return limiter


@pytest.fixture
def client():
    """Flask test client."""
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


@pytest.fixture
def this_week():
    """Start of the current week; always inside both windows and not in the future."""
    return week_bounds()[0]


@pytest.fixture
def live_store(this_week):
    """MemoryStore with items dated this week."""
    return MemoryStore([
        ScorableItem(
            id="res-hot", kind=ContentKind.RESOURCE, bookmark_count=60,
            created_at=this_week, title="Hot Resource", author_id="u1", author_name="alice",
        ),
        ScorableItem(
            id="res-mild", kind=ContentKind.RESOURCE, bookmark_count=2,
            created_at=this_week, title="Mild Resource", author_id="u2", author_name="bob",
        ),
        ScorableItem(
            id="post-1", kind=ContentKind.POST, vote_count=5, comment_count=10,
            created_at=this_week, title="Busy Post", author_id="u2", author_name="bob",
        ),
        ScorableItem(
            id="post-old", kind=ContentKind.POST, vote_count=500,
            created_at=this_week - timedelta(days=30), title="Old Post", author_id="u3",
        ),
    ])


def many_resources(count, created_at, authors=False):
    return [
        ScorableItem(
            id=f"r{i:03d}",
            kind=ContentKind.RESOURCE,
            bookmark_count=i,
            created_at=created_at,
            author_id=f"user-{i:03d}" if authors else None,
        )
        for i in range(count)
    ]


# =============================================================================
# Test Template Filters
# =============================================================================

class TestTemplateFilters:
    """Tests for Jinja2 template filters."""

    def test_score_badge_tiers(self):
        assert score_badge(150) == "🔥 [150]"
        assert score_badge(100) == "🔥 [100]"
        assert score_badge(30) == "⭐ [30]"
        assert score_badge(12.5) == "[12.5]"

    def test_score_badge_none(self):
        assert score_badge(None) == "[0]"

    def test_format_date_with_datetime(self):
        assert format_date(datetime(2025, 12, 25, 10, 30)) == "Dec 25, 2025"

    def test_format_date_with_string(self):
        assert format_date("2025-12-25") == "2025-12-25"

    def test_format_date_with_none(self):
        assert format_date(None) == "Unknown"


# =============================================================================
# Test Health
# =============================================================================

class TestHealth:
    """Tests for /api/health."""

    def test_ok(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.get_json()["status"] == "ok"


# =============================================================================
# Test GET /api/weekly-best
# =============================================================================

class TestWeeklyBest:
    """Tests for GET /api/weekly-best."""

    @patch("web.app.get_store")
    def test_returns_report(self, mock_get_store, client, live_store):
        mock_get_store.return_value = live_store

        response = client.get("/api/weekly-best")
        body = response.get_json()

        assert response.status_code == 200
        assert body["success"] is True
        data = body["data"]
        assert [r["id"] for r in data["bestResources"]] == ["res-hot", "res-mild"]
        assert [p["id"] for p in data["bestPosts"]] == ["post-1"]
        assert data["bestPosts"][0]["score"] == 5 * 2 + 10 * 3
        assert data["stats"]["activeUsers"] == 2

    @patch("web.app.get_store")
    def test_does_not_save(self, mock_get_store, client, live_store):
        mock_get_store.return_value = live_store

        client.get("/api/weekly-best")

        assert live_store.snapshots == []

    @patch("web.app.get_store")
    def test_formula_param(self, mock_get_store, client, live_store):
        mock_get_store.return_value = live_store

        body = client.get("/api/weekly-best?post_formula=weekly").get_json()

        assert body["data"]["formulas"]["post"] == "weekly"
        assert body["data"]["bestPosts"][0]["score"] == 5 * 10 + 10 * 5

    @patch("web.app.get_store")
    def test_unknown_formula_falls_back(self, mock_get_store, client, live_store):
        mock_get_store.return_value = live_store

        body = client.get("/api/weekly-best?resource_formula=bogus").get_json()

        assert body["data"]["formulas"]["resource"] == "primary"

    @patch("web.app.get_store")
    def test_invalid_configured_formula_falls_back(self, mock_get_store, client, live_store):
        """A bad RESOURCE_FORMULA/POST_FORMULA env value still serves JSON."""
        mock_get_store.return_value = live_store

        with patch("web.app.RESOURCE_FORMULA", "daily"), patch("web.app.POST_FORMULA", ""):
            response = client.get("/api/weekly-best")

        assert response.status_code == 200
        body = response.get_json()
        assert body["data"]["formulas"] == {"resource": "primary", "post": "primary"}

    @patch("web.app.get_store")
    def test_query_formula_beats_invalid_configured_one(self, mock_get_store, client, live_store):
        mock_get_store.return_value = live_store

        with patch("web.app.POST_FORMULA", "daily"):
            body = client.get("/api/weekly-best?post_formula=weekly").get_json()

        assert body["data"]["formulas"]["post"] == "weekly"

    @patch("web.app.get_store")
    def test_limit_capped(self, mock_get_store, client, this_week):
        mock_get_store.return_value = MemoryStore(many_resources(30, this_week))
        cap = EXPECTED["web"]["weekly_best_max_limit"]

        body = client.get("/api/weekly-best?limit=50").get_json()

        assert len(body["data"]["bestResources"]) == cap

    @patch("web.app.get_store")
    def test_limit_param(self, mock_get_store, client, this_week):
        mock_get_store.return_value = MemoryStore(many_resources(8, this_week))

        body = client.get("/api/weekly-best?limit=2").get_json()

        assert [r["id"] for r in body["data"]["bestResources"]] == ["r007", "r006"]

    @patch("web.app.get_store")
    def test_bad_limit_uses_default(self, mock_get_store, client, this_week):
        mock_get_store.return_value = MemoryStore(many_resources(8, this_week))

        body = client.get("/api/weekly-best?limit=abc").get_json()

        assert len(body["data"]["bestResources"]) == EXPECTED["config"]["default_limit"]

    @patch("web.app.get_store")
    def test_database_error(self, mock_get_store, client, mock_store):
        mock_store.fetch_items.side_effect = DatabaseError("connection refused")
        mock_get_store.return_value = mock_store

        response = client.get("/api/weekly-best")

        assert response.status_code == 500
        assert response.get_json() == {
            "success": False,
            "error": MESSAGES["web"]["fetch_failed"],
        }

    @patch("web.app.get_store")
    def test_not_configured(self, mock_get_store, client):
        mock_get_store.return_value = None

        response = client.get("/api/weekly-best")

        assert response.status_code == 500
        assert response.get_json()["success"] is False


# =============================================================================
# Test POST /api/weekly-best (cron)
# =============================================================================

class TestWeeklyBestCron:
    """Tests for the cron trigger."""

    @pytest.fixture(autouse=True)
    def cron_secret(self):
        with patch("web.app.CRON_SECRET", "s3cret"):
            yield "s3cret"

    def test_missing_token(self, client):
        response = client.post("/api/weekly-best")

        assert response.status_code == 401
        assert response.get_json()["error"] == MESSAGES["web"]["unauthorized"]

    def test_wrong_token(self, client):
        response = client.post("/api/weekly-best", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_unset_secret_rejects_everything(self, client):
        with patch("web.app.CRON_SECRET", ""):
            response = client.post("/api/weekly-best", headers={"Authorization": "Bearer "})
        assert response.status_code == 401

    @patch("web.app.get_store")
    def test_saves_snapshot(self, mock_get_store, client, live_store, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        mock_get_store.return_value = live_store

        response = client.post("/api/weekly-best", headers={"Authorization": "Bearer s3cret"})
        body = response.get_json()

        assert response.status_code == 200
        assert body["success"] is True
        assert len(live_store.snapshots) == 1
        assert body["data"]["bestResources"][0]["id"] == "res-hot"
        assert not (tmp_path / "digests").exists()

    @patch("web.app.get_store")
    def test_save_failure(self, mock_get_store, client, mock_store):
        mock_store.save_weekly_best.return_value = SaveResult(success=False, error="denied")
        mock_get_store.return_value = mock_store

        response = client.post("/api/weekly-best", headers={"Authorization": "Bearer s3cret"})

        assert response.status_code == 500
        assert response.get_json()["error"] == MESSAGES["web"]["cron_failed"]

    @patch("web.app.get_store")
    def test_fetch_failure(self, mock_get_store, client, mock_store):
        mock_store.fetch_items.side_effect = DatabaseError("down")
        mock_get_store.return_value = mock_store

        response = client.post("/api/weekly-best", headers={"Authorization": "Bearer s3cret"})

        assert response.status_code == 500
        mock_store.save_weekly_best.assert_not_called()

    @patch("web.app.get_store")
    def test_not_configured(self, mock_get_store, client):
        mock_get_store.return_value = None

        response = client.post("/api/weekly-best", headers={"Authorization": "Bearer s3cret"})

        assert response.status_code == 500
        assert response.get_json()["error"] == MESSAGES["web"]["cron_failed"]


# =============================================================================
# Test Contributors
# =============================================================================

class TestContributors:
    """Tests for /api/leaderboard/contributors."""

    @patch("web.app.get_store")
    def test_ranked_contributors(self, mock_get_store, client, live_store):
        mock_get_store.return_value = live_store

        body = client.get("/api/leaderboard/contributors").get_json()

        contributors = body["data"]["contributors"]
        assert [c["user_id"] for c in contributors] == ["u1", "u2"]
        assert contributors[1]["contribution_count"] == 2

    @patch("web.app.get_store")
    def test_default_limit(self, mock_get_store, client, this_week):
        mock_get_store.return_value = MemoryStore(many_resources(30, this_week, authors=True))

        body = client.get("/api/leaderboard/contributors").get_json()

        assert len(body["data"]["contributors"]) == EXPECTED["web"]["contributors_default_limit"]

    @patch("web.app.get_store")
    def test_limit_capped(self, mock_get_store, client, this_week):
        cap = EXPECTED["web"]["contributors_max_limit"]
        mock_get_store.return_value = MemoryStore(many_resources(cap + 20, this_week, authors=True))

        body = client.get("/api/leaderboard/contributors?limit=500").get_json()

        assert len(body["data"]["contributors"]) == cap

    @patch("web.app.get_store")
    def test_days_param(self, mock_get_store, client, live_store):
        mock_get_store.return_value = live_store

        body = client.get("/api/leaderboard/contributors?days=60").get_json()

        assert "u3" in [c["user_id"] for c in body["data"]["contributors"]]

    @patch("web.app.get_store")
    def test_database_error(self, mock_get_store, client, mock_store):
        mock_store.fetch_items.side_effect = DatabaseError("down")
        mock_get_store.return_value = mock_store

        assert client.get("/api/leaderboard/contributors").status_code == 500


# =============================================================================
# Test Digest Preview
# =============================================================================

class TestDigestPreview:
    """Tests for /api/weekly-best/digest."""

    @patch("web.app.get_store")
    def test_markdown(self, mock_get_store, client, live_store):
        mock_get_store.return_value = live_store

        response = client.get("/api/weekly-best/digest")
        text = response.get_data(as_text=True)

        assert response.status_code == 200
        assert response.mimetype == "text/markdown"
        assert text.startswith("# Weekly Best - ")
        assert "1. 🔥 [120] Hot Resource - by @alice" in text
        assert "Busy Post" in text

    @patch("web.app.get_store")
    def test_empty_week(self, mock_get_store, client):
        mock_get_store.return_value = MemoryStore()

        text = client.get("/api/weekly-best/digest").get_data(as_text=True)

        assert text.count("_Nothing this week._") == 2


# =============================================================================
# Test Rate Limiting
# =============================================================================

class TestRateLimiting:
    """Tests for the before_request rate limiter."""

    @pytest.fixture
    def tight_limiter(self, monkeypatch):
        limiter = RateLimiter(max_requests=2, window_seconds=60)
        monkeypatch.setattr(web_app, "limiter", limiter)
        return limiter

    def test_headers_on_allowed_requests(self, client, tight_limiter):
        response = client.get("/api/health")

        assert response.headers["X-RateLimit-Limit"] == "2"
        assert response.headers["X-RateLimit-Remaining"] == "1"
        assert "X-RateLimit-Reset" in response.headers
        assert "Retry-After" not in response.headers

    def test_blocks_over_limit(self, client, tight_limiter):
        client.get("/api/health")
        client.get("/api/health")

        response = client.get("/api/health")

        assert response.status_code == 429
        assert response.get_json()["error"] == MESSAGES["web"]["rate_limited"]
        assert response.headers["X-RateLimit-Remaining"] == "0"
        assert int(response.headers["Retry-After"]) >= 1

    def test_limited_per_route(self, client, tight_limiter):
        client.get("/api/health")
        client.get("/api/health")

        with patch("web.app.get_store", return_value=None):
            response = client.get("/api/weekly-best")

        assert response.status_code != 429

    def test_limited_per_client(self, client, tight_limiter):
        for _ in range(2):
            client.get("/api/health", headers={"X-Forwarded-For": "203.0.113.1"})

        blocked = client.get("/api/health", headers={"X-Forwarded-For": "203.0.113.1"})
        other = client.get("/api/health", headers={"X-Forwarded-For": "203.0.113.2"})

        assert blocked.status_code == 429
        assert other.status_code == 200

    def test_non_api_paths_not_limited(self, client, tight_limiter):
        response = client.get("/not-an-api-route")

        assert response.status_code == 404
        assert "X-RateLimit-Limit" not in response.headers
        assert len(tight_limiter) == 0
