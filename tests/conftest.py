"""
Pytest Configuration and Fixtures

This module provides:
- Timestamped result file generation
- Shared fixtures for all tests (rows, items, stores)
- Test category markers
"""

import pytest
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List
from unittest.mock import Mock

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

# Import test configuration
from tests.test_config import (
    CONFIG, EXPECTED, TEST_DATA, MESSAGES, TEST_CATEGORIES,
    get_all_rows,
)


# =============================================================================
# TEST RESULT FILE CONFIGURATION
# =============================================================================

RESULTS_DIR = PROJECT_ROOT / "test_results"


def get_result_filename() -> str:
    """Generate timestamped result filename."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"test_results_{timestamp}.txt"


# =============================================================================
# PYTEST HOOKS FOR CUSTOM OUTPUT
# =============================================================================

class ResultCollector:
    """Collects test results for the report file."""

    def __init__(self):
        self.results: List[Dict[str, Any]] = []
        self.start_time: datetime = None
        self.end_time: datetime = None

    def add_result(self, nodeid: str, outcome: str, duration: float, message: str = "", keywords=()):
        # Marker category when the test has one, else the module name
        category = next((name for name in TEST_CATEGORIES if name in keywords), None)
        if category is None:
            filename = nodeid.split("::")[0].split("/")[-1]
            category = filename.replace("test_", "").replace(".py", "")
        self.results.append({
            "nodeid": nodeid,
            "name": nodeid.split("::")[-1].replace("test_", "").replace("_", " "),
            "category": category,
            "outcome": outcome,
            "duration": duration,
            "message": message,
        })

    def by_category(self) -> Dict[str, List[Dict[str, Any]]]:
        categories: Dict[str, List[Dict[str, Any]]] = {}
        for result in self.results:
            categories.setdefault(result["category"], []).append(result)
        return categories

    def count(self, outcome: str) -> int:
        return sum(1 for r in self.results if r["outcome"] == outcome)


_collector = ResultCollector()


def pytest_configure(config):
    """Register custom markers and start the collector."""
    for name, info in TEST_CATEGORIES.items():
        config.addinivalue_line("markers", f"{name}: {info['description']}")

    _collector.start_time = datetime.now()


def pytest_runtest_logreport(report):
    """Record the call phase of each test."""
    if report.when == "call":
        _collector.add_result(
            nodeid=report.nodeid,
            outcome=report.outcome,
            duration=report.duration,
            message=str(report.longrepr) if report.longrepr else "",
            keywords=report.keywords,
        )


def pytest_sessionfinish(session, exitstatus):
    """Write the report file after all tests complete."""
    _collector.end_time = datetime.now()
    if not _collector.results:
        return

    RESULTS_DIR.mkdir(exist_ok=True)
    filepath = RESULTS_DIR / get_result_filename()
    filepath.write_text(generate_formatted_report(_collector), encoding="utf-8")
    print(f"\n📄 Test results saved to: {filepath}")


def generate_formatted_report(collector: ResultCollector) -> str:
    """Generate a plain-text test report."""
    total = len(collector.results)
    passed = collector.count("passed")

    lines = [
        "=" * 80,
        "WEEKLY BEST - TEST RESULTS REPORT",
        "=" * 80,
        f"Run Date:     {collector.start_time.strftime('%Y-%m-%d %H:%M:%S')}",
        f"Total Tests:  {total}",
        f"Passed:       {passed} ✓",
        f"Failed:       {collector.count('failed')} ✗",
        f"Skipped:      {collector.count('skipped')} ○",
        f"Pass Rate:    {(passed / max(total, 1) * 100):.1f}%",
        "",
    ]

    for category, results in sorted(collector.by_category().items()):
        info = TEST_CATEGORIES.get(category, {"name": category.replace("_", " ").title()})
        lines.append(f"── {info['name']} ──")
        for result in results:
            status = {"passed": "✓", "failed": "✗"}.get(result["outcome"], "○")
            lines.append(f"  {status} {result['name']:<60} ({result['duration'] * 1000:.0f}ms)")
            if result["outcome"] == "failed" and result["message"]:
                for msg_line in result["message"].split("\n")[:3]:
                    if msg_line.strip():
                        lines.append(f"      └─ {msg_line[:70]}")
        lines.append("")

    lines.append("=" * 80)
    return "\n".join(lines)


# =============================================================================
# SHARED FIXTURES
# =============================================================================

@pytest.fixture
def now():
    """Fixed reference time (a Wednesday)."""
    return CONFIG["now"]


@pytest.fixture
def resource_rows():
    """Sample resource rows as returned by Supabase."""
    return get_all_rows("resource")


@pytest.fixture
def post_rows():
    """Sample post rows as returned by Supabase."""
    return get_all_rows("post")


@pytest.fixture
def resource_items(resource_rows):
    """Sample resources as ScorableItems."""
    from src.models.scorable_item import ContentKind, ScorableItem
    return [ScorableItem.from_row(row, ContentKind.RESOURCE) for row in resource_rows]


@pytest.fixture
def post_items(post_rows):
    """Sample posts as ScorableItems."""
    from src.models.scorable_item import ContentKind, ScorableItem
    return [ScorableItem.from_row(row, ContentKind.POST) for row in post_rows]


@pytest.fixture
def memory_store(resource_items, post_items):
    """MemoryStore preloaded with the sample items."""
    from src.storage import MemoryStore
    return MemoryStore(resource_items + post_items)


@pytest.fixture
def mock_store():
    """Provide a mock content store."""
    from src.storage.base import ContentStore, SaveResult

    store = Mock(spec=ContentStore)
    store.name = "mock_store"
    store.fetch_items.return_value = []
    store.save_weekly_best.return_value = SaveResult(success=True)

    return store


@pytest.fixture
def temp_output_dir(tmp_path):
    """Provide a temporary output directory."""
    output_dir = tmp_path / "output"
    output_dir.mkdir()
    return output_dir


@pytest.fixture
def expected_values():
    """Provide access to expected values."""
    return EXPECTED


@pytest.fixture
def messages():
    """Provide access to expected messages."""
    return MESSAGES
