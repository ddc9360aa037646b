"""
Supabase storage backend for Weekly Best.

Reads counters and writes weekly snapshots through Supabase's REST
interface (PostgREST). Query execution, row-level security and auth stay
in Supabase; this class only builds requests and parses rows.

PostgREST Documentation: https://postgrest.org/en/stable/references/api.html

=============================================================================
TABLES USED
=============================================================================

| Table        | Access | Columns / embeds used                                  |
|--------------|--------|--------------------------------------------------------|
| resources    | read   | id, title, view_count, upvotes, created_at, user_id,   |
|              |        | profiles(id, username), bookmarks(count), ratings(rating)|
| posts        | read   | id, title, view_count, upvotes, created_at, user_id,   |
|              |        | profiles(id, username), votes(count), comments(count), |
|              |        | bookmarks(count)                                       |
| weekly_best  | insert | week_start, week_end, data (jsonb), created_at         |

=============================================================================
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import requests

from src.config import (
    SUPABASE_URL,
    SUPABASE_SERVICE_KEY,
    REQUEST_TIMEOUT,
)
from src.models.scorable_item import ContentKind, ScorableItem
from src.scoring.scorer import normalize_count
from src.services.retry import BackoffPolicy, retry_with_backoff
from src.storage.base import ContentQuery, ContentStore, DatabaseError, SaveResult


class TransientHTTPError(requests.HTTPError):
    """A 5xx or 429 response; worth retrying."""


def _raise_for_status(response: requests.Response) -> None:
    """Like raise_for_status, but marks retryable statuses."""
    if response.status_code >= 500 or response.status_code == 429:
        raise TransientHTTPError(
            f"{response.status_code} from {response.url}", response=response
        )
    response.raise_for_status()


RETRYABLE_ERRORS = (
    requests.ConnectionError,
    requests.Timeout,
    TransientHTTPError,
)


class SupabaseStore(ContentStore):
    """
    PostgREST-backed content store.

    Configuration is pulled from environment variables via src.config:
    - SUPABASE_URL: Project URL
    - SUPABASE_SERVICE_KEY: Service role key
    """

    TABLES = {
        ContentKind.RESOURCE: "resources",
        ContentKind.POST: "posts",
    }

    SELECTS = {
        ContentKind.RESOURCE: (
            "*,profiles!resources_user_id_fkey(id,username),"
            "bookmarks(count),ratings(rating)"
        ),
        ContentKind.POST: (
            "*,profiles!posts_user_id_fkey(id,username),"
            "votes(count),comments(count),bookmarks(count)"
        ),
    }

    SNAPSHOT_TABLE = "weekly_best"

    def __init__(
        self,
        url: str = None,
        service_key: str = None,
        policy: BackoffPolicy = None,
        session: requests.Session = None,
        sleep: Callable[[float], None] = None,
        verbose: bool = False,
    ):
        """
        Initialize SupabaseStore.

        Args:
            url: Project URL. Defaults to config.SUPABASE_URL.
            service_key: API key. Defaults to config.SUPABASE_SERVICE_KEY.
            policy: Retry schedule for every HTTP call.
            session: requests.Session to use (injectable for tests).
            sleep: Sleep function used between retries.
            verbose: Print retries and skipped rows.
        """
        # Use provided values, or fall back to config if None (not empty string)
        self.url = (url if url is not None else SUPABASE_URL).rstrip("/")
        self.service_key = service_key if service_key is not None else SUPABASE_SERVICE_KEY
        self.policy = policy or BackoffPolicy()
        self.session = session or requests.Session()
        self.verbose = verbose
        self._sleep = sleep

        # Rows that could not be turned into items during the last fetch
        self.last_skipped = 0

    @property
    def name(self) -> str:
        return "supabase"

    @property
    def _rest_url(self) -> str:
        return f"{self.url}/rest/v1"

    @property
    def _headers(self) -> Dict[str, str]:
        return {
            "apikey": self.service_key,
            "Authorization": f"Bearer {self.service_key}",
            "Content-Type": "application/json",
        }

    def _validate_config(self) -> None:
        """Validate that required configuration is present."""
        if not self.url:
            raise DatabaseError("SUPABASE_URL is not configured")
        if not self.service_key:
            raise DatabaseError("SUPABASE_SERVICE_KEY is not configured")

    def _on_retry(self, attempt: int, error: BaseException, delay: float) -> None:
        if self.verbose:
            print(f"[{self.name}] Attempt {attempt} failed ({error}); retrying in {delay:.1f}s")

    def _request(self, method: str, table: str, **kwargs) -> requests.Response:
        """Perform an HTTP request with retry; raise DatabaseError on failure."""
        url = f"{self._rest_url}/{table}"

        def call() -> requests.Response:
            response = self.session.request(
                method,
                url,
                headers=self._headers,
                timeout=REQUEST_TIMEOUT,
                **kwargs,
            )
            _raise_for_status(response)
            return response

        retry_kwargs: Dict[str, Any] = {
            "policy": self.policy,
            "retry_on": RETRYABLE_ERRORS,
            "on_retry": self._on_retry,
        }
        if self._sleep is not None:
            retry_kwargs["sleep"] = self._sleep

        result = retry_with_backoff(call, **retry_kwargs)

        if result.failed:
            raise DatabaseError(
                f"{method} {table} failed after {result.attempts} attempt(s): {result.error}"
            ) from result.error

        return result.value

    # =========================================================================
    # ContentStore Interface Implementation
    # =========================================================================

    def fetch_items(self, query: ContentQuery) -> List[ScorableItem]:
        """
        Fetch rows for query.kind and convert them to ScorableItems.

        Rows that cannot be converted (missing id) are skipped and counted
        in last_skipped.

        Raises:
            DatabaseError: On configuration, network or HTTP errors.
        """
        self._validate_config()

        if query.select is None:
            query = query.with_select(self.SELECTS[query.kind])

        response = self._request("GET", self.TABLES[query.kind], params=query.to_params())

        try:
            rows = response.json()
        except ValueError as e:
            raise DatabaseError(f"Invalid JSON from {self.TABLES[query.kind]}: {e}") from e

        if not isinstance(rows, list):
            raise DatabaseError(f"Expected a list of rows, got {type(rows).__name__}")

        items = []
        self.last_skipped = 0
        for row in rows:
            try:
                items.append(ScorableItem.from_row(row, query.kind))
            except (ValueError, TypeError, AttributeError) as e:
                self.last_skipped += 1
                if self.verbose:
                    print(f"[{self.name}] Skipping invalid {query.kind} row: {e}")

        return items

    def save_weekly_best(self, report) -> SaveResult:
        """
        Insert the snapshot into the weekly_best table.

        Returns:
            SaveResult; failures are reported, not raised.
        """
        try:
            self._validate_config()
            payload = {
                "week_start": report.week_start.isoformat(),
                "week_end": report.week_end.isoformat(),
                "data": report.to_dict(),
                "created_at": datetime.now(timezone.utc).isoformat(),
            }
            self._request("POST", self.SNAPSHOT_TABLE, json=payload)
            return SaveResult(success=True)
        except DatabaseError as e:
            return SaveResult(success=False, error=str(e))


class MemoryStore(ContentStore):
    """
    In-memory store for testing, development and dry runs.

    Data is kept in memory and lost when the process ends.
    """

    def __init__(self, items: Optional[List[ScorableItem]] = None):
        self._items: List[ScorableItem] = list(items or [])
        self.snapshots: list = []

    @property
    def name(self) -> str:
        return "memory"

    def add_items(self, items: List[ScorableItem]) -> None:
        self._items.extend(items)

    def fetch_items(self, query: ContentQuery) -> List[ScorableItem]:
        """
        Apply kind, date, order and limit filters in memory.

        Equality filters name database columns that items do not carry,
        so they are not applied here.
        """
        items = [item for item in self._items if query.matches(item)]

        if query.order_by == "created_at":
            dated = [i for i in items if i.created_at is not None]
            undated = [i for i in items if i.created_at is None]
            dated.sort(key=lambda i: i.created_at, reverse=query.descending)
            items = dated + undated
        elif query.order_by == "view_count":
            items.sort(key=lambda i: normalize_count(i.view_count), reverse=query.descending)

        if query.limit is not None:
            items = items[: query.limit]

        return items

    def save_weekly_best(self, report) -> SaveResult:
        self.snapshots.append(report)
        return SaveResult(success=True)

    def clear(self) -> None:
        """Clear all items and snapshots (for testing)."""
        self._items.clear()
        self.snapshots.clear()

    def count(self) -> int:
        """Return number of stored items (for testing)."""
        return len(self._items)
