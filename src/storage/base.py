"""
Base storage abstraction for Weekly Best.

Defines the interface the ranking pipeline uses to read counters and to
persist weekly snapshots. Query execution itself belongs to the database;
the store only describes what it wants through ContentQuery.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from src.models.scorable_item import ContentKind, ScorableItem, ensure_utc


class DatabaseError(Exception):
    """Raised when the backing database cannot serve a request."""


# =============================================================================
# Query Value Object
# =============================================================================

@dataclass
class ContentQuery:
    """
    Filter set for fetching scorable content.

    Built up in plain Python and translated once, by to_params(), into
    PostgREST query parameters.

    Attributes:
        kind: ContentKind to fetch.
        created_from: Inclusive lower bound on created_at.
        created_to: Inclusive upper bound on created_at.
        limit: Maximum rows (None = no limit).
        order_by: Column to order by.
        descending: Sort direction.
        equals: Extra equality filters, e.g. {"is_published": True}.
        select: PostgREST select expression (None = "*").
    """
    kind: str
    created_from: Optional[datetime] = None
    created_to: Optional[datetime] = None
    limit: Optional[int] = None
    order_by: str = "created_at"
    descending: bool = True
    equals: Dict[str, Any] = field(default_factory=dict)
    select: Optional[str] = None

    def __post_init__(self) -> None:
        if self.kind not in ContentKind.ALL:
            raise ValueError(f"kind must be one of {ContentKind.ALL}, got {self.kind!r}")
        if self.limit is not None and self.limit < 0:
            raise ValueError(f"limit must be >= 0, got {self.limit}")
        self.created_from = ensure_utc(self.created_from)
        self.created_to = ensure_utc(self.created_to)

    def with_select(self, select: str) -> "ContentQuery":
        """Return a copy using the given select expression."""
        return ContentQuery(
            kind=self.kind,
            created_from=self.created_from,
            created_to=self.created_to,
            limit=self.limit,
            order_by=self.order_by,
            descending=self.descending,
            equals=dict(self.equals),
            select=select,
        )

    def to_params(self) -> List[Tuple[str, str]]:
        """
        Translate to PostgREST query parameters.

        Returned as a list of pairs because created_at may appear twice.
        """
        params: List[Tuple[str, str]] = [("select", self.select or "*")]

        if self.created_from is not None:
            params.append(("created_at", f"gte.{self.created_from.isoformat()}"))
        if self.created_to is not None:
            params.append(("created_at", f"lte.{self.created_to.isoformat()}"))

        for column, value in sorted(self.equals.items()):
            # PostgREST matches NULL with "is", never with "eq"
            operator = "is" if value is None else "eq"
            params.append((column, f"{operator}.{_format_value(value)}"))

        direction = "desc" if self.descending else "asc"
        params.append(("order", f"{self.order_by}.{direction}"))

        if self.limit is not None:
            params.append(("limit", str(self.limit)))

        return params

    def matches(self, item: ScorableItem) -> bool:
        """
        Evaluate the kind and date filters against an in-memory item.

        Equality filters refer to database columns and are not evaluated.
        """
        if item.kind != self.kind:
            return False
        if self.created_from is not None or self.created_to is not None:
            if item.created_at is None:
                return False
            if self.created_from is not None and item.created_at < self.created_from:
                return False
            if self.created_to is not None and item.created_at > self.created_to:
                return False
        return True


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


# =============================================================================
# Results
# =============================================================================

@dataclass
class SaveResult:
    """
    Result of persisting a weekly snapshot.

    Attributes:
        success: Whether the snapshot was stored.
        error: Error message if it was not.
    """
    success: bool
    error: Optional[str] = None

    def __str__(self) -> str:
        if self.success:
            return "SaveResult(success)"
        return f"SaveResult(failed: {self.error})"


# =============================================================================
# Store Interface
# =============================================================================

class ContentStore(ABC):
    """
    Abstract base class for content stores.

    Implementations must provide methods for:
    - Fetching scorable items matching a ContentQuery
    - Persisting a weekly best snapshot
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """
        Return the name of this store.

        Used in progress output and summaries.
        """
        pass

    @abstractmethod
    def fetch_items(self, query: ContentQuery) -> List[ScorableItem]:
        """
        Fetch items matching the query.

        Args:
            query: Filter set to apply.

        Returns:
            List of ScorableItem instances.

        Raises:
            DatabaseError: If the backend cannot be reached or rejects the query.
        """
        pass

    @abstractmethod
    def save_weekly_best(self, report) -> SaveResult:
        """
        Persist a weekly best snapshot.

        Args:
            report: WeeklyBestReport to store.

        Returns:
            SaveResult describing the outcome.
        """
        pass

    def __str__(self) -> str:
        return f"ContentStore({self.name})"

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
