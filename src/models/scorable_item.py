"""
Core data model for Weekly Best.

Defines the ScorableItem dataclass (the counter tuple a resource or post
carries when it is read from the database) and ScoredItem, the same item
with its computed engagement score attached.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


class ContentKind:
    """Kinds of content that can be scored."""
    RESOURCE = "resource"
    POST = "post"

    ALL = (RESOURCE, POST)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Return value as a timezone-aware UTC datetime.

    Naive datetimes are assumed to already be in UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO 8601 timestamp as returned by PostgREST.

    Accepts datetime objects, ISO strings (with or without a trailing "Z"),
    and None. Unparseable input returns None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if not isinstance(value, str):
        return None
    try:
        return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError:
        return None


def _embedded_count(value: Any) -> Any:
    """
    Unwrap a PostgREST embedded aggregate like [{"count": 3}].

    Plain numbers pass through; anything else yields None.
    """
    if isinstance(value, list):
        if value and isinstance(value[0], dict):
            return value[0].get("count")
        return None
    if isinstance(value, dict):
        return value.get("count")
    return value


def _first_present(row: Dict[str, Any], *keys: str) -> Any:
    """Return the first non-None value among keys in row."""
    for key in keys:
        if row.get(key) is not None:
            return row[key]
    return None


def _counter(row: Dict[str, Any], embedded_key: str, *flat_keys: str) -> Any:
    """Read a counter, preferring the embedded aggregate over flat columns."""
    if row.get(embedded_key) is not None:
        return _embedded_count(row[embedded_key])
    return _first_present(row, *flat_keys)


@dataclass
class ScorableItem:
    """
    The minimal counter tuple needed to compute an engagement score.

    Counters are stored as received. They are not validated here; the
    scorer treats missing, negative, or non-numeric counters as zero.

    Attributes:
        id: Opaque identifier of the resource or post.
        kind: ContentKind.RESOURCE or ContentKind.POST.
        view_count: Number of views.
        vote_count: Net votes (may be negative).
        comment_count: Number of comments (posts only).
        bookmark_count: Number of bookmarks.
        ratings: Individual rating values (0 or more).
        created_at: Creation time, used only for the time window and tie-break.
        title: Display title.
        author_id: Id of the author profile.
        author_name: Username of the author.
    """

    id: str
    kind: str
    view_count: Any = 0
    vote_count: Any = 0
    comment_count: Any = 0
    bookmark_count: Any = 0
    ratings: List[Any] = field(default_factory=list)
    created_at: Optional[datetime] = None

    # Display-only fields, never used in scoring
    title: str = ""
    author_id: Optional[str] = None
    author_name: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate identity fields and normalize the timestamp."""
        self.validate()
        self.created_at = ensure_utc(self.created_at)
        if self.ratings is None:
            self.ratings = []

    def validate(self) -> None:
        """
        Validate that the item can be identified and dispatched.

        Raises:
            ValueError: If validation fails.
        """
        errors = []

        if self.id is None or not str(self.id).strip():
            errors.append("id is required and cannot be empty")

        if self.kind not in ContentKind.ALL:
            errors.append(f"kind must be one of {ContentKind.ALL}, got {self.kind!r}")

        if errors:
            raise ValueError(f"ScorableItem validation failed: {'; '.join(errors)}")

    @classmethod
    def from_row(cls, row: Dict[str, Any], kind: str) -> "ScorableItem":
        """
        Create a ScorableItem from a Supabase row.

        Understands both flat counter columns and embedded aggregates, e.g.
        ``{"bookmarks": [{"count": 3}], "ratings": [{"rating": 4}]}``.

        Args:
            row: Row dict as returned by PostgREST.
            kind: ContentKind of the row.

        Returns:
            New ScorableItem instance.
        """
        profile = row.get("profiles") or {}
        if isinstance(profile, list):
            profile = profile[0] if profile else {}

        ratings = []
        for entry in row.get("ratings") or []:
            if isinstance(entry, dict):
                ratings.append(entry.get("rating"))
            else:
                ratings.append(entry)

        raw_id = row.get("id")

        return cls(
            id=str(raw_id) if raw_id is not None else "",
            kind=kind,
            view_count=_first_present(row, "view_count", "views"),
            vote_count=_counter(row, "votes", "upvotes", "vote_count"),
            comment_count=_counter(row, "comments", "comment_count"),
            bookmark_count=_counter(row, "bookmarks", "bookmark_count"),
            ratings=ratings,
            created_at=parse_timestamp(row.get("created_at")),
            title=row.get("title") or "",
            author_id=_first_present(row, "author_id", "user_id", "created_by")
            or profile.get("id"),
            author_name=profile.get("username"),
        )

    def __str__(self) -> str:
        """Human-readable string representation."""
        return f"[{self.kind}] {self.title or self.id}"


@dataclass
class ScoredItem:
    """
    A ScorableItem with its computed engagement score.

    Ephemeral: built per request and discarded once serialized.
    """

    item: ScorableItem
    score: float

    @property
    def id(self) -> str:
        return self.item.id

    @property
    def kind(self) -> str:
        return self.item.kind

    @property
    def created_at(self) -> Optional[datetime]:
        return self.item.created_at

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to the JSON shape served by the API.

        Counters are reported after normalization so the payload never
        carries negative or missing values.
        """
        # Local import keeps models free of a module-level dependency on scoring
        from src.scoring.scorer import average_rating, normalize_count, normalize_ratings

        ratings = normalize_ratings(self.item.ratings)
        return {
            "id": self.item.id,
            "kind": self.item.kind,
            "title": self.item.title,
            "authorId": self.item.author_id,
            "authorName": self.item.author_name,
            "viewCount": normalize_count(self.item.view_count),
            "voteCount": normalize_count(self.item.vote_count),
            "commentCount": normalize_count(self.item.comment_count),
            "bookmarkCount": normalize_count(self.item.bookmark_count),
            "ratingCount": len(ratings),
            "averageRating": average_rating(ratings),
            "score": self.score,
            "createdAt": self.item.created_at.isoformat() if self.item.created_at else None,
        }

    def __str__(self) -> str:
        return f"{self.item} (score: {self.score:g})"
