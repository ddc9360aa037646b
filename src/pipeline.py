"""
Weekly Best Pipeline - Core execution logic.

This module orchestrates the complete weekly run:

    Fetch → Window → Score/Rank → Save snapshot → Digest → Summary

Steps:
1. Resolve the time window (calendar week or rolling N days)
2. Fetch candidate resources and posts from the store (error isolation per kind)
3. Score, rank and aggregate into a WeeklyBestReport
4. Persist the snapshot (unless dry-run)
5. Write the Markdown digest (unless dry-run or skipped)
6. Print execution summary

Design principles:
- Error isolation: one kind failing doesn't stop the other
- Deterministic: identical counters always give the identical report
- Dry-run support: compute without writes (`--dry-run`)
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple
import traceback

from src.models.scorable_item import ContentKind, ScorableItem
from src.scoring import WINDOW_WEEK, get_candidate_selection, resolve_window
from src.storage.base import ContentQuery, ContentStore, SaveResult
from src.storage import SupabaseStore, MemoryStore
from src.config import (
    CANDIDATE_LIMIT,
    POST_FORMULA,
    RESOURCE_FORMULA,
    WEEKLY_BEST_LIMIT,
    WINDOW_DAYS,
    is_supabase_configured,
)
from src.digest import (
    DigestConfig,
    DigestGenerator,
    DigestResult,
    WeeklyBestReport,
    build_weekly_best,
)


# =============================================================================
# Pipeline Result Data Structures
# =============================================================================

@dataclass
class FetchResult:
    """Result of fetching one kind of content."""
    kind: str
    items_fetched: int
    success: bool
    error: Optional[str] = None
    duration_ms: float = 0.0


@dataclass
class PipelineResult:
    """Complete result of a pipeline execution."""
    started_at: datetime
    finished_at: Optional[datetime] = None

    # Fetch results
    fetch_results: List[FetchResult] = field(default_factory=list)

    # Aggregate counts
    total_items_fetched: int = 0
    total_items_ranked: int = 0

    # The computed report (None if building it failed)
    report: Optional[WeeklyBestReport] = None

    # Save results (None if dry-run)
    save_result: Optional[SaveResult] = None
    dry_run: bool = False

    # Digest results (None if dry-run or disabled)
    digest_result: Optional[DigestResult] = None

    # Errors
    errors: List[str] = field(default_factory=list)

    @property
    def kinds_succeeded(self) -> int:
        """Number of kinds that fetched successfully."""
        return sum(1 for r in self.fetch_results if r.success)

    @property
    def kinds_failed(self) -> int:
        """Number of kinds that failed."""
        return sum(1 for r in self.fetch_results if not r.success)

    @property
    def duration_seconds(self) -> float:
        """Total pipeline duration in seconds."""
        if self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return 0.0

    def to_summary(self) -> str:
        """Generate a human-readable summary."""
        lines = [
            "=" * 60,
            "PIPELINE EXECUTION SUMMARY",
            "=" * 60,
            f"Started:  {self.started_at.strftime('%Y-%m-%d %H:%M:%S')}",
            f"Duration: {self.duration_seconds:.2f}s",
            f"Mode:     {'DRY RUN' if self.dry_run else 'LIVE'}",
        ]

        if self.report:
            lines.append(
                f"Window:   {self.report.week_start.strftime('%Y-%m-%d %H:%M')} → "
                f"{self.report.week_end.strftime('%Y-%m-%d %H:%M')}"
            )

        lines.extend(["", "Fetched:"])
        for fr in self.fetch_results:
            status = "✓" if fr.success else "✗"
            lines.append(f"  {status} {fr.kind}: {fr.items_fetched} items ({fr.duration_ms:.0f}ms)")
            if fr.error:
                lines.append(f"      Error: {fr.error}")

        lines.extend([
            "",
            f"Total fetched: {self.total_items_fetched}",
            f"Total ranked:  {self.total_items_ranked}",
        ])

        if self.report:
            lines.extend([
                "",
                f"Best resources ({self.report.resource_formula}):",
            ])
            for scored in self.report.best_resources:
                lines.append(f"  {scored.score:>8g}  {scored.item.title or scored.item.id}")
            lines.append(f"Best posts ({self.report.post_formula}):")
            for scored in self.report.best_posts:
                lines.append(f"  {scored.score:>8g}  {scored.item.title or scored.item.id}")

        if self.save_result and not self.dry_run:
            lines.extend([
                "",
                f"Snapshot: {'saved' if self.save_result.success else 'FAILED'}",
            ])
        elif self.dry_run:
            lines.append("\nSnapshot: SKIPPED (dry-run mode)")

        if self.digest_result and self.digest_result.success and self.digest_result.filepath:
            lines.extend([
                "",
                "Digest:",
                f"  File: {self.digest_result.filepath}",
                f"  Items: {self.digest_result.items_included}",
            ])
        elif self.dry_run:
            lines.append("\nDigest: SKIPPED (dry-run mode)")

        if self.errors:
            lines.extend([
                "",
                "Errors:",
            ])
            for error in self.errors[:5]:  # Show first 5
                lines.append(f"  - {error}")

        lines.append("=" * 60)
        return "\n".join(lines)


# =============================================================================
# Pipeline Configuration
# =============================================================================

@dataclass
class PipelineConfig:
    """
    Configuration for a pipeline run.

    CLI arguments override config file defaults.
    """
    limit: int = WEEKLY_BEST_LIMIT
    candidate_limit: Optional[int] = CANDIDATE_LIMIT  # None = no limit
    window: str = WINDOW_WEEK
    days: int = WINDOW_DAYS
    resource_formula: str = RESOURCE_FORMULA
    post_formula: str = POST_FORMULA
    contributor_limit: int = 5
    dry_run: bool = False
    verbose: bool = False

    # Digest configuration
    digest_output_dir: str = "digests"
    skip_digest: bool = False

    # Reference time (for testing); None = now
    now: Optional[datetime] = None


# =============================================================================
# Pipeline Class
# =============================================================================

class WeeklyBestPipeline:
    """
    Main pipeline for computing and publishing the weekly best.

    Usage:
        config = PipelineConfig(limit=5, dry_run=True)
        pipeline = WeeklyBestPipeline(config)
        result = pipeline.run()
        print(result.to_summary())
    """

    KINDS = (ContentKind.RESOURCE, ContentKind.POST)

    def __init__(self, config: PipelineConfig = None, store: ContentStore = None):
        """
        Initialize the pipeline.

        Args:
            config: Pipeline configuration. Defaults to PipelineConfig().
            store: Content store. Defaults to Supabase when configured,
                otherwise an empty MemoryStore.
        """
        self.config = config or PipelineConfig()
        self.store = store or self._default_store()

    def _default_store(self) -> ContentStore:
        if is_supabase_configured():
            return SupabaseStore(verbose=self.config.verbose)
        return MemoryStore()

    def _log(self, message: str) -> None:
        if self.config.verbose:
            print(message)

    def resolve_window(self) -> Tuple[datetime, datetime]:
        """Concrete (start, end) for this run."""
        return resolve_window(self.config.window, self.config.now, self.config.days)

    @property
    def candidate_limit(self) -> Optional[int]:
        """Rows fetched per kind; never fewer than the top N."""
        if self.config.candidate_limit is None:
            return None
        return max(self.config.candidate_limit, self.config.limit)

    def formula_for(self, kind: str) -> str:
        if kind == ContentKind.POST:
            return self.config.post_formula
        return self.config.resource_formula

    def _query(self, kind: str, start: datetime, end: datetime) -> ContentQuery:
        # Each formula decides which rows are candidates and in what order
        equals, order_by = get_candidate_selection(kind, self.formula_for(kind))
        return ContentQuery(
            kind=kind,
            created_from=start,
            created_to=end,
            limit=self.candidate_limit,
            order_by=order_by,
            descending=True,
            equals=equals,
        )

    def fetch_candidates(self, kind: str, start: datetime, end: datetime) -> List[ScorableItem]:
        """
        Fetch candidate items of one kind.

        Raises:
            DatabaseError: If the store fails.
        """
        self._log(f"[{self.store.name}] Fetching up to {self.candidate_limit or 'all'} {kind}s...")
        return self.store.fetch_items(self._query(kind, start, end))

    def _fetch_kind(
        self, kind: str, start: datetime, end: datetime
    ) -> Tuple[List[ScorableItem], FetchResult]:
        """Fetch one kind with error isolation."""
        start_time = datetime.now()

        try:
            items = self.fetch_candidates(kind, start, end)
            duration_ms = (datetime.now() - start_time).total_seconds() * 1000
            return items, FetchResult(
                kind=kind,
                items_fetched=len(items),
                success=True,
                duration_ms=duration_ms,
            )

        except Exception as e:
            duration_ms = (datetime.now() - start_time).total_seconds() * 1000
            error_msg = f"{type(e).__name__}: {str(e)}"

            if self.config.verbose:
                error_msg += f"\n{traceback.format_exc()}"

            return [], FetchResult(
                kind=kind,
                items_fetched=0,
                success=False,
                error=error_msg,
                duration_ms=duration_ms,
            )

    def _build(
        self,
        candidates: Dict[str, List[ScorableItem]],
        start: datetime,
        end: datetime,
    ) -> WeeklyBestReport:
        return build_weekly_best(
            resources=candidates.get(ContentKind.RESOURCE, []),
            posts=candidates.get(ContentKind.POST, []),
            week_start=start,
            week_end=end,
            limit=self.config.limit,
            resource_formula=self.config.resource_formula,
            post_formula=self.config.post_formula,
            contributor_limit=self.config.contributor_limit,
        )

    def build_report(self) -> WeeklyBestReport:
        """
        Fetch and rank without isolation or side effects.

        Used by request handlers that must fail as a whole.

        Raises:
            DatabaseError: If either fetch fails.
            ValueError: On an unknown formula or window mode.
        """
        start, end = self.resolve_window()
        candidates = {kind: self.fetch_candidates(kind, start, end) for kind in self.KINDS}
        return self._build(candidates, start, end)

    def _generate_digest(self, report: WeeklyBestReport) -> DigestResult:
        self._log(f"Generating digest in {self.config.digest_output_dir}/...")
        generator = DigestGenerator(DigestConfig(output_dir=self.config.digest_output_dir))
        return generator.generate(report)

    def run(self) -> PipelineResult:
        """
        Execute the full pipeline.

        Returns:
            PipelineResult with execution details. Never raises; failures
            are recorded in result.errors.
        """
        result = PipelineResult(started_at=datetime.now(), dry_run=self.config.dry_run)

        try:
            # Step 1: Window
            start, end = self.resolve_window()
            self._log(f"Window: {start.isoformat()} → {end.isoformat()}")

            # Step 2: Fetch each kind independently
            candidates: Dict[str, List[ScorableItem]] = {}
            for kind in self.KINDS:
                items, fetch_result = self._fetch_kind(kind, start, end)
                candidates[kind] = items
                result.fetch_results.append(fetch_result)
                if not fetch_result.success:
                    result.errors.append(f"Fetch {kind} failed: {fetch_result.error.splitlines()[0]}")

            result.total_items_fetched = sum(len(items) for items in candidates.values())

            # Step 3: Score and rank
            report = self._build(candidates, start, end)
            result.report = report
            result.total_items_ranked = report.stats.new_resources + report.stats.new_posts

            # Step 4: Save snapshot (unless dry-run)
            if not self.config.dry_run:
                if result.kinds_succeeded == 0:
                    result.errors.append("Snapshot not saved: no content could be fetched")
                else:
                    self._log(f"Saving snapshot to {self.store.name}...")
                    result.save_result = self.store.save_weekly_best(report)
                    if not result.save_result.success:
                        result.errors.append(f"Save failed: {result.save_result.error}")

                # Step 5: Digest
                if not self.config.skip_digest and result.kinds_succeeded > 0:
                    result.digest_result = self._generate_digest(report)
                    if not result.digest_result.success:
                        result.errors.append(f"Digest failed: {result.digest_result.error}")

        except Exception as e:
            result.errors.append(f"Pipeline error: {str(e)}")
            if self.config.verbose:
                result.errors.append(traceback.format_exc())

        result.finished_at = datetime.now()
        return result


# =============================================================================
# Convenience Functions
# =============================================================================

def run_pipeline(
    limit: int = None,
    window: str = WINDOW_WEEK,
    days: int = None,
    resource_formula: str = None,
    post_formula: str = None,
    dry_run: bool = False,
    verbose: bool = False,
    skip_digest: bool = False,
    digest_output_dir: str = "digests",
    store: ContentStore = None,
) -> PipelineResult:
    """
    Run the pipeline with specified options.

    Convenience function for programmatic use (cron endpoint, scripts).

    Args:
        limit: Top-N per kind (default: config value).
        window: "week" or "rolling".
        days: Rolling window length (default: config value).
        resource_formula: Formula for resources (default: config value).
        post_formula: Formula for posts (default: config value).
        dry_run: If True, skip saving and digest.
        verbose: If True, print detailed progress.
        skip_digest: If True, skip digest generation.
        digest_output_dir: Where digests are written.
        store: Content store override.

    Returns:
        PipelineResult with execution details.
    """
    config = PipelineConfig(
        limit=WEEKLY_BEST_LIMIT if limit is None else limit,
        window=window,
        days=days or WINDOW_DAYS,
        resource_formula=resource_formula or RESOURCE_FORMULA,
        post_formula=post_formula or POST_FORMULA,
        dry_run=dry_run,
        verbose=verbose,
        skip_digest=skip_digest,
        digest_output_dir=digest_output_dir,
    )

    pipeline = WeeklyBestPipeline(config, store=store)
    return pipeline.run()
