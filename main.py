#!/usr/bin/env python3
"""
Weekly Best - Weekly engagement ranking for resources and posts.

Command-line entry point for running the full pipeline:
  - Fetch this week's resources and posts from Supabase
  - Score and rank them with the configured formulas
  - Save the weekly best snapshot
  - Write a Markdown digest and print an execution summary

Usage:
    python main.py                        # Run full pipeline
    python main.py --dry-run              # Compute only, no writes
    python main.py --limit 10             # Top 10 per kind
    python main.py --window rolling       # Last 7 days instead of this week

Examples:
    # Development run
    python main.py --dry-run --verbose

    # Weekly cron run with the weekly formulas
    python main.py --resource-formula weekly --post-formula weekly
"""

import argparse
import sys

from src.pipeline import (
    WeeklyBestPipeline,
    PipelineConfig,
    PipelineResult,
)
from src.scoring import WINDOW_MODES, WINDOW_WEEK, get_formula_names
from src.models.scorable_item import ContentKind
from src.config import (
    CANDIDATE_LIMIT,
    POST_FORMULA,
    RESOURCE_FORMULA,
    WEEKLY_BEST_LIMIT,
    WINDOW_DAYS,
    print_config_summary,
    validate_config,
)


def create_parser() -> argparse.ArgumentParser:
    """Create the command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog="weekly-best",
        description="Score, rank and publish the week's best resources and posts.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                             Run full pipeline with defaults
  %(prog)s --dry-run                   Compute the ranking, skip all writes
  %(prog)s --limit 10                  Top 10 resources and posts
  %(prog)s --window rolling --days 14  Rank the last 14 days
  %(prog)s --post-formula weekly       Use the weekly formula for posts
  %(prog)s --skip-digest               Save the snapshot without a digest
  %(prog)s -v --dry-run -l 3           Verbose dry-run, top 3
        """,
    )

    # Core options
    parser.add_argument(
        "--dry-run", "-n",
        action="store_true",
        help="Compute the ranking but skip saving and the digest (no writes)",
    )

    parser.add_argument(
        "--limit", "-l",
        type=int,
        default=None,
        metavar="N",
        help=f"Items per kind in the weekly best (default: {WEEKLY_BEST_LIMIT})",
    )

    parser.add_argument(
        "--candidates",
        type=int,
        default=None,
        metavar="N",
        help=f"Candidates fetched per kind before ranking (default: {CANDIDATE_LIMIT})",
    )

    # Window options
    parser.add_argument(
        "--window", "-w",
        choices=list(WINDOW_MODES),
        default=WINDOW_WEEK,
        help="Calendar week (Monday start) or rolling days (default: week)",
    )

    parser.add_argument(
        "--days", "-d",
        type=int,
        default=None,
        metavar="N",
        help=f"Length of the rolling window in days (default: {WINDOW_DAYS})",
    )

    # Formula options
    parser.add_argument(
        "--resource-formula",
        choices=get_formula_names(ContentKind.RESOURCE),
        default=None,
        help=f"Scoring formula for resources (default: {RESOURCE_FORMULA})",
    )

    parser.add_argument(
        "--post-formula",
        choices=get_formula_names(ContentKind.POST),
        default=None,
        help=f"Scoring formula for posts (default: {POST_FORMULA})",
    )

    # Digest options
    parser.add_argument(
        "--skip-digest",
        action="store_true",
        help="Skip digest generation (snapshot only)",
    )

    parser.add_argument(
        "--output-dir", "-o",
        default="digests",
        metavar="DIR",
        help="Directory for digest files (default: digests)",
    )

    # Output options
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show detailed progress and debug info",
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Only show errors and final summary",
    )

    # Info options
    parser.add_argument(
        "--show-config",
        action="store_true",
        help="Show current configuration and exit",
    )

    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 1.0.0",
    )

    return parser


def show_config() -> None:
    """Display current configuration."""
    print("=" * 60)
    print("Weekly Best Configuration")
    print("=" * 60)
    print_config_summary()

    errors = validate_config()
    if errors:
        print("\nConfiguration warnings:")
        for error in errors:
            print(f"  ⚠️  {error}")
    else:
        print("\n✓ Configuration valid")
    print("=" * 60)


def build_config(args: argparse.Namespace) -> PipelineConfig:
    """Translate parsed arguments into a PipelineConfig."""
    return PipelineConfig(
        limit=WEEKLY_BEST_LIMIT if args.limit is None else args.limit,
        candidate_limit=CANDIDATE_LIMIT if args.candidates is None else args.candidates,
        window=args.window,
        days=WINDOW_DAYS if args.days is None else args.days,
        resource_formula=args.resource_formula or RESOURCE_FORMULA,
        post_formula=args.post_formula or POST_FORMULA,
        dry_run=args.dry_run,
        verbose=args.verbose,
        skip_digest=args.skip_digest,
        digest_output_dir=args.output_dir,
    )


def exit_code_for(result: PipelineResult) -> int:
    """Map a pipeline result to a process exit code."""
    if result.kinds_succeeded == 0:
        # Every kind failed (or the pipeline died before fetching)
        return 1

    if result.report is None:
        # Ranking never produced a report, e.g. an unknown formula
        return 1

    if result.save_result and not result.save_result.success:
        print(f"\n⚠️  Snapshot was not saved: {result.save_result.error}")
        return 1

    return 0


def main(argv: list = None) -> int:
    """
    Main entry point.

    Args:
        argv: Command-line arguments (default: sys.argv[1:]).

    Returns:
        Exit code (0 = success, 1 = error, 130 = interrupted).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    # Handle --show-config
    if args.show_config:
        show_config()
        return 0

    if args.limit is not None and args.limit < 0:
        parser.error("--limit must be >= 0")
    if args.days is not None and args.days < 1:
        parser.error("--days must be >= 1")

    # Print header (unless quiet)
    if not args.quiet:
        print("=" * 60)
        print("Weekly Best Pipeline")
        print("=" * 60)

        if args.dry_run:
            print("Mode: DRY RUN (no snapshot, no digest)")

        if args.verbose:
            print("\nConfiguration:")
            print_config_summary()
            print()

    config = build_config(args)

    # Show effective settings
    if not args.quiet:
        print("Settings:")
        print(f"  Limit: {config.limit}")
        print(f"  Candidates: {config.candidate_limit}")
        print(f"  Window: {config.window}" + (f" ({config.days} days)" if config.window != WINDOW_WEEK else ""))
        print(f"  Resource formula: {config.resource_formula}")
        print(f"  Post formula: {config.post_formula}")
        print(f"  Dry run: {config.dry_run}")
        print(f"  Skip digest: {config.skip_digest}")
        print()

    # Run the pipeline
    try:
        pipeline = WeeklyBestPipeline(config)
        result = pipeline.run()

        # Print summary (errors are always shown)
        if not args.quiet:
            print(result.to_summary())
        elif result.errors:
            for error in result.errors:
                print(f"❌ {error}", file=sys.stderr)

        return exit_code_for(result)

    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
