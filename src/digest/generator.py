"""
Weekly Digest Generator for Weekly Best.

Renders a WeeklyBestReport as a human-readable Markdown digest.

Format: Markdown (.md)
Why Markdown:
1. Human-readable as plain text
2. Renders nicely in GitHub, email clients, Notion, etc.
3. Easy to convert to HTML or post to a chat channel

Output: digests/weekly-YYYY-MM-DD.md (date = week start)
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from src.digest.report import WeeklyBestReport
from src.models.scorable_item import ScoredItem


# =============================================================================
# Digest Configuration
# =============================================================================

@dataclass
class DigestConfig:
    """
    Configuration for digest generation.

    Attributes:
        output_dir: Directory to write digest files.
        title_width: Maximum title length before truncation.
        write_empty: Whether to write a file when the report has no items.
    """
    output_dir: str = "digests"
    title_width: int = 80
    write_empty: bool = False


# =============================================================================
# Digest Result
# =============================================================================

@dataclass
class DigestResult:
    """
    Result of digest generation.

    Attributes:
        success: Whether digest was generated successfully.
        filepath: Path to the generated digest file.
        items_included: Number of ranked items in the digest.
        error: Error message if generation failed or nothing was written.
    """
    success: bool
    filepath: Optional[str] = None
    items_included: int = 0
    error: Optional[str] = None

    @property
    def filename(self) -> Optional[str]:
        return Path(self.filepath).name if self.filepath else None


# =============================================================================
# Digest Generator
# =============================================================================

class DigestGenerator:
    """
    Writes weekly digest files from a report.

    Usage:
        generator = DigestGenerator(DigestConfig(output_dir="digests"))
        result = generator.generate(report)
        print(f"Digest saved to: {result.filepath}")
    """

    def __init__(self, config: DigestConfig = None):
        self.config = config or DigestConfig()

    def generate(self, report: WeeklyBestReport, date: datetime = None) -> DigestResult:
        """
        Render and write the digest.

        Args:
            report: The weekly report to render.
            date: Generation time shown in the header. Defaults to now.

        Returns:
            DigestResult with success status and file path.
        """
        if date is None:
            date = datetime.now()

        items_included = len(report.best_resources) + len(report.best_posts)

        if report.is_empty and not self.config.write_empty:
            return DigestResult(
                success=True,
                items_included=0,
                error="No items found for digest",
            )

        try:
            content = self.render(report, date)
            filepath = self._write_file(content, report.week_start)
            return DigestResult(
                success=True,
                filepath=str(filepath),
                items_included=items_included,
            )
        except OSError as e:
            return DigestResult(success=False, error=str(e))

    def render(self, report: WeeklyBestReport, date: datetime) -> str:
        """Render the report to Markdown."""
        lines = []

        lines.append(
            f"# Weekly Best - {report.week_start.strftime('%Y-%m-%d')} "
            f"to {report.week_end.strftime('%Y-%m-%d')}"
        )
        lines.append("")
        lines.append(f"*Generated on {date.strftime('%B %d, %Y at %H:%M')}*")
        lines.append("")

        lines.extend(self._generate_summary(report))
        lines.extend(self._generate_section("Best Resources", report.best_resources, report.resource_formula))
        lines.extend(self._generate_section("Best Posts", report.best_posts, report.post_formula))
        lines.extend(self._generate_contributors(report))

        lines.append("---")
        lines.append("")
        lines.append("*Generated by Weekly Best*")
        lines.append("")

        return "\n".join(lines)

    def _generate_summary(self, report: WeeklyBestReport) -> List[str]:
        stats = report.stats
        return [
            "## Summary",
            "",
            f"- **New resources:** {stats.new_resources}",
            f"- **New posts:** {stats.new_posts}",
            f"- **Active users:** {stats.active_users}",
            f"- **Total engagement:** {stats.total_engagement:g}",
            "",
        ]

    def _generate_section(self, heading: str, items: List[ScoredItem], formula: str) -> List[str]:
        lines = [f"## {heading}", "", f"*Formula: `{formula}`*", ""]

        if not items:
            lines.append("_Nothing this week._")
            lines.append("")
            return lines

        for rank, scored in enumerate(items, start=1):
            lines.extend(self._format_item(rank, scored))

        lines.append("")
        return lines

    def _format_item(self, rank: int, scored: ScoredItem) -> List[str]:
        """Format a single ranked item as a Markdown list entry."""
        item = scored.item
        title = item.title or item.id
        if len(title) > self.config.title_width:
            title = title[: self.config.title_width - 3] + "..."

        line = f"{rank}. **[{scored.score:g}]** {title}"
        if item.author_name:
            line += f" - by @{item.author_name}"
        return [line]

    def _generate_contributors(self, report: WeeklyBestReport) -> List[str]:
        if not report.top_contributors:
            return []

        lines = [
            "## Top Contributors",
            "",
            "| # | User | Items | Score |",
            "|---|------|-------|-------|",
        ]
        for rank, contributor in enumerate(report.top_contributors, start=1):
            name = contributor.username or contributor.user_id
            lines.append(
                f"| {rank} | {name} | {contributor.contribution_count} | {contributor.total_score:g} |"
            )
        lines.append("")
        return lines

    def _write_file(self, content: str, week_start: datetime) -> Path:
        output_dir = Path(self.config.output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        filepath = output_dir / f"weekly-{week_start.strftime('%Y-%m-%d')}.md"
        filepath.write_text(content, encoding="utf-8")

        return filepath


# =============================================================================
# Convenience Functions
# =============================================================================

def generate_digest(
    report: WeeklyBestReport,
    output_dir: str = "digests",
    date: datetime = None,
) -> DigestResult:
    """Write the weekly digest for a report."""
    generator = DigestGenerator(DigestConfig(output_dir=output_dir))
    return generator.generate(report, date)


def generate_digest_content(report: WeeklyBestReport, date: datetime = None) -> str:
    """
    Render digest content without writing to file.

    Useful for previewing or sending via other channels.
    """
    if date is None:
        date = datetime.now()
    return DigestGenerator().render(report, date)
