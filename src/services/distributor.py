"""
Gap filling for days without recorded activity.

Developers often push several days of work in one burst. Distribution
spreads (proportional mode) or phase-labels (phased mode) the work of an
active day backward across the run of empty days that precedes it, so the
timesheet reflects effort rather than push timing.
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum

from models.activity import Commit, CommitKind, DayActivity

log = logging.getLogger(__name__)

DISTRIBUTED_PREFIX = "[Distributed] "
NOTE_PROJECT = "System"
NOTE_BRANCH = "distribution"
PHASE_PROJECT = "Distributed Work"
PHASE_BRANCH = "phase-distribution"
SUMMARY_PART_LENGTH = 50
DEFAULT_WORK_SUMMARY = "project work"
PHASE_CYCLE = ["Planning", "Research", "Design", "Implementation", "Testing", "Refinement", "Documentation"]


class DistributionMode(str, Enum):
    PROPORTIONAL = "proportional"
    PHASED = "phased"
    NONE = "none"


class DistributionError(ValueError):
    """Input days are duplicated or, in strict mode, out of order."""


@dataclass
class DistributionSummary:
    gap_days_count: int = 0
    distributed_days_count: int = 0
    message: str = ""

    def to_dict(self) -> dict:
        return {
            "gap_days_count": self.gap_days_count,
            "distributed_days_count": self.distributed_days_count,
            "message": self.message,
        }


@dataclass
class DistributionResult:
    days: list[DayActivity] = field(default_factory=list)
    summary: DistributionSummary = field(default_factory=DistributionSummary)


def _sorted_days(days: list[DayActivity], strict: bool) -> list[DayActivity]:
    ordered = sorted(days, key=lambda d: d.day)
    for previous, current in zip(ordered, ordered[1:]):
        if previous.day == current.day:
            raise DistributionError(f"Day {current.day_key} appears more than once")
    if [d.day for d in ordered] != [d.day for d in days]:
        if strict:
            raise DistributionError("Days must be sorted ascending before distribution")
        log.warning("Distribution input was not sorted by day; re-sorting")
    return ordered


def _next_active_index(days: list[DayActivity], start: int) -> int | None:
    for index in range(start + 1, len(days)):
        if days[index].has_activity:
            return index
    return None


def distribute_activities(
    days: list[DayActivity],
    mode: DistributionMode | str = DistributionMode.PROPORTIONAL,
    strict: bool = False,
) -> DistributionResult:
    """
    Fill runs of empty days from the next day that has activity.

    Days are mutated in place and returned sorted ascending. Trailing empty
    days (nothing after them) are left empty.

    Raises:
        DistributionError: duplicate days, or unsorted input when strict
    """
    mode = DistributionMode(mode)
    ordered = _sorted_days(days, strict)
    summary = DistributionSummary()

    if mode == DistributionMode.NONE:
        return DistributionResult(days=ordered, summary=summary)

    index = 0
    while index < len(ordered):
        if ordered[index].has_activity:
            index += 1
            continue

        source_index = _next_active_index(ordered, index)
        if source_index is None:
            break

        gap_days = ordered[index:source_index]
        source = ordered[source_index]
        summary.gap_days_count += len(gap_days)

        if mode == DistributionMode.PHASED:
            distributed = _distribute_phases(gap_days, source)
        else:
            distributed = _distribute_proportionally(gap_days, source)
        if distributed:
            summary.distributed_days_count += 1
            log.debug(f"Distributed work from {source.day_key} across {len(gap_days)} day(s)")

        # Resume at the source day; the gap is consumed
        index = source_index + 1

    if summary.distributed_days_count:
        if mode == DistributionMode.PHASED:
            summary.message = (
                f"Note: {summary.gap_days_count} day(s) had no recorded activity. Work phases "
                "were inferred and distributed. Entries are marked with [Phase: X]."
            )
        else:
            summary.message = (
                f"Note: {summary.gap_days_count} day(s) had no recorded activity. Work from "
                "subsequent days was distributed proportionally. Distributed entries are "
                "marked with [Distributed]."
            )

    return DistributionResult(days=ordered, summary=summary)


# =============================================================================
# PROPORTIONAL SPLIT
# =============================================================================


def _split(items: list, gap_days: list[DayActivity], attr: str, relabel) -> tuple[list, int]:
    """
    Hand out floor(count / (gap + 1)) items per gap day, left to right.

    Returns the items that stay on the source day and how many moved.
    """
    per_day = len(items) // (len(gap_days) + 1)
    moved = 0
    for day in gap_days:
        take = min(per_day, len(items) - moved)
        if take <= 0:
            break
        getattr(day.activity, attr).extend(relabel(item) for item in items[moved:moved + take])
        moved += take
    return items[moved:], moved


def _distribute_proportionally(gap_days: list[DayActivity], source: DayActivity) -> bool:
    payload = source.activity
    # Markers stay put and are never redistributed
    markers = [c for c in payload.commits if c.is_synthetic]
    authored = [c for c in payload.commits if not c.is_synthetic]

    kept_commits, moved_commits = _split(
        authored,
        gap_days,
        "commits",
        lambda c: replace(c, message=f"{DISTRIBUTED_PREFIX}{c.message}"),
    )
    kept_reviews, moved_reviews = _split(
        payload.reviews,
        gap_days,
        "reviews",
        lambda r: replace(r, title=f"{DISTRIBUTED_PREFIX}{r.title}"),
    )
    kept_issues, moved_issues = _split(
        payload.issues,
        gap_days,
        "issues",
        lambda i: replace(i, title=f"{DISTRIBUTED_PREFIX}{i.title}"),
    )

    payload.commits = markers + kept_commits
    payload.reviews = kept_reviews
    payload.issues = kept_issues

    if not (moved_commits or moved_reviews or moved_issues):
        return False

    note = Commit(
        message=(
            f"[Note: Some activities from this day were distributed to previous "
            f"{len(gap_days)} day(s) without recorded work]"
        ),
        project=NOTE_PROJECT,
        branch=NOTE_BRANCH,
        kind=CommitKind.DISTRIBUTION_NOTE,
    )
    payload.commits.insert(0, note)
    return True


# =============================================================================
# PHASED SPLIT
# =============================================================================


def summarize_work(day: DayActivity) -> str:
    """Short label of what a day was about, from its first item of each kind."""
    parts = []
    authored = [c for c in day.activity.commits if not c.is_synthetic]
    if authored:
        parts.append(authored[0].message[:SUMMARY_PART_LENGTH])
    if day.activity.reviews:
        parts.append(day.activity.reviews[0].title[:SUMMARY_PART_LENGTH])
    if day.activity.issues:
        parts.append(day.activity.issues[0].title[:SUMMARY_PART_LENGTH])
    return ", ".join(parts) or DEFAULT_WORK_SUMMARY


def phase_messages(gap: int, work_summary: str) -> list[str]:
    """Exactly `gap` phase-labeled messages, named by gap size."""
    if gap == 1:
        return [f"[Phase: Research & Planning] Preparation for: {work_summary}"]
    if gap == 2:
        return [
            f"[Phase: Analysis] Initial work on: {work_summary}",
            f"[Phase: Development] Continued work on: {work_summary}",
        ]
    if gap == 3:
        return [
            f"[Phase: Planning] Planned work for: {work_summary}",
            f"[Phase: Implementation] Developed features for: {work_summary}",
            f"[Phase: Testing] Testing and refinement for: {work_summary}",
        ]
    return [
        f"[Phase: {PHASE_CYCLE[i % len(PHASE_CYCLE)]}] Work on: {work_summary}" for i in range(gap)
    ]


def _distribute_phases(gap_days: list[DayActivity], source: DayActivity) -> bool:
    work_summary = summarize_work(source)
    for day, message in zip(gap_days, phase_messages(len(gap_days), work_summary)):
        day.activity.commits.append(
            Commit(message=message, project=PHASE_PROJECT, branch=PHASE_BRANCH, kind=CommitKind.PHASE)
        )
    return True
