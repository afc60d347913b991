"""
Day descriptions and Excel export of per-day activity.
"""

import io
from collections import defaultdict
from datetime import date
from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font
from openpyxl.utils import get_column_letter

from core.config import ACTIVITY_HEADERS
from models.activity import DayActivity, IssueAction, ReviewAction
from services.distributor import DistributionSummary

ITEM_HEADERS = ["Date", "Type", "Action", "Project", "Text"]
COLUMN_WIDTHS = {"Date": 12, "Day": 11, "Description": 100, "Text": 80, "Project": 30}


def format_date_display(d: date) -> str:
    """Format date as M/D/YYYY (platform-safe, no zero-padding)."""
    return f"{d.month}/{d.day}/{d.year}"


# =============================================================================
# DAY DESCRIPTIONS
# =============================================================================


def _join_titles(titles: list[str]) -> str:
    if len(titles) == 1:
        return titles[0]
    if len(titles) == 2:
        return f"{titles[0]} and {titles[1]}"
    return f"{', '.join(titles[:-1])}, and {titles[-1]}"


def _plural(noun: str, count: int) -> str:
    return noun if count == 1 else f"{noun}s"


def describe_day(day: DayActivity) -> str:
    """
    Raw description of a day: meetings first, then commits, reviews, issues.

    This is the unabridged text an external summarizer condenses into a
    timesheet line.
    """
    parts = []

    if day.meetings:
        parts.append(f"Attended {_join_titles([m.title for m in day.meetings])}.")

    commits_by_project: dict[str, list[str]] = defaultdict(list)
    for commit in day.activity.commits:
        commits_by_project[commit.project].append(commit.message)
    if commits_by_project:
        project_parts = []
        for project, messages in commits_by_project.items():
            if len(messages) == 1:
                project_parts.append(f'committed "{messages[0]}" to {project}')
            else:
                quoted = ", ".join(f'"{m}"' for m in messages)
                project_parts.append(f"made {len(messages)} commits to {project}: {quoted}")
        parts.append("Worked on " + "; ".join(project_parts) + ".")

    review_labels = {
        ReviewAction.CREATED: "Created MR",
        ReviewAction.REVIEWED: "Reviewed MR",
        ReviewAction.APPROVED: "Approved MR",
        ReviewAction.COMMENTED: "Commented on MR",
        ReviewAction.CLOSED: "Closed MR",
        ReviewAction.MERGED: "Merged MR",
    }
    for action, label in review_labels.items():
        items = [r for r in day.activity.reviews if r.action == action]
        if items:
            titles = ", ".join(f'"{r.title}" in {r.project}' for r in items)
            parts.append(f"{label}{'s' if len(items) > 1 else ''}: {titles}.")

    issue_labels = {
        IssueAction.OPENED: "Opened",
        IssueAction.COMMENTED: "Commented on",
        IssueAction.STATUS_CHANGED: "Updated",
        IssueAction.ASSIGNED: "Assigned to",
        IssueAction.CLOSED: "Closed",
    }
    for action, label in issue_labels.items():
        items = [i for i in day.activity.issues if i.action == action]
        if items:
            titles = ", ".join(
                f'"{i.title}" in {i.project}' + (f" ({i.details})" if i.details else "") for i in items
            )
            parts.append(f"{label} {_plural('issue', len(items))}: {titles}.")

    return " ".join(parts)


# =============================================================================
# EXCEL EXPORT
# =============================================================================


def _write_headers(ws, headers: list[str]):
    for col_idx, header in enumerate(headers, start=1):
        cell = ws.cell(row=1, column=col_idx, value=header)
        cell.font = Font(bold=True)
        ws.column_dimensions[get_column_letter(col_idx)].width = COLUMN_WIDTHS.get(header, 10)


def write_activity_sheet(ws, days: list[DayActivity], summary: DistributionSummary):
    """
    Write one row per day with item counts and the description.

    The distribution note, when present, goes two rows below the data.
    """
    _write_headers(ws, ACTIVITY_HEADERS)

    for row_idx, day in enumerate(days, start=2):
        row_data = [
            format_date_display(day.day),
            day.day.strftime("%A"),
            len(day.meetings),
            len(day.activity.commits),
            len(day.activity.reviews),
            len(day.activity.issues),
            day.description or ("(future date)" if day.is_future else ""),
        ]
        for col_idx, value in enumerate(row_data, start=1):
            ws.cell(row=row_idx, column=col_idx, value=value)
        ws.cell(row=row_idx, column=len(row_data)).alignment = Alignment(wrap_text=True)

    if summary.message:
        note = ws.cell(row=len(days) + 3, column=1, value=summary.message)
        note.font = Font(italic=True)


def write_items_sheet(ws, days: list[DayActivity]):
    """Write one row per meeting, commit, review and issue."""
    _write_headers(ws, ITEM_HEADERS)

    row_idx = 2
    for day in days:
        date_str = format_date_display(day.day)
        rows = [("Meeting", "", f"{m.attendees} attendee(s)", m.title) for m in day.meetings]
        rows += [("Commit", c.kind.value, f"{c.project} ({c.branch})", c.message) for c in day.activity.commits]
        rows += [("Review", r.action.value, r.project, r.title) for r in day.activity.reviews]
        rows += [("Issue", i.action.value, i.project, i.title) for i in day.activity.issues]

        for item_type, action, project, text in rows:
            for col_idx, value in enumerate([date_str, item_type, action, project, text], start=1):
                ws.cell(row=row_idx, column=col_idx, value=value)
            row_idx += 1


def create_activity_workbook(days: list[DayActivity], summary: DistributionSummary) -> Workbook:
    """
    Build the export workbook.

    Sheet 1: "Daily Activity" - one row per day
    Sheet 2: "Activity Items" - one row per recorded item
    """
    wb = Workbook()

    ws_days = wb.active
    ws_days.title = "Daily Activity"
    write_activity_sheet(ws_days, days, summary)

    ws_items = wb.create_sheet(title="Activity Items")
    write_items_sheet(ws_items, days)

    return wb


def write_activity_workbook(days: list[DayActivity], summary: DistributionSummary, output_path: Path):
    wb = create_activity_workbook(days, summary)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    wb.save(str(output_path))
    print(f"Saved Excel report to: {output_path}")


def activity_workbook_bytes(days: list[DayActivity], summary: DistributionSummary) -> bytes:
    buffer = io.BytesIO()
    create_activity_workbook(days, summary).save(buffer)
    return buffer.getvalue()
