"""
Data models for per-day activity records.

Dataclasses with to_dict/from_dict so payloads survive the JSON cache file.
"""

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from enum import Enum


class ProviderKind(str, Enum):
    """External activity source. Values double as cache namespaces."""

    GITLAB = "gitlab"
    GITHUB = "github"
    GOOGLE_CALENDAR = "google_calendar"
    OUTLOOK_CALENDAR = "outlook_calendar"

    @property
    def is_calendar(self) -> bool:
        return self in (ProviderKind.GOOGLE_CALENDAR, ProviderKind.OUTLOOK_CALENDAR)


class CommitKind(str, Enum):
    """Authored commits are real work; the other kinds are distribution markers."""

    AUTHORED = "authored"
    DISTRIBUTION_NOTE = "distribution_note"
    PHASE = "phase"


class ReviewAction(str, Enum):
    CREATED = "created"
    REVIEWED = "reviewed"
    APPROVED = "approved"
    COMMENTED = "commented"
    CLOSED = "closed"
    MERGED = "merged"


class IssueAction(str, Enum):
    COMMENTED = "commented"
    STATUS_CHANGED = "status_changed"
    ASSIGNED = "assigned"
    OPENED = "opened"
    CLOSED = "closed"


@dataclass
class Commit:
    message: str
    project: str
    branch: str
    kind: CommitKind = CommitKind.AUTHORED

    @property
    def is_synthetic(self) -> bool:
        return self.kind != CommitKind.AUTHORED

    @classmethod
    def from_dict(cls, data: dict) -> "Commit":
        return cls(
            message=data["message"],
            project=data["project"],
            branch=data["branch"],
            kind=CommitKind(data.get("kind", CommitKind.AUTHORED.value)),
        )


@dataclass
class ReviewItem:
    """Merge request / pull request action."""

    action: ReviewAction
    title: str
    project: str
    id: int | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "ReviewItem":
        return cls(
            action=ReviewAction(data["action"]),
            title=data["title"],
            project=data["project"],
            id=data.get("id"),
        )


@dataclass
class IssueItem:
    action: IssueAction
    title: str
    project: str
    id: int | None = None
    details: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "IssueItem":
        return cls(
            action=IssueAction(data["action"]),
            title=data["title"],
            project=data["project"],
            id=data.get("id"),
            details=data.get("details"),
        )


@dataclass
class ActivityPayload:
    """
    Work recorded by one provider (or merged across providers) for one day.

    List order is insertion order; the first item of each list is taken as
    representative of what the day was about.
    """

    commits: list[Commit] = field(default_factory=list)
    reviews: list[ReviewItem] = field(default_factory=list)
    issues: list[IssueItem] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.commits or self.reviews or self.issues)

    def extend(self, other: "ActivityPayload") -> None:
        self.commits.extend(other.commits)
        self.reviews.extend(other.reviews)
        self.issues.extend(other.issues)

    def to_dict(self) -> dict:
        return asdict(self, dict_factory=_enum_values)

    @classmethod
    def from_dict(cls, data: dict) -> "ActivityPayload":
        return cls(
            commits=[Commit.from_dict(c) for c in data.get("commits", [])],
            reviews=[ReviewItem.from_dict(r) for r in data.get("reviews", [])],
            issues=[IssueItem.from_dict(i) for i in data.get("issues", [])],
        )


@dataclass
class CalendarEvent:
    """Meeting signal only; durations are not used for accounting."""

    title: str
    start: datetime
    end: datetime
    attendees: int = 0

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "attendees": self.attendees,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CalendarEvent":
        return cls(
            title=data["title"],
            start=datetime.fromisoformat(data["start"]),
            end=datetime.fromisoformat(data["end"]),
            attendees=data.get("attendees", 0),
        )


@dataclass
class DayActivity:
    """
    Aggregate record for one local calendar day.

    Created fresh per request and mutated in place by the distributor and
    the description builder.
    """

    day: date
    meetings: list[CalendarEvent] = field(default_factory=list)
    activity: ActivityPayload = field(default_factory=ActivityPayload)
    description: str = ""
    sources: dict[str, bool] = field(default_factory=dict)  # provider -> from cache
    is_future: bool = False

    @property
    def day_key(self) -> str:
        return self.day.strftime("%Y-%m-%d")

    @property
    def has_activity(self) -> bool:
        return bool(self.meetings) or not self.activity.is_empty

    def to_dict(self) -> dict:
        return {
            "date": self.day_key,
            "day_of_week": self.day.strftime("%A"),
            "meetings": [m.to_dict() for m in self.meetings],
            "activity": self.activity.to_dict(),
            "description": self.description,
            "sources": dict(self.sources),
            "is_future": self.is_future,
        }


def _enum_values(items: list[tuple]) -> dict:
    return {key: value.value if isinstance(value, Enum) else value for key, value in items}
