"""Pydantic request/response models for API endpoints."""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Health check response."""

    status: str  # "healthy" or "unhealthy"
    version: str
    cache_writable: bool
    providers_configured: list[str]
    timestamp: str  # ISO 8601 UTC
    error: str | None = None


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    code: str
    details: list[str] = []


class ErrorCodes:
    """Error code constants."""

    INVALID_REQUEST = "INVALID_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ActivityRequest(BaseModel):
    """Date range and options for an activity fetch."""

    start_date: str = Field(description="First day, YYYY-MM-DD")
    end_date: str | None = Field(default=None, description="Last day, YYYY-MM-DD; defaults to start_date")
    mode: str = Field(default="proportional", description="proportional, phased or none")
    force_refresh: bool = False
    working_days_only: bool = True
    providers: list[str] | None = Field(default=None, description="Provider kinds; default all configured")


class CommitModel(BaseModel):
    message: str
    project: str
    branch: str
    kind: str


class ReviewModel(BaseModel):
    action: str
    title: str
    project: str
    id: int | None = None


class IssueModel(BaseModel):
    action: str
    title: str
    project: str
    id: int | None = None
    details: str | None = None


class ActivityModel(BaseModel):
    commits: list[CommitModel] = []
    reviews: list[ReviewModel] = []
    issues: list[IssueModel] = []


class MeetingModel(BaseModel):
    title: str
    start: str
    end: str
    attendees: int


class DayActivityModel(BaseModel):
    date: str
    day_of_week: str
    meetings: list[MeetingModel]
    activity: ActivityModel
    description: str
    sources: dict[str, bool]
    is_future: bool


class DistributionModel(BaseModel):
    gap_days_count: int
    distributed_days_count: int
    message: str


class KindStatsModel(BaseModel):
    hits: int
    misses: int


class CacheStatsResponse(BaseModel):
    per_kind: dict[str, KindStatsModel]
    total_hits: int
    total_requests: int
    hit_rate: float


class ActivityResponse(BaseModel):
    days: list[DayActivityModel]
    distribution: DistributionModel
    cache: CacheStatsResponse


class CacheClearRequest(BaseModel):
    scope: str = "all"


class CacheClearResponse(BaseModel):
    scope: str
    entries: dict[str, int]
