from pydantic import BaseModel, Field
from datetime import datetime, timezone
from typing import Any, Literal, Optional


RemoteType = Literal["fully_remote", "hybrid", "onsite"]
RotationStatus = Literal["active", "rate_limited", "error", "disabled"]
AlertType = Literal["hiring_signal", "job_opportunity", "networking_tip"]
SignalType = Literal[
    "funding",
    "team_expansion",
    "product_launch",
    "office_opening",
    "leadership_change",
    "job_posting",
]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobPost(BaseModel):
    """Normalized job posting from any source"""

    id: Optional[str] = None
    title: str
    description: str = ""
    company_name: str
    company_id: Optional[str] = None
    department: Optional[str] = None
    seniority_level: Optional[str] = None
    location: str = ""
    country: Optional[str] = None
    is_remote: bool = False
    remote_type: Optional[RemoteType] = None
    salary_min: Optional[float] = None
    salary_max: Optional[float] = None
    salary_currency: Optional[str] = None
    job_type: Optional[str] = None
    source_type: str
    source_url: str
    external_id: Optional[str] = None
    posted_date: Optional[datetime] = None
    expires_date: Optional[datetime] = None
    is_active: bool = True
    tech_stack: Optional[list[str]] = None
    dedup_hash: str


class Company(BaseModel):
    id: Optional[str] = None
    name: str
    website: Optional[str] = None
    industry: str = "Technology"
    size_category: Optional[str] = None
    logo_url: Optional[str] = None
    careers_page_url: Optional[str] = None
    linkedin_url: Optional[str] = None
    employee_count: Optional[int] = None
    description: Optional[str] = None


class RotationState(BaseModel):
    """Quota bookkeeping for one upstream API"""

    api_name: str
    last_used_at: Optional[datetime] = None
    requests_used: int = 0
    monthly_limit: int
    status: RotationStatus = "active"
    error_count: int = 0
    last_error: Optional[str] = None

    @property
    def has_capacity(self) -> bool:
        return self.requests_used < self.monthly_limit

    @property
    def usage_ratio(self) -> float:
        if self.monthly_limit <= 0:
            return 1.0
        return self.requests_used / self.monthly_limit


class UserPreference(BaseModel):
    user_id: str
    keywords: list[str] = []
    remote_only: bool = False
    salary_min: Optional[float] = None
    tracked_company_ids: list[str] = []
    is_active: bool = True

    @property
    def has_criteria(self) -> bool:
        return bool(
            [k for k in self.keywords if k.strip()]
            or self.remote_only
            or self.salary_min
        )


class Alert(BaseModel):
    id: Optional[str] = None
    user_id: str
    company_id: Optional[str] = None
    alert_type: AlertType
    title: str
    message: str
    data: dict[str, Any] = {}
    sent_at: datetime = Field(default_factory=utcnow)
    read_at: Optional[datetime] = None
    clicked_at: Optional[datetime] = None


class HiringSignal(BaseModel):
    id: Optional[str] = None
    company_id: str
    signal_type: SignalType
    title: str
    description: str = ""
    confidence_score: float = 5
    source_url: Optional[str] = None
    detected_at: datetime = Field(default_factory=utcnow)
    metadata: dict[str, Any] = {}


class SignalEvent(BaseModel):
    """Inbound hiring signal, keyed by company name"""

    company_name: str
    signal_type: SignalType
    title: str
    description: str = ""
    confidence_score: Optional[float] = None
    source_url: Optional[str] = None
    detected_at: Optional[datetime] = None
    metadata: dict[str, Any] = {}


class RunStats(BaseModel):
    fetched_per_source: dict[str, int] = {}
    total_fetched: int = 0
    inserted: int = 0
    skipped: int = 0
    alerts_created: int = 0
    failed_sources: list[str] = []


class RunReport(BaseModel):
    """Outcome of one job ingestion run, returned to the trigger"""

    success: bool
    status: Literal["completed", "no_capacity", "fetch_error", "fatal"]
    timestamp: datetime
    stats: Optional[RunStats] = None
    duration_ms: Optional[int] = None
    error: Optional[str] = None


class SignalReport(BaseModel):
    success: bool
    timestamp: datetime
    processed: int = 0
    skipped: int = 0
    alerts_created: int = 0
    errors: list[str] = []
    duration_ms: Optional[int] = None
    error: Optional[str] = None
