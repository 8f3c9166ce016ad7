"""Pydantic schemas for reports, requests and responses."""
import math
from datetime import date, datetime, timedelta, timezone
from typing import Annotated, Any, Optional

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError

DATE_FORMAT = '%Y-%m-%d'


def _validate_date(v: str) -> str:
    # strptime alone accepts unpadded months and days, which break string ordering
    if datetime.strptime(v, DATE_FORMAT).strftime(DATE_FORMAT) != v:
        raise ValueError("date must be zero-padded YYYY-MM-DD")
    return v


def to_utc_iso(value: datetime) -> str:
    """Normalize a timestamp to UTC ISO-8601 with milliseconds and a Z suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _floor_float(v: Any) -> Any:
    if isinstance(v, float) and math.isfinite(v) and v >= 0:
        return int(v)
    return v


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str) and not v.strip():
        return None
    return v


DateStr = Annotated[str, AfterValidator(_validate_date)]
# Parsed as a datetime (ISO string or epoch seconds/milliseconds), stored as a string
Timestamp = Annotated[datetime, AfterValidator(to_utc_iso)]
# Bounded by SQLite's INTEGER range
SQLITE_MAX_INT = 2**63 - 1
Counter = Annotated[int, BeforeValidator(_floor_float), Field(ge=0, le=SQLITE_MAX_INT)]
OptionalText = Annotated[Optional[str], BeforeValidator(_blank_to_none)]
Domain = Annotated[str, Field(min_length=1, max_length=255)]

_timestamp_adapter = TypeAdapter(Timestamp)


def parse_timestamp(value: Any, field: str = "timestamp") -> str:
    """Normalize a loose timestamp (ISO string or epoch number). Raises ValidationError."""
    try:
        return _timestamp_adapter.validate_python(value)
    except PydanticValidationError:
        raise ValidationError(f"{field} must be an ISO-8601 timestamp")


# === Report Models ===

class DomainUsage(BaseModel):
    """One device's cumulative usage of a domain on one day."""
    model_config = ConfigDict(populate_by_name=True)

    title: OptionalText = None
    category: OptionalText = None
    total_seconds: Counter = Field(default=0, alias="totalSeconds")
    visits: Counter = 0
    first_visit: Optional[Timestamp] = Field(default=None, alias="firstVisit")
    last_visit: Optional[Timestamp] = Field(default=None, alias="lastVisit")


# date -> domain -> usage
Report = dict[DateStr, dict[Domain, DomainUsage]]


class ActivityEvent(BaseModel):
    state: str = Field(min_length=1, max_length=64)
    timestamp: Timestamp
    date: Optional[DateStr] = None


# === Request Models ===

class PushRequest(BaseModel):
    """Report shapes are checked by the reconciler so a bad push is rejected as a whole."""
    model_config = ConfigDict(populate_by_name=True)

    device_id: str = Field(min_length=1, alias="deviceId")
    usage_data: Any = Field(default=None, alias="usageData")
    activity_events: Any = Field(default=None, alias="activityEvents")


class RegisterRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1)
    display_name: Optional[str] = Field(default=None, max_length=255, alias="displayName")


class LoginRequest(BaseModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class ProfileUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    display_name: str = Field(min_length=1, max_length=255, alias="displayName")


class PasswordChangeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_password: str = Field(min_length=1, alias="currentPassword")
    new_password: str = Field(min_length=1, alias="newPassword")


class AccountDeleteRequest(BaseModel):
    password: str = Field(min_length=1)


class DeviceCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    device_name: str = Field(min_length=1, max_length=255, alias="deviceName")
    device_type: str = Field(default="other", min_length=1, max_length=64, alias="deviceType")


class DeviceUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    device_name: str = Field(min_length=1, max_length=255, alias="deviceName")


class Base64UploadRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    device_id: str = Field(min_length=1, alias="deviceId")
    data_url: str = Field(min_length=1, alias="dataUrl")
    domain: Optional[str] = None
    title: Optional[str] = None
    url: Optional[str] = None
    category: Optional[str] = None
    timestamp: Optional[Timestamp] = None
    date: Optional[DateStr] = None


# === Response Models ===

class MessageResponse(BaseModel):
    message: str


class SyncedCounts(BaseModel):
    usage_records: int
    activity_events: int


class PushResponse(BaseModel):
    message: str
    synced: SyncedCounts
    server_time: str


class MergedRecord(BaseModel):
    """Usage for one domain on one day, summed across devices."""
    domain: str
    title: Optional[str]
    category: Optional[str]
    date: str
    total_seconds: int = 0
    visits: int = 0
    first_visit: Optional[str] = None
    last_visit: Optional[str] = None


class PullResponse(BaseModel):
    records: list[MergedRecord]


class DeviceUsageRecord(MergedRecord):
    device_id: str


class FullSyncResponse(BaseModel):
    records: list[DeviceUsageRecord]
    days: int


class SiteUsage(BaseModel):
    domain: str
    title: Optional[str]
    category: Optional[str]
    total_seconds: int = 0
    total_visits: int = 0


class DailyTotals(BaseModel):
    total_seconds: int = 0
    total_visits: int = 0
    total_domains: int = 0


class CategoryUsage(BaseModel):
    category: Optional[str]
    total_seconds: int = 0
    total_visits: int = 0
    sites: int = 0


class DeviceBreakdown(BaseModel):
    device_id: str
    device_name: str
    device_type: str
    total_seconds: int = 0
    total_visits: int = 0
    domains: int = 0


class DailyResponse(BaseModel):
    date: str
    sites: list[SiteUsage]
    totals: DailyTotals
    categories: list[CategoryUsage]
    device_breakdown: list[DeviceBreakdown]
    screenshot_count: int = 0


class DayUsage(BaseModel):
    date: str
    total_seconds: int = 0
    total_visits: int = 0
    total_domains: int = 0


class WeeklyResponse(BaseModel):
    weeks: int
    since: str
    daily: list[DayUsage]
    top_sites: list[SiteUsage]
    categories: list[CategoryUsage]


class WindowTotals(BaseModel):
    total_seconds: int = 0
    total_visits: int = 0
    total_domains: int = 0
    active_days: int = 0


class CategoryTotal(BaseModel):
    category: Optional[str]
    total_seconds: int = 0


class TrendsResponse(BaseModel):
    this_week_since: str
    last_week_since: str
    this_week: WindowTotals
    last_week: WindowTotals
    this_week_categories: list[CategoryTotal]
    last_week_categories: list[CategoryTotal]


class DomainRank(SiteUsage):
    active_days: int = 0


class TopDomainsResponse(BaseModel):
    period: int
    domains: list[DomainRank]


class ExportResponse(BaseModel):
    exported_at: str
    usage: list[dict]
    events: list[dict]
    devices: list[dict]
    screenshots: list[dict]


class UserRecord(BaseModel):
    id: str
    email: str
    display_name: Optional[str]
    created_at: Optional[str] = None


class TokenResponse(BaseModel):
    message: str
    token: str
    user: UserRecord


class ProfileStats(BaseModel):
    total_days: int = 0
    total_domains: int = 0
    total_seconds: int = 0
    total_visits: int = 0
    total_screenshots: int = 0


class DeviceRecord(BaseModel):
    id: str
    device_name: str
    device_type: str
    last_sync_at: Optional[str] = None
    created_at: str
    usage_count: int = 0
    screenshot_count: int = 0


class DevicesResponse(BaseModel):
    devices: list[DeviceRecord]


class DeviceCreatedResponse(BaseModel):
    message: str
    device: DeviceRecord


class ProfileResponse(BaseModel):
    user: UserRecord
    devices: list[DeviceRecord]
    stats: ProfileStats


class ScreenshotRecord(BaseModel):
    id: str
    device_id: str
    domain: Optional[str]
    title: Optional[str]
    url: Optional[str]
    category: Optional[str]
    timestamp: str
    date: str
    file_size: int = 0
    created_at: str


class ScreenshotsResponse(BaseModel):
    screenshots: list[ScreenshotRecord]


class StoredScreenshot(BaseModel):
    id: str
    filename: str


class UploadResponse(BaseModel):
    message: str
    screenshot: StoredScreenshot


class HealthResponse(BaseModel):
    status: str
    database: str
    schema_version: int | None
    users: int = 0
    timestamp: str


def today_utc() -> date:
    return datetime.now(timezone.utc).date()


def days_ago(today: date, days: int) -> str:
    """Start of a trailing window of `days` days, as a date string."""
    return (today - timedelta(days=days)).strftime(DATE_FORMAT)


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def parse_date(value: str, field: str = "date") -> date:
    try:
        return datetime.strptime(_validate_date(value), DATE_FORMAT).date()
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a YYYY-MM-DD date")
