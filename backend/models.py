"""
Pydantic models used across the backend.

`CanonicalEvent` is the only shape the filter and aggregator see: the
repository builds one per usable raw record and never mutates it after.
Auth and session shapes live here too so routes and the auth client
share them.

Guidelines:
- Keep models minimal and stable. Route-only request/response shapes
  (`LoginIn`, `ReportOut`) stay separate from domain models.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, Optional
from datetime import datetime, timedelta
from enum import Enum


DISPLAY_DATE_FORMAT = "%d/%m/%Y %H:%M"


class CanonicalEvent(BaseModel):
    """Normalized, store-agnostic record of one interaction.

    Fields:
    - `id`, `url`: required; records missing either never get here.
    - `timestamp`: timezone-aware UTC instant, or None when the source
      record had no usable date (such events match no period).
    - `device_type`, `event_type`: optional classifications.
    - everything else is carried for detail tables and CSV only.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    url: str
    timestamp: Optional[datetime] = None
    device_type: Optional[str] = None
    event_type: Optional[str] = None

    user_agent: Optional[str] = None
    referrer: Optional[str] = None
    screen_width: Optional[int] = None
    screen_height: Optional[int] = None
    language: Optional[str] = None
    page_title: Optional[str] = None
    load_time: Optional[int] = None

    @property
    def formatted_date(self) -> str:
        if self.timestamp is None:
            return "N/A"
        return self.timestamp.strftime(DISPLAY_DATE_FORMAT)


class Period(str, Enum):
    """Relative time window, measured back from "now"."""

    TODAY = "TODAY"
    WEEK = "WEEK"
    MONTH = "MONTH"
    ALL = "ALL"

    @property
    def window(self) -> Optional[timedelta]:
        # MONTH is a flat 30 days, not a calendar month.
        return _WINDOWS[self]


_WINDOWS = {
    Period.TODAY: timedelta(hours=24),
    Period.WEEK: timedelta(days=7),
    Period.MONTH: timedelta(days=30),
    Period.ALL: None,
}


class AuthStatus(str, Enum):
    OK = "ok"
    INVALID_CREDENTIALS = "invalid_credentials"
    INSUFFICIENT_ROLE = "insufficient_role"
    ENDPOINT_NOT_FOUND = "endpoint_not_found"
    SERVER_ERROR = "server_error"
    UNAVAILABLE = "unavailable"


class AuthResult(BaseModel):
    """Outcome of a login attempt.

    `status` lets callers tell a wrong password from a role refusal or an
    unreachable identity service; `message` is ready for display.
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    status: AuthStatus
    message: str
    token: Optional[str] = None
    role: Optional[str] = None
    user: Optional[Dict[str, Any]] = None


ROLE_LABELS = {
    "ROLE_ADMIN": "Administrateur",
    "Admin": "Administrateur",
    "ROLE_SALES": "Commercial",
    "Sales": "Commercial",
    "ROLE_USER": "Utilisateur",
    "User": "Utilisateur",
}


class Session(BaseModel):
    """Identity context of the caller, passed explicitly to what needs it."""

    model_config = ConfigDict(frozen=True)

    token: str
    role: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @property
    def full_name(self) -> str:
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) if parts else (self.email or "")

    @property
    def role_label(self) -> str:
        return ROLE_LABELS.get(self.role, "Membre")


class LoginIn(BaseModel):
    email: str
    password: str


class ReportOut(BaseModel):
    """Everything a dashboard needs for one period, from a single read."""

    period: Period
    total_events: int
    pages: Dict[str, int] = Field(default_factory=dict)
    event_types: Dict[str, int] = Field(default_factory=dict)
    device_types: Dict[str, int] = Field(default_factory=dict)
    generated_at: datetime
