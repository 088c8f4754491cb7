"""Data models for pulseboard.

Defines the app configuration structures, the typed provider payloads
fetchers produce, and the per-pass and historical records the sync
pipeline derives from them.

Configuration and payload structs use camelCase field names on the wire
so settings and history files written by the desktop dashboard load
unchanged.
"""

from __future__ import annotations

import re
from datetime import date
from datetime import datetime
from enum import StrEnum
from typing import Any

import msgspec

from pulseboard.errors.types import PulseError


class ProviderKind(StrEnum):
    """Provider integrations the dashboard knows how to render."""

    STRIPE = "stripe"
    VERCEL = "vercel"
    POSTHOG = "posthog"
    SUPABASE = "supabase"
    GOOGLE_ANALYTICS = "google_analytics"
    GMAIL = "gmail"
    GOOGLE_CALENDAR = "google_calendar"
    GITHUB = "github"

    @property
    def credential_group(self) -> str | None:
        """Name of the OAuth grant shared with other kinds, if any."""
        match self:
            case ProviderKind.GMAIL | ProviderKind.GOOGLE_CALENDAR:
                return "google"
            case _:
                return None


def credential_key(kind: str) -> str:
    """Return the CredentialStore key for a provider kind.

    Kinds backed by one shared OAuth grant (Gmail and Google Calendar)
    map to the grant's group name, everything else to the kind itself.
    """
    try:
        group = ProviderKind(kind).credential_group
    except ValueError:
        group = None
    return group or kind


# Kinds whose API key is scoped to one project
PROJECT_SCOPED_KINDS = frozenset(
    kind.value for kind in (ProviderKind.VERCEL, ProviderKind.POSTHOG, ProviderKind.SUPABASE)
)

# App ids and credential keys name files under the state and cache directories
PATH_COMPONENT_PATTERN = re.compile(r"[A-Za-z0-9][A-Za-z0-9_.-]*")


def check_path_component(name: str, what: str = "app id") -> str:
    """Return ``name`` if it is safe to use as a file or directory name.

    Raises:
        ValueError: The name is empty, hidden or contains a path separator.
    """
    if not PATH_COMPONENT_PATTERN.fullmatch(name) or ".." in name:
        raise ValueError(f"Invalid {what}: {name!r}")
    return name


# Configuration
class ProviderConfig(msgspec.Struct, frozen=True, rename="camel", omit_defaults=True):
    """One configured integration of an app."""

    kind: str = msgspec.field(name="type")
    api_key: str | None = None
    project_id: str | None = None
    team_id: str | None = None
    access_token: str | None = None
    refresh_token: str | None = None
    enabled: bool = True
    platform: str | None = None

    def has_credentials(self) -> bool:
        """Check if there is enough to authenticate with.

        Project-scoped kinds also need the project id.
        """
        if not (self.api_key or self.access_token):
            return False
        return self.kind not in PROJECT_SCOPED_KINDS or bool(self.project_id)


class OAuthBundle(msgspec.Struct, frozen=True, rename="camel", omit_defaults=True):
    """Google OAuth grant shared by the calendar and inbox integrations."""

    enabled: bool = False
    access_token: str | None = None
    refresh_token: str | None = None
    scopes: list[str] = []
    calendar_ids: list[str] = []

    def provider_kinds(self) -> list[ProviderKind]:
        """Kinds this grant covers, based on granted scopes.

        A grant without recorded scopes predates Gmail support and only
        covers the calendar.
        """
        if not self.scopes:
            return [ProviderKind.GOOGLE_CALENDAR]
        kinds = []
        if any("calendar" in scope for scope in self.scopes):
            kinds.append(ProviderKind.GOOGLE_CALENDAR)
        if any("gmail" in scope for scope in self.scopes):
            kinds.append(ProviderKind.GMAIL)
        return kinds


class GitHubConfig(msgspec.Struct, frozen=True, rename="camel", omit_defaults=True):
    """GitHub integration settings."""

    enabled: bool = False
    personal_access_token: str | None = None
    username: str | None = None
    repos: list[str] = []


class App(msgspec.Struct, frozen=True, rename="camel", omit_defaults=True):
    """A tracked project and its configured providers."""

    id: str
    name: str
    integrations: list[ProviderConfig] = []
    domain: str | None = None
    color: str | None = None
    platforms: list[str] = []
    google_auth: OAuthBundle | None = None
    google_calendar: OAuthBundle | None = None  # legacy calendar-only grant
    github: GitHubConfig | None = None

    def __post_init__(self) -> None:
        check_path_component(self.id)

    def oauth_bundle(self) -> OAuthBundle | None:
        """Return the Google grant, preferring the unified one."""
        return self.google_auth or self.google_calendar

    def enabled_providers(self) -> list[ProviderConfig]:
        """Enabled providers with credentials, in declaration order.

        Integrations come first, followed by the providers implied by
        the Google grant and the GitHub settings.
        """
        providers = [
            p for p in self.integrations if p.enabled and p.has_credentials()
        ]

        bundle = self.oauth_bundle()
        if bundle is not None and bundle.enabled and bundle.access_token:
            for kind in bundle.provider_kinds():
                providers.append(
                    ProviderConfig(
                        kind=kind.value,
                        access_token=bundle.access_token,
                        refresh_token=bundle.refresh_token,
                    )
                )

        if (
            self.github is not None
            and self.github.enabled
            and self.github.personal_access_token
        ):
            providers.append(
                ProviderConfig(
                    kind=ProviderKind.GITHUB.value,
                    api_key=self.github.personal_access_token,
                    project_id=self.github.username,
                )
            )

        return providers


class Settings(msgspec.Struct, rename="camel", omit_defaults=True):
    """The dashboard's settings document (apps plus sync preferences)."""

    apps: list[App] = []
    refresh_interval: int | None = None  # minutes, overrides the config file
    launch_at_startup: bool = False
    history_retention_days: int | None = None


# Provider payloads
class StripeMetrics(msgspec.Struct, frozen=True, rename="camel"):
    """Revenue figures from a payments provider."""

    mrr: float
    active_subscriptions: int
    revenue_30d: float = 0.0
    churn_rate: float | None = None
    arr: float | None = None


class Deployment(msgspec.Struct, frozen=True, rename="camel"):
    """A single hosting deployment."""

    id: str
    name: str
    state: str
    created_at: str
    url: str
    build_duration: float | None = None


class VercelMetrics(msgspec.Struct, frozen=True, rename="camel"):
    """Deployment activity from a hosting provider."""

    deployments: list[Deployment] = []
    last_deployed_at: str | None = None
    status: str = "unknown"
    success_rate: float | None = None


class PostHogMetrics(msgspec.Struct, frozen=True, rename="camel"):
    """Event analytics counts."""

    total_events_24h: int = 0
    unique_users_24h: int = 0
    total_events_7d: int = 0
    unique_users_7d: int = 0


class SupabaseMetrics(msgspec.Struct, frozen=True, rename="camel"):
    """End-user counts from a database/auth backend."""

    total_users: int
    new_users_7d: int = 0
    database_size: str = ""
    api_requests_24h: int = 0


class AnalyticsMetrics(msgspec.Struct, frozen=True, rename="camel"):
    """Active-user counts from a web analytics provider."""

    source: str
    dau: int = 0
    wau: int = 0
    mau: int = 0


class GmailMetrics(msgspec.Struct, frozen=True, rename="camel"):
    """Inbox counters."""

    unread_count: int = 0
    inbox_count: int = 0
    primary_unread: int = 0


class GitHubMetrics(msgspec.Struct, frozen=True, rename="camel"):
    """Repository activity totals."""

    total_stars: int = 0
    total_forks: int = 0
    open_issues: int = 0
    open_prs: int = 0


class CalendarEvent(msgspec.Struct, frozen=True, rename="camel"):
    """An event on one of the connected calendars."""

    id: str
    title: str
    start_time: str
    end_time: str
    source: str = "google"
    type: str = "other"
    description: str | None = None
    url: str | None = None
    color: str | None = None
    calendar_name: str | None = None


class CalendarMetrics(msgspec.Struct, frozen=True, rename="camel"):
    """Upcoming calendar events."""

    events: list[CalendarEvent] = []


PAYLOAD_TYPES: dict[str, type] = {
    ProviderKind.STRIPE: StripeMetrics,
    ProviderKind.VERCEL: VercelMetrics,
    ProviderKind.POSTHOG: PostHogMetrics,
    ProviderKind.SUPABASE: SupabaseMetrics,
    ProviderKind.GOOGLE_ANALYTICS: AnalyticsMetrics,
    ProviderKind.GMAIL: GmailMetrics,
    ProviderKind.GITHUB: GitHubMetrics,
    ProviderKind.GOOGLE_CALENDAR: CalendarMetrics,
}


def decode_payload(kind: str, raw: Any) -> Any:
    """Convert a decoded JSON payload back into its typed struct.

    Unknown kinds are returned as-is.
    """
    payload_type = PAYLOAD_TYPES.get(kind)
    if raw is None or payload_type is None:
        return raw
    return msgspec.convert(raw, type=payload_type)


# Sync results
class ProviderResult(msgspec.Struct, frozen=True):
    """Outcome for one provider of one app in one pass."""

    kind: str
    payload: Any = None
    error: PulseError | None = None
    attempts: int = 0
    refreshed: bool = False  # whether a token refresh happened for this result

    @classmethod
    def ok(cls, kind: str, payload: Any, attempts: int = 1, refreshed: bool = False) -> ProviderResult:
        return cls(kind=kind, payload=payload, attempts=attempts, refreshed=refreshed)

    @classmethod
    def absent(
        cls,
        kind: str,
        error: PulseError,
        attempts: int = 0,
        refreshed: bool = False,
    ) -> ProviderResult:
        return cls(kind=kind, error=error, attempts=attempts, refreshed=refreshed)

    @property
    def present(self) -> bool:
        return self.payload is not None


class AppMetricsSnapshot(msgspec.Struct, frozen=True):
    """One app's merged provider results at one point in time."""

    app_id: str
    fetched_at: datetime
    results: dict[str, ProviderResult] = {}
    error: PulseError | None = None  # app-level problem, e.g. nothing to fetch

    def payload(self, kind: str) -> Any:
        """Return the payload for a provider kind, or None if absent."""
        result = self.results.get(kind)
        if result is None:
            return None
        return result.payload

    def present_kinds(self) -> list[str]:
        """Provider kinds that returned data."""
        return [kind for kind, r in self.results.items() if r.present]

    def failed_kinds(self) -> list[str]:
        """Provider kinds that ended absent."""
        return [kind for kind, r in self.results.items() if not r.present]

    def errors(self) -> dict[str, PulseError]:
        """Errors keyed by provider kind."""
        return {
            kind: r.error for kind, r in self.results.items() if r.error is not None
        }

    def has_any_data(self) -> bool:
        return any(r.present for r in self.results.values())


# History
class StripeProjection(msgspec.Struct, frozen=True, rename="camel"):
    mrr: float
    active_subscriptions: int
    churn_rate: float | None = None
    arr: float | None = None


class VercelProjection(msgspec.Struct, frozen=True, rename="camel"):
    deployments: int
    success_rate: float


class PostHogProjection(msgspec.Struct, frozen=True, rename="camel"):
    unique_users: int
    total_events: int


class SupabaseProjection(msgspec.Struct, frozen=True, rename="camel"):
    total_users: int
    api_requests: int


class MetricSnapshotRecord(msgspec.Struct, frozen=True, rename="camel", omit_defaults=True):
    """Narrow, day-keyed numeric projection of an app snapshot."""

    day: date = msgspec.field(name="date")
    app_id: str
    stripe: StripeProjection | None = None
    vercel: VercelProjection | None = None
    posthog: PostHogProjection | None = None
    supabase: SupabaseProjection | None = None


class HistoricalData(msgspec.Struct, rename="camel"):
    """On-disk history document for one app."""

    app_id: str
    snapshots: list[MetricSnapshotRecord] = []
    last_updated: datetime | None = None


# Aggregates
class AggregateMetrics(msgspec.Struct, frozen=True):
    """Cross-app summary derived from the current snapshots."""

    total_revenue: float = 0.0
    total_paying_customers: int = 0
    total_users: int = 0
    average_churn_rate: float = 0.0
    app_count: int = 0
    revenue_apps: int = 0
    user_apps: int = 0
    churn_apps: int = 0
    computed_at: datetime | None = None
