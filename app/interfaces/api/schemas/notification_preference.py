"""Pydantic models for reading and editing notification preferences."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, StrictBool


class DigestRead(BaseModel):
    enabled: bool
    frequency: str
    time: str


class EmailPreferencesRead(BaseModel):
    enabled: bool
    types: dict[str, bool]
    digest: DigestRead


class InAppPreferencesRead(BaseModel):
    enabled: bool
    desktop: bool
    sound: bool
    types: dict[str, bool]


class SlackPreferencesRead(BaseModel):
    enabled: bool
    webhook_url: str | None = None
    channel: str | None = None
    types: dict[str, bool]


class DoNotDisturbRead(BaseModel):
    enabled: bool
    start_time: str
    end_time: str
    timezone: str


class NotificationPreferenceRead(BaseModel):
    """Full preference record of the authenticated user."""

    user_id: str
    email: EmailPreferencesRead
    in_app: InAppPreferencesRead
    slack: SlackPreferencesRead
    minimum_importance: dict[str, str]
    do_not_disturb: DoNotDisturbRead
    created_at: datetime | None = None
    updated_at: datetime | None = None


# Update payloads reject non-boolean flags; the use case validates the remaining
# values and ignores keys it does not recognise.
class DigestUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    enabled: StrictBool | None = None
    frequency: str | None = None
    time: str | None = None


class EmailPreferencesUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    enabled: StrictBool | None = None
    types: dict[str, StrictBool] | None = None
    digest: DigestUpdate | None = None


class InAppPreferencesUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    enabled: StrictBool | None = None
    desktop: StrictBool | None = None
    sound: StrictBool | None = None
    types: dict[str, StrictBool] | None = None


class SlackPreferencesUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    enabled: StrictBool | None = None
    webhook_url: str | None = None
    channel: str | None = None
    types: dict[str, StrictBool] | None = None


class DoNotDisturbUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    enabled: StrictBool | None = None
    start_time: str | None = None
    end_time: str | None = None
    timezone: str | None = None


class NotificationPreferenceUpdate(BaseModel):
    """Partial update; omitted sections and fields keep their stored values."""

    model_config = ConfigDict(extra="ignore")

    email: EmailPreferencesUpdate | None = None
    in_app: InAppPreferencesUpdate | None = None
    slack: SlackPreferencesUpdate | None = None
    minimum_importance: dict[str, str] | None = Field(
        default=None,
        description="Umbral mínimo por canal (email, in_app, slack)",
    )
    do_not_disturb: DoNotDisturbUpdate | None = None


__all__ = [
    "NotificationPreferenceRead",
    "NotificationPreferenceUpdate",
]
