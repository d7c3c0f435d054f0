from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator

Platform = Literal["android", "ios"]


class DeviceRegistration(BaseModel):
    """A phone announcing where game alerts should be pushed."""

    device_id: str = Field(min_length=3, max_length=191)
    platform: Platform
    token: str = Field(min_length=20)
    timezone: Optional[str] = Field(default=None, max_length=64)
    app_version: Optional[str] = Field(default=None, max_length=40)

    @field_validator("token")
    @classmethod
    def _strip_token(cls, value: str) -> str:
        return value.strip()

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError("unknown_timezone") from exc
        return value


class DeviceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    device_id: str
    platform: Platform
    timezone: Optional[str] = None
    is_active: bool
    updated_at: datetime


class DeviceRemoved(BaseModel):
    device_id: str
    removed: bool
