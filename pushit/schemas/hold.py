"""Hold session schemas."""
from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from pushit.core.constants import TARGET_GLOBAL_BUTTON, TARGET_POLL_OPTION
from pushit.core.sanitization import sanitize_location_label, validate_device_id


class HoldStartRequest(BaseModel):
    target_kind: Literal["global_button", "poll_option"] = TARGET_GLOBAL_BUTTON
    target_id: Optional[int] = None
    location_label: Optional[str] = Field(None, max_length=200)
    device_id: Optional[str] = None

    @field_validator('location_label')
    @classmethod
    def normalize_location(cls, v: Optional[str]) -> str:
        return sanitize_location_label(v)

    @field_validator('device_id')
    @classmethod
    def validate_device_id_field(cls, v: Optional[str]) -> Optional[str]:
        return validate_device_id(v)

    @model_validator(mode='after')
    def check_target(self):
        if self.target_kind == TARGET_POLL_OPTION and self.target_id is None:
            raise ValueError("target_id is required for poll option holds")
        if self.target_kind == TARGET_GLOBAL_BUTTON and self.target_id is not None:
            raise ValueError("Global button holds do not take a target_id")
        return self


class HoldResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    target_kind: str
    target_id: Optional[int] = None
    started_at: datetime
    last_heartbeat_at: Optional[datetime] = None
    is_active: bool
    location_label: Optional[str] = None


class HoldEndResponse(BaseModel):
    ended: bool


class ActiveCountResponse(BaseModel):
    active_count: int


class LocationCount(BaseModel):
    location: str
    count: int


class SweepResponse(BaseModel):
    reaped: int
