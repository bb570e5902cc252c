"""Profile schemas."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, field_validator

from pushit.core.sanitization import sanitize_location_label, sanitize_username


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    username: Optional[str] = None
    email: Optional[str] = None
    country: Optional[str] = None
    created_at: datetime


class ProfileUpdate(BaseModel):
    username: Optional[str] = None
    country: Optional[str] = None

    @field_validator('username')
    @classmethod
    def sanitize_username_field(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return sanitize_username(v)

    @field_validator('country')
    @classmethod
    def normalize_country(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return sanitize_location_label(v)
