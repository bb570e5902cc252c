"""Poll schemas."""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

from pushit.core.sanitization import sanitize_poll_options, sanitize_poll_question


class PollCreate(BaseModel):
    question: str = Field(..., min_length=1, max_length=200)
    options: List[str] = Field(..., min_length=2)
    show_creator_name: bool = True

    @field_validator('question')
    @classmethod
    def sanitize_question_field(cls, v: str) -> str:
        """Sanitize and validate poll question."""
        return sanitize_poll_question(v)

    @field_validator('options')
    @classmethod
    def sanitize_options_field(cls, v: List[str]) -> List[str]:
        return sanitize_poll_options(v)


class PollCreateResponse(BaseModel):
    poll_id: int


class OptionTally(BaseModel):
    option_id: int
    option_text: str
    votes: int
    percentage: int


class PollTallyResponse(BaseModel):
    poll_id: int
    total_votes: int
    options: List[OptionTally]


class PollSummary(BaseModel):
    id: int
    question: str
    creator_username: str
    status: str
    created_at: datetime
    expires_at: Optional[datetime] = None
    time_left: str
    is_open: bool
    total_votes: int
    push_count: int
    options: List[OptionTally]
    has_voted: bool = False
    user_vote: Optional[int] = None
    is_saved: bool = False
