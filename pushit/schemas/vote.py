"""Vote schemas."""
from typing import Optional
from pydantic import BaseModel, Field


class VoteRequest(BaseModel):
    option_id: int = Field(..., ge=1)
    # Set when the user deliberately changes an earlier vote
    edit: bool = False
    # The poll-option hold that confirmed this vote; ended once the vote lands
    hold_id: Optional[str] = Field(None, max_length=36)


class VoteResponse(BaseModel):
    poll_id: int
    option_id: int
    updated: bool
