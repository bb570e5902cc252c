"""Statistics schemas."""
from typing import List
from pydantic import BaseModel

from pushit.schemas.hold import LocationCount


class UserStats(BaseModel):
    polls_created: int
    votes_cast: int
    votes_received: int
    pushes_received: int


class GlobalStats(BaseModel):
    live_holders: int
    live_by_location: List[LocationCount]
    active_polls: int
    total_polls: int
    total_votes: int
