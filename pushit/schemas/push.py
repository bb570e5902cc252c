"""Push schemas."""
from pydantic import BaseModel


class PushLimits(BaseModel):
    pushes_used: int
    max_pushes: int
    remaining: int
    can_push: bool


class PushResponse(BaseModel):
    poll_id: int
    push_count: int
    limits: PushLimits
