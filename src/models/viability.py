from __future__ import annotations

from pydantic import BaseModel


class ProposalStats(BaseModel):
    votes: int
    interested: int


class ViabilityResult(BaseModel):
    is_viable: bool
    votes: int
    interested: int
    required: int
