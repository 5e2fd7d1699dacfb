"""
Local Matching Models

Results of matching statement lines against a tranche's subscriptions
without the remote analysis function.
"""

from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel, Field


class LocalMatchStatus(str, Enum):
    OK = "ok"
    MISMATCH = "mismatch"
    NO_MATCH = "no_match"


class StatementCandidate(BaseModel):
    """A (name, amount) pair parsed from one statement line."""

    name: str
    amount: Optional[float] = None
    line: str = ""


class LocalMatchResult(BaseModel):
    """
    Best subscription for one candidate.

    tied_subscription_ids lists other subscriptions that reached the same
    best score; a non-empty list means the pick among them is arbitrary.
    """

    candidate_name: str
    candidate_amount: Optional[float] = None
    status: LocalMatchStatus = LocalMatchStatus.NO_MATCH
    score: float = 0.0
    amount_matches: bool = False
    subscription_id: Optional[str] = None
    investor_id: Optional[str] = None
    investor_name: Optional[str] = None
    expected_amount: Optional[float] = None
    tied_subscription_ids: List[str] = Field(default_factory=list)


class StatementMatchReport(BaseModel):
    file_name: str
    lines_read: int
    results: List[LocalMatchResult] = Field(default_factory=list)
    summary: Dict[str, int] = Field(default_factory=dict)
