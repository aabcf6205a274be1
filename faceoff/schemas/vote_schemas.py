from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field

from faceoff.models.vote import DIRECT_SOURCE


class VoterIdentity(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr


class VoteCreate(BaseModel):
    matchup_id: int
    competitor_id: int
    voter_name: str = Field(..., min_length=1, max_length=200)
    # Checked as an email by vote_service.voter_identity, which reports field-level InvalidInput
    voter_email: str = Field(..., min_length=1, max_length=320)
    source: str = DIRECT_SOURCE


class BallotSubmit(BaseModel):
    campaign_slug: str
    selections: Dict[int, int] = Field(..., description="matchup id -> chosen competitor id")
    voter_name: str = Field(..., min_length=1, max_length=200)
    voter_email: str = Field(..., min_length=1, max_length=320)
    source: str = DIRECT_SOURCE


class VoteRead(BaseModel):
    id: int
    matchup_id: int
    competitor_id: int
    campaign_id: int
    source: str
    created_at: datetime

    class Config:
        from_attributes = True


class BallotReceipt(BaseModel):
    success: bool = True
    votes_count: int
    vote_ids: List[int]


class BallotStatus(BaseModel):
    has_voted: bool
    voted_matchups: Dict[int, int]
    all_matchups_voted: bool
    total_matchups: int
    voted_count: int


class SubmissionRead(BaseModel):
    id: int
    matchup_id: int
    competitor_id: int
    competitor_name: Optional[str] = None
    round_number: int
    source: str
    voter_name: str
    voter_email: str
    created_at: datetime


class SubmissionGroup(BaseModel):
    voter_name: str
    voter_email: str
    source: str
    votes: List[SubmissionRead]


class SubmissionReport(BaseModel):
    votes: List[SubmissionRead]
    submissions: List[SubmissionGroup]
    total_votes: int


class VoteStats(BaseModel):
    total_votes: int
    unique_voters: int
    votes_by_source: Dict[str, int]
