from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from faceoff.schemas.vote_schemas import VoteStats


class CompetitorBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    image_url: Optional[str] = None
    seed: Optional[int] = Field(None, ge=1)


class CompetitorCreate(CompetitorBase):
    pass


class CompetitorUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    image_url: Optional[str] = None
    seed: Optional[int] = Field(None, ge=1)


class CompetitorRead(CompetitorBase):
    id: int
    campaign_id: int
    is_eliminated: bool
    eliminated_in_round: Optional[int] = None

    class Config:
        from_attributes = True


class CampaignBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    is_demo: bool = False
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class CampaignCreate(CampaignBase):
    slug: str = Field(..., min_length=1, max_length=100, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    # Seeds are assigned 1..n in list order when no seed is given
    competitors: List[CompetitorCreate] = Field(default_factory=list)


class CampaignUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    is_demo: Optional[bool] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class CampaignRead(CampaignBase):
    id: int
    slug: str
    is_active: bool
    current_round: int
    created_at: datetime

    class Config:
        from_attributes = True


class CampaignActivation(BaseModel):
    is_active: bool


class BracketInitRequest(BaseModel):
    # Ordered best seed first; omit to use the campaign's existing seeds
    competitor_ids: Optional[List[int]] = None


class MatchupRead(BaseModel):
    id: int
    round_id: int
    matchup_index: int
    competitor1: Optional[CompetitorRead] = None
    competitor2: Optional[CompetitorRead] = None
    winner: Optional[CompetitorRead] = None
    competitor1_votes: int
    competitor2_votes: int

    class Config:
        from_attributes = True


class RoundRead(BaseModel):
    id: int
    round_number: int
    name: str
    is_active: bool
    is_complete: bool
    status: str
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    matchups: List[MatchupRead] = Field(default_factory=list)

    class Config:
        from_attributes = True


class CampaignView(CampaignRead):
    """A campaign with its full bracket plus the read-time champion and eliminated set."""
    total_rounds: int
    rounds: List[RoundRead] = Field(default_factory=list)
    competitors: List[CompetitorRead] = Field(default_factory=list)
    eliminated_competitor_ids: List[int] = Field(default_factory=list)
    champion: Optional[CompetitorRead] = None


class CampaignResults(CampaignView):
    stats: VoteStats
