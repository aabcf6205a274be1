from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from faceoff.api.dependencies import get_db
from faceoff.schemas import campaign_schemas, round_schemas, vote_schemas, vote_source_schemas
from faceoff.services import auth_service, campaign_service, round_service, vote_service, vote_source_service

router = APIRouter(dependencies=[Depends(auth_service.get_current_admin)])


# Campaigns

@router.get("/campaigns", response_model=List[campaign_schemas.CampaignRead])
async def list_campaigns_endpoint(db: Session = Depends(get_db)):
    return campaign_service.list_campaigns(db)


@router.post("/campaigns", response_model=campaign_schemas.CampaignRead, status_code=status.HTTP_201_CREATED)
async def create_campaign_endpoint(campaign_in: campaign_schemas.CampaignCreate, db: Session = Depends(get_db)):
    return campaign_service.create_campaign(db, campaign_in)


@router.get("/campaigns/{campaign_id}", response_model=campaign_schemas.CampaignView)
async def get_campaign_endpoint(campaign_id: int, db: Session = Depends(get_db)):
    campaign = campaign_service.get_campaign(db, campaign_id)
    return campaign_service.get_campaign_view(db, campaign.slug)


@router.put("/campaigns/{campaign_id}", response_model=campaign_schemas.CampaignRead)
async def update_campaign_endpoint(
    campaign_id: int, campaign_update: campaign_schemas.CampaignUpdate, db: Session = Depends(get_db)
):
    return campaign_service.update_campaign(db, campaign_id, campaign_update)


@router.delete("/campaigns/{campaign_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_campaign_endpoint(campaign_id: int, db: Session = Depends(get_db)):
    campaign_service.delete_campaign(db, campaign_id)


@router.post("/campaigns/{campaign_id}/activate", response_model=campaign_schemas.CampaignRead)
async def set_campaign_active_endpoint(
    campaign_id: int, activation: campaign_schemas.CampaignActivation, db: Session = Depends(get_db)
):
    return campaign_service.set_campaign_active(db, campaign_id, activation.is_active)


@router.post("/campaigns/{campaign_id}/bracket", response_model=campaign_schemas.CampaignView)
async def initialize_bracket_endpoint(
    campaign_id: int, request: campaign_schemas.BracketInitRequest, db: Session = Depends(get_db)
):
    return campaign_service.initialize_bracket(db, campaign_id, request.competitor_ids)


# Competitors

@router.get("/campaigns/{campaign_id}/competitors", response_model=List[campaign_schemas.CompetitorRead])
async def list_competitors_endpoint(campaign_id: int, db: Session = Depends(get_db)):
    campaign_service.get_campaign(db, campaign_id)
    return campaign_service.list_competitors(db, campaign_id)


@router.post(
    "/campaigns/{campaign_id}/competitors",
    response_model=campaign_schemas.CompetitorRead,
    status_code=status.HTTP_201_CREATED,
)
async def add_competitor_endpoint(
    campaign_id: int, competitor_in: campaign_schemas.CompetitorCreate, db: Session = Depends(get_db)
):
    return campaign_service.add_competitor(db, campaign_id, competitor_in)


@router.put("/competitors/{competitor_id}", response_model=campaign_schemas.CompetitorRead)
async def update_competitor_endpoint(
    competitor_id: int, competitor_update: campaign_schemas.CompetitorUpdate, db: Session = Depends(get_db)
):
    return campaign_service.update_competitor(db, competitor_id, competitor_update)


@router.delete("/competitors/{competitor_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_competitor_endpoint(competitor_id: int, db: Session = Depends(get_db)):
    campaign_service.delete_competitor(db, competitor_id)


# Rounds and matchups

@router.post("/rounds/{round_id}/activate", response_model=round_schemas.RoundActivationRead)
async def activate_round_endpoint(round_id: int, db: Session = Depends(get_db)):
    return round_service.activate_round(db, round_id)


@router.post("/rounds/{round_id}/complete", response_model=round_schemas.RoundCompletion)
async def complete_round_endpoint(round_id: int, db: Session = Depends(get_db)):
    return round_service.complete_round(db, round_id)


@router.post("/rounds/{round_id}/undo", response_model=round_schemas.UndoRead)
async def undo_round_endpoint(
    round_id: int, request: Optional[round_schemas.UndoRequest] = None, db: Session = Depends(get_db)
):
    discard = request.discard_next_round_votes if request else False
    return round_service.undo_round_completion(db, round_id, discard_next_round_votes=discard)


@router.post("/matchups/{matchup_id}/winner", response_model=round_schemas.ManualWinnerRead)
async def set_winner_endpoint(
    matchup_id: int, request: round_schemas.ManualWinnerRequest, db: Session = Depends(get_db)
):
    return round_service.set_winner_manually(db, matchup_id, request.winner_id)


# Votes

@router.delete("/votes/{vote_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_vote_endpoint(vote_id: int, db: Session = Depends(get_db)):
    vote_service.delete_vote(db, vote_id)


@router.get("/submissions", response_model=vote_schemas.SubmissionReport)
async def list_submissions_endpoint(campaign_id: Optional[int] = None, db: Session = Depends(get_db)):
    return vote_service.list_submissions(db, campaign_id=campaign_id)


# Vote sources

@router.get("/vote-sources", response_model=List[vote_source_schemas.VoteSourceRead])
async def list_vote_sources_endpoint(
    campaign_id: Optional[int] = None, active_only: bool = False, db: Session = Depends(get_db)
):
    return vote_source_service.list_vote_sources(db, campaign_id=campaign_id, active_only=active_only)


@router.post("/vote-sources", response_model=vote_source_schemas.VoteSourceRead, status_code=status.HTTP_201_CREATED)
async def create_vote_source_endpoint(source_in: vote_source_schemas.VoteSourceCreate, db: Session = Depends(get_db)):
    return vote_source_service.create_vote_source(db, source_in)


@router.put("/vote-sources/{source_id}", response_model=vote_source_schemas.VoteSourceRead)
async def update_vote_source_endpoint(
    source_id: int, source_update: vote_source_schemas.VoteSourceUpdate, db: Session = Depends(get_db)
):
    return vote_source_service.update_vote_source(db, source_id, source_update)


@router.delete("/vote-sources/{source_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_vote_source_endpoint(source_id: int, db: Session = Depends(get_db)):
    vote_source_service.delete_vote_source(db, source_id)
