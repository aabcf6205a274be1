from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from faceoff.api.dependencies import get_db
from faceoff.models import DIRECT_SOURCE
from faceoff.schemas import vote_schemas
from faceoff.services import vote_service

router = APIRouter()


@router.post("", response_model=vote_schemas.VoteRead, status_code=status.HTTP_201_CREATED)
async def submit_vote_endpoint(vote_in: vote_schemas.VoteCreate, db: Session = Depends(get_db)):
    voter = vote_service.voter_identity(vote_in.voter_name, vote_in.voter_email)
    return vote_service.submit_vote(
        db,
        matchup_id=vote_in.matchup_id,
        competitor_id=vote_in.competitor_id,
        voter=voter,
        source=vote_in.source,
    )


@router.post("/submit", response_model=vote_schemas.BallotReceipt, status_code=status.HTTP_201_CREATED)
async def submit_ballot_endpoint(ballot: vote_schemas.BallotSubmit, db: Session = Depends(get_db)):
    voter = vote_service.voter_identity(ballot.voter_name, ballot.voter_email)
    return vote_service.submit_ballot(
        db,
        campaign_slug=ballot.campaign_slug,
        selections=ballot.selections,
        voter=voter,
        source=ballot.source,
    )


@router.get("/check", response_model=vote_schemas.BallotStatus)
async def check_ballot_status_endpoint(
    campaign_slug: str,
    voter_email: str,
    source: str = DIRECT_SOURCE,
    round_number: Optional[int] = None,
    db: Session = Depends(get_db),
):
    return vote_service.check_ballot_status(
        db, campaign_slug=campaign_slug, voter_email=voter_email, source=source, round_number=round_number
    )
