from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from faceoff.api.dependencies import get_db
from faceoff.schemas import vote_source_schemas
from faceoff.services import campaign_service, vote_source_service

router = APIRouter()


@router.get("", response_model=List[vote_source_schemas.VoteSourceRead])
async def list_active_sources_endpoint(campaign_id: Optional[int] = None, db: Session = Depends(get_db)):
    return vote_source_service.list_vote_sources(db, campaign_id=campaign_id, active_only=True)


@router.get("/{code}/check", response_model=vote_source_schemas.SourceCheck)
async def check_source_endpoint(code: str, campaign_slug: Optional[str] = None, db: Session = Depends(get_db)):
    campaign_id = campaign_service.get_campaign_by_slug(db, campaign_slug).id if campaign_slug else None
    return vote_source_service.describe_source(db, campaign_id, code)
