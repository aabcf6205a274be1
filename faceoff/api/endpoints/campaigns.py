from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from faceoff.api.dependencies import get_db
from faceoff.schemas import campaign_schemas
from faceoff.services import campaign_service

router = APIRouter()


@router.get("", response_model=List[campaign_schemas.CampaignRead])
async def list_campaigns_endpoint(include_demo: bool = False, db: Session = Depends(get_db)):
    return campaign_service.list_campaigns(db, include_demo=include_demo)


# Declared before /{slug} so "active" is not read as a slug
@router.get("/active", response_model=campaign_schemas.CampaignView)
async def get_active_campaign_endpoint(db: Session = Depends(get_db)):
    campaign = campaign_service.get_active_campaign(db)
    return campaign_service.get_campaign_view(db, campaign.slug)


@router.get("/active/results", response_model=campaign_schemas.CampaignResults)
async def get_active_campaign_results_endpoint(db: Session = Depends(get_db)):
    campaign = campaign_service.get_active_campaign(db)
    return campaign_service.get_campaign_results(db, campaign.slug)


@router.get("/{slug}", response_model=campaign_schemas.CampaignView)
async def get_campaign_endpoint(slug: str, db: Session = Depends(get_db)):
    return campaign_service.get_campaign_view(db, slug)


@router.get("/{slug}/rounds", response_model=List[campaign_schemas.RoundRead])
async def list_rounds_endpoint(slug: str, db: Session = Depends(get_db)):
    return campaign_service.list_rounds(db, slug)


@router.get("/{slug}/results", response_model=campaign_schemas.CampaignResults)
async def get_campaign_results_endpoint(slug: str, db: Session = Depends(get_db)):
    return campaign_service.get_campaign_results(db, slug)
