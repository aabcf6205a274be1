"""
Campaign orchestration: campaigns, their competitors, bracket layout and the
read-time bracket view.

The champion and the eliminated set are never stored; `get_campaign_view`
derives them from round and matchup state on every read.
"""
import logging
from typing import Dict, List, Optional

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from faceoff.core.config import settings
from faceoff.core.database import as_naive_utc, transaction
from faceoff.core.errors import InvalidInput, InvalidTransition, NotFound
from faceoff.models import Campaign, Competitor, Matchup, Round, Vote
from faceoff.schemas import campaign_schemas
from faceoff.services import seeding, vote_service

logger = logging.getLogger(__name__)

_DATE_FIELDS = ("start_date", "end_date")


def _naive_dates(data: dict) -> dict:
    for key in _DATE_FIELDS:
        if key in data:
            data[key] = as_naive_utc(data[key])
    return data


def list_campaigns(db: Session, include_demo: bool = True) -> List[Campaign]:
    query = db.query(Campaign)
    if not include_demo:
        query = query.filter(Campaign.is_demo.is_(False))
    return query.order_by(Campaign.created_at.desc(), Campaign.id.desc()).all()


def get_campaign(db: Session, campaign_id: int) -> Campaign:
    campaign = db.get(Campaign, campaign_id)
    if not campaign:
        raise NotFound("Campaign", campaign_id)
    return campaign


def get_campaign_by_slug(db: Session, slug: str) -> Campaign:
    campaign = db.query(Campaign).filter(Campaign.slug == slug).first()
    if not campaign:
        raise NotFound("Campaign", slug)
    return campaign


def get_active_campaign(db: Session) -> Campaign:
    """The publicly served campaign; the most recently updated one if several are active."""
    campaign = (
        db.query(Campaign)
        .filter(Campaign.is_active.is_(True))
        .order_by(Campaign.updated_at.desc(), Campaign.id.desc())
        .first()
    )
    if not campaign:
        raise NotFound("Active campaign")
    return campaign


def create_campaign(db: Session, campaign_in: campaign_schemas.CampaignCreate) -> Campaign:
    if db.query(Campaign).filter(Campaign.slug == campaign_in.slug).first():
        raise InvalidInput(f"A campaign with slug '{campaign_in.slug}' already exists", field="slug")

    seeds = [c.seed if c.seed is not None else position for position, c in enumerate(campaign_in.competitors, 1)]
    if len(set(seeds)) != len(seeds):
        raise InvalidInput("Competitor seeds must be unique", field="competitors")

    data = _naive_dates(campaign_in.model_dump(exclude={"competitors"}))
    campaign = Campaign(**data, is_active=False, current_round=1)
    for competitor_in, seed in zip(campaign_in.competitors, seeds):
        campaign.competitors.append(Competitor(**competitor_in.model_dump(exclude={"seed"}), seed=seed))

    try:
        with transaction(db):
            db.add(campaign)
    except IntegrityError:
        raise InvalidInput(f"A campaign with slug '{campaign_in.slug}' already exists", field="slug")
    db.refresh(campaign)
    logger.info("Campaign %s ('%s') created with %d competitors", campaign.id, campaign.slug, len(seeds))
    return campaign


def update_campaign(db: Session, campaign_id: int, campaign_update: campaign_schemas.CampaignUpdate) -> Campaign:
    campaign = get_campaign(db, campaign_id)
    update_data = _naive_dates(campaign_update.model_dump(exclude_unset=True))
    with transaction(db):
        for key, value in update_data.items():
            setattr(campaign, key, value)
    db.refresh(campaign)
    return campaign


def delete_campaign(db: Session, campaign_id: int) -> bool:
    campaign = get_campaign(db, campaign_id)
    with transaction(db):
        db.delete(campaign)
    logger.info("Campaign %s deleted", campaign_id)
    return True


def deactivate_other_campaigns(db: Session, campaign_id: int) -> None:
    db.execute(update(Campaign).where(Campaign.id != campaign_id).values(is_active=False))


def set_campaign_active(db: Session, campaign_id: int, is_active: bool) -> Campaign:
    """Turn a campaign on or off; turning one on switches every other off when a single active campaign is served."""
    campaign = get_campaign(db, campaign_id)
    with transaction(db):
        if is_active and settings.SINGLE_ACTIVE_CAMPAIGN:
            deactivate_other_campaigns(db, campaign.id)
        campaign.is_active = is_active
    db.refresh(campaign)
    logger.info("Campaign %s %s", campaign_id, "activated" if is_active else "deactivated")
    return campaign


def list_competitors(db: Session, campaign_id: int) -> List[Competitor]:
    return (
        db.query(Competitor)
        .filter(Competitor.campaign_id == campaign_id)
        .order_by(Competitor.seed.is_(None), Competitor.seed, Competitor.id)
        .all()
    )


def get_competitor(db: Session, competitor_id: int) -> Competitor:
    competitor = db.get(Competitor, competitor_id)
    if not competitor:
        raise NotFound("Competitor", competitor_id)
    return competitor


def add_competitor(db: Session, campaign_id: int, competitor_in: campaign_schemas.CompetitorCreate) -> Competitor:
    get_campaign(db, campaign_id)
    data = competitor_in.model_dump()
    if data["seed"] is None:
        highest = max((c.seed or 0 for c in list_competitors(db, campaign_id)), default=0)
        data["seed"] = highest + 1
    competitor = Competitor(campaign_id=campaign_id, **data)
    with transaction(db):
        db.add(competitor)
    db.refresh(competitor)
    return competitor


def update_competitor(
    db: Session, competitor_id: int, competitor_update: campaign_schemas.CompetitorUpdate
) -> Competitor:
    competitor = get_competitor(db, competitor_id)
    with transaction(db):
        for key, value in competitor_update.model_dump(exclude_unset=True).items():
            setattr(competitor, key, value)
    db.refresh(competitor)
    return competitor


def delete_competitor(db: Session, competitor_id: int) -> bool:
    competitor = get_competitor(db, competitor_id)
    in_bracket = (
        db.query(Matchup)
        .filter(
            or_(
                Matchup.competitor1_id == competitor_id,
                Matchup.competitor2_id == competitor_id,
                Matchup.winner_id == competitor_id,
            )
        )
        .first()
    )
    if in_bracket:
        raise InvalidTransition(
            f"Competitor {competitor_id} is placed in matchup {in_bracket.id}; re-initialize the bracket first"
        )
    with transaction(db):
        db.delete(competitor)
    return True


def _bracket_entrants(
    db: Session, campaign: Campaign, competitor_ids: Optional[List[int]]
) -> Dict[int, Competitor]:
    """Seed -> competitor for everyone entering the bracket, with seeds guaranteed to run 1..n."""
    competitors = list_competitors(db, campaign.id)
    if competitor_ids is None:
        entrants = competitors
        seeds = sorted(c.seed for c in entrants if c.seed is not None)
        if seeds != list(range(1, len(entrants) + 1)):
            raise InvalidInput("Competitor seeds must run from 1 to the number of competitors", field="seed")
        return {c.seed: c for c in entrants}

    by_id = {c.id: c for c in competitors}
    if len(set(competitor_ids)) != len(competitor_ids):
        raise InvalidInput("A competitor appears more than once", field="competitor_ids")
    unknown = [cid for cid in competitor_ids if cid not in by_id]
    if unknown:
        raise InvalidInput(f"Competitors {unknown} do not belong to this campaign", field="competitor_ids")
    return {seed: by_id[cid] for seed, cid in enumerate(competitor_ids, 1)}


def initialize_bracket(
    db: Session, campaign_id: int, competitor_ids: Optional[List[int]] = None
) -> campaign_schemas.CampaignView:
    """
    Lay out a fresh bracket, discarding any existing rounds, matchups and votes.

    With `competitor_ids` the listed competitors enter in that order, seeded
    1..n, and everyone else is left unseeded. Without it every competitor
    enters on its current seed.
    """
    campaign = get_campaign(db, campaign_id)
    entrants = _bracket_entrants(db, campaign, competitor_ids)
    n = len(entrants)
    pairs = seeding.generate_seed_pairs(n)
    if not seeding.is_power_of_two(n):
        raise InvalidInput(f"A bracket needs a power-of-two number of competitors, got {n}", field="competitors")
    total_rounds = seeding.round_count(n)

    with transaction(db):
        db.query(Vote).filter(Vote.campaign_id == campaign.id).delete()
        db.query(Matchup).filter(Matchup.campaign_id == campaign.id).delete()
        db.query(Round).filter(Round.campaign_id == campaign.id).delete()

        entering = {c.id for c in entrants.values()}
        for competitor in list_competitors(db, campaign.id):
            competitor.is_eliminated = False
            competitor.eliminated_in_round = None
            if competitor_ids is not None and competitor.id not in entering:
                competitor.seed = None
        for seed, competitor in entrants.items():
            competitor.seed = seed

        for round_number in range(1, total_rounds + 1):
            round_ = Round(
                campaign_id=campaign.id,
                round_number=round_number,
                name=seeding.round_name(round_number, total_rounds),
                is_active=round_number == 1,
                is_complete=False,
            )
            db.add(round_)
            db.flush()
            for index in range(seeding.matchups_in_round(round_number, total_rounds)):
                matchup = Matchup(
                    round_id=round_.id,
                    campaign_id=campaign.id,
                    matchup_index=index,
                    competitor1_votes=0,
                    competitor2_votes=0,
                )
                if round_number == 1:
                    high, low = pairs[index]
                    matchup.competitor1_id = entrants[high].id
                    matchup.competitor2_id = entrants[low].id
                db.add(matchup)
        campaign.current_round = 1

    logger.info("Bracket initialized for campaign %s: %d competitors, %d rounds", campaign.id, n, total_rounds)
    return get_campaign_view(db, campaign.slug)


def list_rounds(db: Session, slug: str) -> List[Round]:
    campaign = get_campaign_by_slug(db, slug)
    return db.query(Round).filter(Round.campaign_id == campaign.id).order_by(Round.round_number).all()


def eliminated_competitor_ids(rounds: List[Round]) -> List[int]:
    """Every non-winner of every decided matchup in a complete round."""
    eliminated = set()
    for round_ in rounds:
        if not round_.is_complete:
            continue
        for matchup in round_.matchups:
            if matchup.winner_id is None:
                continue
            for competitor_id in (matchup.competitor1_id, matchup.competitor2_id):
                if competitor_id is not None and competitor_id != matchup.winner_id:
                    eliminated.add(competitor_id)
    return sorted(eliminated)


def champion_of(rounds: List[Round]) -> Optional[Competitor]:
    total_rounds = len(rounds)
    final = next((r for r in rounds if r.round_number == total_rounds), None)
    if final is None or not final.is_complete or not final.matchups:
        return None
    return final.matchups[0].winner


def get_campaign_view(db: Session, slug: str) -> campaign_schemas.CampaignView:
    campaign = get_campaign_by_slug(db, slug)
    rounds = db.query(Round).filter(Round.campaign_id == campaign.id).order_by(Round.round_number).all()
    champion = champion_of(rounds)
    return campaign_schemas.CampaignView(
        **campaign_schemas.CampaignRead.model_validate(campaign).model_dump(),
        total_rounds=len(rounds),
        rounds=[campaign_schemas.RoundRead.model_validate(r) for r in rounds],
        competitors=[campaign_schemas.CompetitorRead.model_validate(c) for c in list_competitors(db, campaign.id)],
        eliminated_competitor_ids=eliminated_competitor_ids(rounds),
        champion=campaign_schemas.CompetitorRead.model_validate(champion) if champion else None,
    )


def get_campaign_results(db: Session, slug: str) -> campaign_schemas.CampaignResults:
    view = get_campaign_view(db, slug)
    return campaign_schemas.CampaignResults(**view.model_dump(), stats=vote_service.vote_stats(db, view.id))
