import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from faceoff.core.config import settings
from faceoff.core.database import as_naive_utc, transaction, utcnow
from faceoff.core.errors import InvalidInput, NotFound, SourceRejected
from faceoff.models import Campaign, VoteSource, DIRECT_SOURCE
from faceoff.schemas import vote_source_schemas

logger = logging.getLogger(__name__)


def find_vote_source(db: Session, campaign_id: Optional[int], code: str) -> Optional[VoteSource]:
    """Campaign-scoped source first, then (when allowed) a campaign-less one."""
    if campaign_id is not None:
        source = db.query(VoteSource).filter(VoteSource.campaign_id == campaign_id, VoteSource.code == code).first()
        if source or not settings.ALLOW_GLOBAL_VOTE_SOURCES:
            return source
    return db.query(VoteSource).filter(VoteSource.campaign_id.is_(None), VoteSource.code == code).first()


def check_source_allowed(
    db: Session, campaign_id: Optional[int], code: str, now: Optional[datetime] = None
) -> Optional[VoteSource]:
    """
    Gate a ballot-origin token. `direct` always passes (returns None); otherwise
    returns the VoteSource or raises SourceRejected with the precise reason.

    The validity window is half-open: [valid_from, valid_until).
    """
    if not code or code == DIRECT_SOURCE:
        return None

    now = as_naive_utc(now) or utcnow()
    source = find_vote_source(db, campaign_id, code)

    reason = None
    if source is None:
        reason = SourceRejected.NOT_FOUND
    elif not source.is_active:
        reason = SourceRejected.INACTIVE
    elif source.valid_from is not None and now < source.valid_from:
        reason = SourceRejected.NOT_YET_VALID
    elif source.valid_until is not None and now >= source.valid_until:
        reason = SourceRejected.EXPIRED

    if reason:
        logger.info("Vote source '%s' rejected for campaign %s: %s", code, campaign_id, reason)
        raise SourceRejected(reason, code)
    return source


def describe_source(db: Session, campaign_id: Optional[int], code: str) -> vote_source_schemas.SourceCheck:
    """Advisory check for the voting UI; submission still re-checks server-side."""
    try:
        check_source_allowed(db, campaign_id, code)
    except SourceRejected as exc:
        return vote_source_schemas.SourceCheck(code=code, allowed=False, reason=exc.reason, detail=exc.message)
    return vote_source_schemas.SourceCheck(code=code, allowed=True)


def list_vote_sources(
    db: Session, campaign_id: Optional[int] = None, active_only: bool = False
) -> List[VoteSource]:
    query = db.query(VoteSource)
    if campaign_id is not None:
        query = query.filter(VoteSource.campaign_id == campaign_id)
    if active_only:
        query = query.filter(VoteSource.is_active.is_(True))
    return query.order_by(VoteSource.code).all()


def get_vote_source(db: Session, source_id: int) -> VoteSource:
    source = db.get(VoteSource, source_id)
    if not source:
        raise NotFound("Vote source", source_id)
    return source


def create_vote_source(db: Session, source_in: vote_source_schemas.VoteSourceCreate) -> VoteSource:
    if source_in.code == DIRECT_SOURCE:
        raise InvalidInput(f"'{DIRECT_SOURCE}' is reserved and cannot be used as a source code", field="code")
    if source_in.campaign_id is not None and db.get(Campaign, source_in.campaign_id) is None:
        raise NotFound("Campaign", source_in.campaign_id)

    # NULL campaign ids never collide in a unique index, so check the scope explicitly
    scope = VoteSource.campaign_id.is_(None) if source_in.campaign_id is None else VoteSource.campaign_id == source_in.campaign_id
    if db.query(VoteSource).filter(scope, VoteSource.code == source_in.code).first():
        raise InvalidInput("A vote source with this code already exists", field="code")

    data = source_in.model_dump()
    data["valid_from"] = as_naive_utc(data["valid_from"])
    data["valid_until"] = as_naive_utc(data["valid_until"])
    source = VoteSource(**data)
    try:
        with transaction(db):
            db.add(source)
    except IntegrityError:
        raise InvalidInput("A vote source with this code already exists", field="code")
    db.refresh(source)
    logger.info("Vote source '%s' created (campaign %s)", source.code, source.campaign_id)
    return source


def update_vote_source(db: Session, source_id: int, source_update: vote_source_schemas.VoteSourceUpdate) -> VoteSource:
    source = get_vote_source(db, source_id)
    update_data = source_update.model_dump(exclude_unset=True)
    for key in ("valid_from", "valid_until"):
        if key in update_data:
            update_data[key] = as_naive_utc(update_data[key])

    valid_from = update_data.get("valid_from", source.valid_from)
    valid_until = update_data.get("valid_until", source.valid_until)
    if valid_from and valid_until and valid_until <= valid_from:
        raise InvalidInput("valid_until must be after valid_from", field="valid_until")

    with transaction(db):
        for key, value in update_data.items():
            setattr(source, key, value)
    db.refresh(source)
    return source


def delete_vote_source(db: Session, source_id: int) -> bool:
    source = get_vote_source(db, source_id)
    with transaction(db):
        db.delete(source)
    logger.info("Vote source %s deleted", source_id)
    return True
