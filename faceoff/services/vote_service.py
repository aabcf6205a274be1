"""
Vote ledger.

A Vote row and the matching counter on its Matchup are always written in the
same transaction. Counters are bumped with a relative UPDATE
(``competitor1_votes = competitor1_votes + 1``) so concurrent ballots on the
same matchup never lose an increment. Double voting is stopped by the
UNIQUE(matchup_id, voter_fingerprint, source) constraint; the lookup made
before inserting only exists to fail fast with a friendly error.
"""
import logging
from collections import OrderedDict
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError
from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from faceoff.core import encryption
from faceoff.core.database import transaction
from faceoff.core.errors import ConflictAlreadyVoted, InvalidInput, NotFound, VotingClosed
from faceoff.models import Campaign, Matchup, Round, Vote, DIRECT_SOURCE
from faceoff.schemas import vote_schemas
from faceoff.services.vote_source_service import check_source_allowed

logger = logging.getLogger(__name__)

_COUNTERS = {1: "competitor1_votes", 2: "competitor2_votes"}


def voter_identity(name: str, email: str) -> vote_schemas.VoterIdentity:
    try:
        return vote_schemas.VoterIdentity(name=name, email=email)
    except ValidationError as exc:
        field = "voter_email" if any(err["loc"] == ("email",) for err in exc.errors()) else "voter_name"
        raise InvalidInput("Invalid voter name or email", field=field) from exc


def _ensure_voting_open(campaign: Campaign, round_: Round) -> None:
    if not campaign.is_active:
        raise VotingClosed("campaign_inactive")
    if round_.is_complete:
        raise VotingClosed("closed")
    if not round_.is_active:
        raise VotingClosed("not_open")


def _slot_for(matchup: Matchup, competitor_id: int) -> int:
    slot = matchup.slot_of(competitor_id)
    if slot is None:
        raise InvalidInput(
            f"Competitor {competitor_id} is not part of matchup {matchup.id}", field="competitor_id"
        )
    return slot


def _existing_votes(db: Session, matchup_ids: Iterable[int], fingerprint: str, source: str) -> List[Vote]:
    return (
        db.query(Vote)
        .filter(
            Vote.matchup_id.in_(list(matchup_ids)),
            Vote.voter_fingerprint == fingerprint,
            Vote.source == source,
        )
        .all()
    )


def _shift_counter(db: Session, matchup_id: int, slot: int, delta: int) -> None:
    column = getattr(Matchup, _COUNTERS[slot])
    db.execute(
        update(Matchup)
        .where(Matchup.id == matchup_id)
        .values({_COUNTERS[slot]: column + delta})
        .execution_options(synchronize_session=False)
    )


def _record_vote(
    db: Session,
    matchup: Matchup,
    slot: int,
    competitor_id: int,
    encrypted_name: str,
    encrypted_email: str,
    fingerprint: str,
    source: str,
) -> Vote:
    vote = Vote(
        matchup_id=matchup.id,
        competitor_id=competitor_id,
        campaign_id=matchup.campaign_id,
        competitor_slot=slot,
        voter_name=encrypted_name,
        voter_email=encrypted_email,
        voter_fingerprint=fingerprint,
        source=source,
    )
    db.add(vote)
    _shift_counter(db, matchup.id, slot, +1)
    return vote


def submit_vote(
    db: Session,
    matchup_id: int,
    competitor_id: int,
    voter: vote_schemas.VoterIdentity,
    source: str = DIRECT_SOURCE,
    now: Optional[datetime] = None,
) -> Vote:
    """
    Record one ballot for one matchup.

    Checked in order: the campaign is active, the round is open, the matchup
    is undecided, the competitor is in the matchup, the source passes the
    gate, and this voter has not voted on this matchup from this source.
    """
    source = source or DIRECT_SOURCE
    matchup = db.get(Matchup, matchup_id)
    if not matchup:
        raise NotFound("Matchup", matchup_id)
    round_ = matchup.round

    _ensure_voting_open(round_.campaign, round_)
    if matchup.winner_id is not None:
        raise VotingClosed("matchup_decided")
    slot = _slot_for(matchup, competitor_id)
    check_source_allowed(db, matchup.campaign_id, source, now)

    fingerprint = encryption.voter_fingerprint(voter.email)
    if _existing_votes(db, [matchup.id], fingerprint, source):
        raise ConflictAlreadyVoted([matchup.id])

    try:
        with transaction(db):
            vote = _record_vote(
                db,
                matchup,
                slot,
                competitor_id,
                encryption.encrypt(voter.name),
                encryption.encrypt(str(voter.email)),
                fingerprint,
                source,
            )
    except IntegrityError:
        # Lost the race against an identical ballot; the constraint is the final word
        logger.info("Duplicate ballot rejected by constraint on matchup %s (source %s)", matchup_id, source)
        raise ConflictAlreadyVoted([matchup_id])

    db.refresh(vote)
    logger.info("Vote %s recorded on matchup %s slot %s (source %s)", vote.id, matchup_id, slot, source)
    return vote


def submit_ballot(
    db: Session,
    campaign_slug: str,
    selections: Dict[int, int],
    voter: vote_schemas.VoterIdentity,
    source: str = DIRECT_SOURCE,
    now: Optional[datetime] = None,
) -> vote_schemas.BallotReceipt:
    """
    Record a whole ballot (matchup id -> competitor id) for the campaign's open round.

    Every selection is validated and the voter's prior ballots are checked
    across the full set before anything is written; the inserts then commit
    together or not at all.
    """
    source = source or DIRECT_SOURCE
    if not selections:
        raise InvalidInput("At least one selection is required", field="selections")

    campaign = db.query(Campaign).filter(Campaign.slug == campaign_slug).first()
    if not campaign:
        raise NotFound("Campaign", campaign_slug)

    active_round = db.query(Round).filter(Round.campaign_id == campaign.id, Round.is_active.is_(True)).first()
    if not campaign.is_active:
        raise VotingClosed("campaign_inactive")
    if active_round is None:
        raise VotingClosed("no_active_round")
    _ensure_voting_open(campaign, active_round)

    open_matchups = {m.id: m for m in active_round.matchups}
    plan: List[Tuple[Matchup, int, int]] = []
    for matchup_id, competitor_id in selections.items():
        matchup = open_matchups.get(matchup_id)
        if matchup is None:
            raise InvalidInput(f"Matchup {matchup_id} is not part of the open round", field="selections")
        if matchup.winner_id is not None:
            raise VotingClosed("matchup_decided", f"Matchup {matchup_id} has already been decided")
        plan.append((matchup, _slot_for(matchup, competitor_id), competitor_id))
    plan.sort(key=lambda item: item[0].matchup_index)

    check_source_allowed(db, campaign.id, source, now)

    fingerprint = encryption.voter_fingerprint(voter.email)
    existing = _existing_votes(db, selections.keys(), fingerprint, source)
    if existing:
        raise ConflictAlreadyVoted([v.matchup_id for v in existing])

    encrypted_name = encryption.encrypt(voter.name)
    encrypted_email = encryption.encrypt(str(voter.email))
    try:
        with transaction(db):
            votes = [
                _record_vote(db, matchup, slot, competitor_id, encrypted_name, encrypted_email, fingerprint, source)
                for matchup, slot, competitor_id in plan
            ]
    except IntegrityError:
        logger.info("Ballot for campaign %s rejected by constraint (source %s)", campaign_slug, source)
        raise ConflictAlreadyVoted(selections.keys())

    logger.info(
        "Ballot accepted for campaign %s round %s: %d votes from %s (source %s)",
        campaign_slug,
        active_round.round_number,
        len(votes),
        encryption.mask_email(str(voter.email)),
        source,
    )
    return vote_schemas.BallotReceipt(votes_count=len(votes), vote_ids=[v.id for v in votes])


def delete_vote(db: Session, vote_id: int) -> bool:
    """Administrative removal; takes back exactly the increment the vote made."""
    vote = db.get(Vote, vote_id)
    if not vote:
        raise NotFound("Vote", vote_id)
    matchup_id, slot = vote.matchup_id, vote.competitor_slot

    with transaction(db):
        db.delete(vote)
        _shift_counter(db, matchup_id, slot, -1)

    logger.info("Vote %s deleted from matchup %s slot %s", vote_id, matchup_id, slot)
    return True


def check_voted(db: Session, matchup_ids: Iterable[int], voter_email: str, source: str = DIRECT_SOURCE) -> Dict[int, int]:
    """What this voter already picked from this source: matchup id -> competitor id."""
    matchup_ids = list(matchup_ids)
    if not matchup_ids:
        return {}
    fingerprint = encryption.voter_fingerprint(voter_email)
    return {v.matchup_id: v.competitor_id for v in _existing_votes(db, matchup_ids, fingerprint, source or DIRECT_SOURCE)}


def check_ballot_status(
    db: Session,
    campaign_slug: str,
    voter_email: str,
    source: str = DIRECT_SOURCE,
    round_number: Optional[int] = None,
) -> vote_schemas.BallotStatus:
    campaign = db.query(Campaign).filter(Campaign.slug == campaign_slug).first()
    if not campaign:
        raise NotFound("Campaign", campaign_slug)

    query = db.query(Round).filter(Round.campaign_id == campaign.id)
    if round_number is not None:
        query = query.filter(Round.round_number == round_number)
    else:
        query = query.filter(Round.is_active.is_(True))
    matchup_ids = [m.id for r in query.all() for m in r.matchups]

    voted = check_voted(db, matchup_ids, voter_email, source)
    return vote_schemas.BallotStatus(
        has_voted=bool(voted),
        voted_matchups=voted,
        all_matchups_voted=bool(matchup_ids) and len(voted) == len(matchup_ids),
        total_matchups=len(matchup_ids),
        voted_count=len(voted),
    )


def tally_from_ledger(db: Session, matchup_id: int) -> Tuple[int, int]:
    """Recount a matchup straight from its Vote rows, ignoring the cached counters."""
    rows = (
        db.query(Vote.competitor_slot, func.count(Vote.id))
        .filter(Vote.matchup_id == matchup_id)
        .group_by(Vote.competitor_slot)
        .all()
    )
    counts = dict(rows)
    return counts.get(1, 0), counts.get(2, 0)


def list_submissions(db: Session, campaign_id: Optional[int] = None) -> vote_schemas.SubmissionReport:
    """
    Admin-only report with decrypted voter details, newest first, grouped by
    voter and source. Plaintext never leaves this function except in the
    returned report.
    """
    query = db.query(Vote).join(Matchup, Vote.matchup_id == Matchup.id).join(Round, Matchup.round_id == Round.id)
    if campaign_id is not None:
        query = query.filter(Vote.campaign_id == campaign_id)
    votes = query.order_by(Vote.created_at.desc(), Vote.id.desc()).all()

    rows = []
    groups: "OrderedDict[Tuple[str, str], vote_schemas.SubmissionGroup]" = OrderedDict()
    for vote in votes:
        row = vote_schemas.SubmissionRead(
            id=vote.id,
            matchup_id=vote.matchup_id,
            competitor_id=vote.competitor_id,
            competitor_name=vote.competitor.name if vote.competitor else None,
            round_number=vote.matchup.round.round_number,
            source=vote.source,
            voter_name=encryption.safe_decrypt(vote.voter_name),
            voter_email=encryption.safe_decrypt(vote.voter_email),
            created_at=vote.created_at,
        )
        rows.append(row)
        key = (vote.voter_fingerprint, vote.source)
        if key not in groups:
            groups[key] = vote_schemas.SubmissionGroup(
                voter_name=row.voter_name, voter_email=row.voter_email, source=row.source, votes=[]
            )
        groups[key].votes.append(row)

    return vote_schemas.SubmissionReport(votes=rows, submissions=list(groups.values()), total_votes=len(rows))


def vote_stats(db: Session, campaign_id: int) -> vote_schemas.VoteStats:
    """Ballot totals for a campaign; voters are counted by fingerprint, so no email is decrypted."""
    total = db.query(Vote).filter(Vote.campaign_id == campaign_id).count()
    unique = (
        db.query(func.count(func.distinct(Vote.voter_fingerprint)))
        .filter(Vote.campaign_id == campaign_id)
        .scalar()
    )
    by_source = (
        db.query(Vote.source, func.count(Vote.id))
        .filter(Vote.campaign_id == campaign_id)
        .group_by(Vote.source)
        .order_by(Vote.source)
        .all()
    )
    return vote_schemas.VoteStats(total_votes=total, unique_voters=unique or 0, votes_by_source=dict(by_source))
