"""
Round and matchup lifecycle.

A round moves Pending -> Active -> Complete; `undo_round_completion` is the
only way back. At most one round per campaign is active, and the campaign's
`current_round` always follows whichever round was last activated. Winners
advance into the next round's matchup ``matchup_index // 2``: even indexes
fill competitor1, odd indexes competitor2. A next-round slot, once filled,
is never overwritten with a different competitor.
"""
import logging
import math
from typing import Dict, List, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.orm import Session

from faceoff.core.config import settings
from faceoff.core.database import transaction
from faceoff.core.errors import IncompleteBracketState, InvalidTransition, NotFound
from faceoff.models import Campaign, Competitor, Matchup, Round, Vote
from faceoff.schemas import round_schemas
from faceoff.services.campaign_service import deactivate_other_campaigns

logger = logging.getLogger(__name__)


def get_round(db: Session, round_id: int) -> Round:
    round_ = db.get(Round, round_id)
    if not round_:
        raise NotFound("Round", round_id)
    return round_


def _lock_campaign(db: Session, campaign_id: int) -> Campaign:
    # Row lock serializes concurrent lifecycle calls on the same campaign (no-op on SQLite).
    # State read before the lock is expired so the checks that follow see committed rows.
    db.expire_all()
    return db.query(Campaign).filter(Campaign.id == campaign_id).with_for_update().one()


def _next_round(db: Session, round_: Round) -> Optional[Round]:
    return (
        db.query(Round)
        .filter(Round.campaign_id == round_.campaign_id, Round.round_number == round_.round_number + 1)
        .first()
    )


def _make_active(db: Session, campaign: Campaign, round_: Round) -> None:
    db.execute(
        update(Round)
        .where(Round.campaign_id == campaign.id, Round.id != round_.id)
        .values(is_active=False)
    )
    round_.is_active = True
    round_.is_complete = False
    campaign.current_round = round_.round_number


def _seed_rank(competitor: Optional[Competitor]) -> float:
    if competitor is None or competitor.seed is None:
        return math.inf
    return competitor.seed


def decide_winner(matchup: Matchup) -> Tuple[int, int, str]:
    """
    (winner_id, loser_id, decided_by) for a matchup with both slots filled.

    A winner already set by hand stands. Otherwise more votes wins, and a tie
    goes to the better (lower) seed; a missing seed loses every tie against a
    seeded competitor. Two equal or missing seeds leave competitor1 ahead.
    """
    c1, c2 = matchup.competitor1_id, matchup.competitor2_id
    if matchup.winner_id is not None:
        return matchup.winner_id, matchup.opponent_of(matchup.winner_id), "manual"
    if matchup.competitor1_votes > matchup.competitor2_votes:
        return c1, c2, "votes"
    if matchup.competitor2_votes > matchup.competitor1_votes:
        return c2, c1, "votes"
    if _seed_rank(matchup.competitor1) <= _seed_rank(matchup.competitor2):
        return c1, c2, "seed"
    return c2, c1, "seed"


def _advancement_target(next_matchups: Dict[int, Matchup], matchup: Matchup, winner_id: int) -> Tuple[Matchup, int]:
    """The next-round matchup and slot this winner feeds, refusing to overwrite a different occupant."""
    target = next_matchups.get(matchup.matchup_index // 2)
    if target is None:
        raise IncompleteBracketState(
            f"Next round has no matchup to receive the winner of matchup {matchup.id}", matchup_id=matchup.id
        )
    slot = 1 if matchup.matchup_index % 2 == 0 else 2
    occupant = getattr(target, f"competitor{slot}_id")
    if occupant is not None and occupant != winner_id:
        raise IncompleteBracketState(
            f"Slot {slot} of matchup {target.id} already holds competitor {occupant}; "
            f"cannot advance competitor {winner_id} from matchup {matchup.id}",
            matchup_id=target.id,
        )
    return target, slot


def _eliminate(db: Session, competitor_id: int, round_number: int) -> None:
    loser = db.get(Competitor, competitor_id)
    loser.is_eliminated = True
    loser.eliminated_in_round = round_number


def activate_round(db: Session, round_id: int) -> round_schemas.RoundActivationRead:
    """Open a pending round for voting, closing any other active round of the campaign."""
    round_ = get_round(db, round_id)

    with transaction(db):
        campaign = _lock_campaign(db, round_.campaign_id)
        if round_.is_complete:
            raise InvalidTransition(f"Round {round_.round_number} is already complete")
        if round_.is_active:
            raise InvalidTransition(f"Round {round_.round_number} is already active")
        _make_active(db, campaign, round_)

    logger.info("Round %s (#%s) of campaign %s activated", round_.id, round_.round_number, round_.campaign_id)
    return round_schemas.RoundActivationRead(
        round_id=round_.id,
        round_number=round_.round_number,
        campaign_id=round_.campaign_id,
        current_round=round_.round_number,
    )


def complete_round(db: Session, round_id: int) -> round_schemas.RoundCompletion:
    """
    Lock in every winner of an active round and move them on.

    All checks run under the campaign lock before anything is written: the
    round must be active, every matchup needs both competitors, and each
    winner's next-round slot must be empty or already hold that same winner.
    Winners, eliminations, the round flags, advancement and activation of the
    next round then commit as one transaction. Completing the final round
    leaves the champion to be derived from its single matchup and, when
    configured, closes the campaign.
    """
    round_ = get_round(db, round_id)

    with transaction(db):
        campaign = _lock_campaign(db, round_.campaign_id)
        if round_.is_complete:
            raise InvalidTransition(f"Round {round_.round_number} is already complete")
        if not round_.is_active:
            raise InvalidTransition(f"Round {round_.round_number} is not active")

        matchups = list(round_.matchups)
        for matchup in matchups:
            if not matchup.is_ready:
                raise IncompleteBracketState(
                    f"Matchup {matchup.id} (position {matchup.matchup_index}) is missing a competitor",
                    matchup_id=matchup.id,
                )
            if matchup.winner_id is not None and matchup.slot_of(matchup.winner_id) is None:
                raise IncompleteBracketState(
                    f"Matchup {matchup.id} has a winner that is not one of its competitors", matchup_id=matchup.id
                )

        outcomes: List[round_schemas.MatchupOutcome] = []
        for matchup in matchups:
            winner_id, loser_id, decided_by = decide_winner(matchup)
            outcomes.append(
                round_schemas.MatchupOutcome(
                    matchup_id=matchup.id,
                    matchup_index=matchup.matchup_index,
                    winner_id=winner_id,
                    loser_id=loser_id,
                    decided_by=decided_by,
                )
            )

        next_round = _next_round(db, round_)
        placements: List[Tuple[Matchup, int, int]] = []
        if next_round is not None:
            if next_round.is_complete:
                raise InvalidTransition(f"Round {next_round.round_number} is already complete")
            next_matchups = {m.matchup_index: m for m in next_round.matchups}
            by_id = {m.id: m for m in matchups}
            for outcome in outcomes:
                target, slot = _advancement_target(next_matchups, by_id[outcome.matchup_id], outcome.winner_id)
                placements.append((target, slot, outcome.winner_id))

        for matchup, outcome in zip(matchups, outcomes):
            matchup.winner_id = outcome.winner_id
            _eliminate(db, outcome.loser_id, round_.round_number)
        round_.is_complete = True
        round_.is_active = False

        if next_round is not None:
            for target, slot, winner_id in placements:
                setattr(target, f"competitor{slot}_id", winner_id)
            _make_active(db, campaign, next_round)
        elif settings.CLOSE_COMPLETED_CAMPAIGNS:
            campaign.is_active = False

    champion_id = outcomes[0].winner_id if next_round is None and len(outcomes) == 1 else None
    logger.info(
        "Round %s (#%s) of campaign %s completed: %d winners, next round %s",
        round_.id,
        round_.round_number,
        round_.campaign_id,
        len(outcomes),
        next_round.round_number if next_round is not None else None,
    )
    if champion_id is not None:
        logger.info("Campaign %s champion: competitor %s", round_.campaign_id, champion_id)

    return round_schemas.RoundCompletion(
        round_id=round_.id,
        round_number=round_.round_number,
        outcomes=outcomes,
        next_round=next_round.round_number if next_round is not None else None,
        champion_id=champion_id,
    )


def set_winner_manually(db: Session, matchup_id: int, winner_id: int) -> round_schemas.ManualWinnerRead:
    """
    Admin override for a single matchup: set its winner, eliminate the loser
    and advance the winner straight away, without waiting for the rest of the
    round. Setting the same winner again changes nothing; replacing an
    existing winner is refused.
    """
    matchup = db.get(Matchup, matchup_id)
    if not matchup:
        raise NotFound("Matchup", matchup_id)

    with transaction(db):
        _lock_campaign(db, matchup.campaign_id)
        round_ = matchup.round
        if round_.is_complete:
            raise InvalidTransition(f"Round {round_.round_number} is already complete")
        if not matchup.is_ready:
            raise IncompleteBracketState(f"Matchup {matchup.id} is missing a competitor", matchup_id=matchup.id)
        if matchup.slot_of(winner_id) is None:
            raise IncompleteBracketState(
                f"Competitor {winner_id} is not one of the competitors of matchup {matchup.id}", matchup_id=matchup.id
            )
        if matchup.winner_id is not None and matchup.winner_id != winner_id:
            raise InvalidTransition(f"Matchup {matchup.id} already has winner {matchup.winner_id}")

        loser_id = matchup.opponent_of(winner_id)
        next_round = _next_round(db, round_)
        target, slot = None, None
        if next_round is not None:
            if next_round.is_complete:
                raise InvalidTransition(f"Round {next_round.round_number} is already complete")
            target, slot = _advancement_target(
                {m.matchup_index: m for m in next_round.matchups}, matchup, winner_id
            )

        matchup.winner_id = winner_id
        _eliminate(db, loser_id, round_.round_number)
        if target is not None:
            setattr(target, f"competitor{slot}_id", winner_id)

    logger.info(
        "Matchup %s winner set manually to competitor %s (advanced to matchup %s slot %s)",
        matchup_id,
        winner_id,
        target.id if target is not None else None,
        slot,
    )
    return round_schemas.ManualWinnerRead(
        matchup_id=matchup_id,
        winner_id=winner_id,
        loser_id=loser_id,
        advanced_to_matchup_id=target.id if target is not None else None,
        advanced_to_slot=slot,
    )


def undo_round_completion(
    db: Session, round_id: int, discard_next_round_votes: bool = False
) -> round_schemas.UndoRead:
    """
    Roll a completed round back to active: clear its winners, restore the
    competitors it eliminated, and empty and close the next round.

    Refused when the next round is complete or has a decided matchup. Votes
    already cast in the next round block the undo unless
    `discard_next_round_votes` is set, in which case they are deleted and the
    counters zeroed in the same transaction.
    """
    round_ = get_round(db, round_id)

    with transaction(db):
        campaign = _lock_campaign(db, round_.campaign_id)
        if not round_.is_complete:
            raise InvalidTransition(f"Round {round_.round_number} is not complete")

        next_round = _next_round(db, round_)
        next_matchup_ids: List[int] = []
        next_votes = 0
        if next_round is not None:
            if next_round.is_complete:
                raise InvalidTransition(
                    f"Round {next_round.round_number} is already complete; undo it first"
                )
            if any(m.winner_id is not None for m in next_round.matchups):
                raise InvalidTransition(f"Round {next_round.round_number} already has decided matchups")
            next_matchup_ids = [m.id for m in next_round.matchups]
            if next_matchup_ids:
                next_votes = db.query(Vote).filter(Vote.matchup_id.in_(next_matchup_ids)).count()
            if next_votes and not discard_next_round_votes:
                raise InvalidTransition(
                    f"Round {next_round.round_number} already has {next_votes} votes; "
                    "pass discard_next_round_votes to remove them"
                )

        cleared = 0
        for matchup in round_.matchups:
            if matchup.winner_id is not None:
                cleared += 1
            matchup.winner_id = None

        restored = (
            db.query(Competitor)
            .filter(
                Competitor.campaign_id == round_.campaign_id,
                Competitor.eliminated_in_round == round_.round_number,
            )
            .all()
        )
        for competitor in restored:
            competitor.is_eliminated = False
            competitor.eliminated_in_round = None

        if next_round is not None:
            if next_votes:
                db.query(Vote).filter(Vote.matchup_id.in_(next_matchup_ids)).delete()
            for matchup in next_round.matchups:
                matchup.competitor1_id = None
                matchup.competitor2_id = None
                matchup.competitor1_votes = 0
                matchup.competitor2_votes = 0
            next_round.is_active = False
        elif settings.CLOSE_COMPLETED_CAMPAIGNS and not campaign.is_active:
            if settings.SINGLE_ACTIVE_CAMPAIGN:
                deactivate_other_campaigns(db, campaign.id)
            campaign.is_active = True

        _make_active(db, campaign, round_)

    logger.info(
        "Round %s (#%s) of campaign %s reopened: %d winners cleared, %d competitors restored, %d votes discarded",
        round_.id,
        round_.round_number,
        round_.campaign_id,
        cleared,
        len(restored),
        next_votes,
    )
    return round_schemas.UndoRead(
        round_id=round_.id,
        round_number=round_.round_number,
        cleared_winners=cleared,
        restored_competitors=len(restored),
        discarded_votes=next_votes,
    )
