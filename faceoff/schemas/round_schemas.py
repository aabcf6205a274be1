from typing import List, Optional

from pydantic import BaseModel


class RoundActivationRead(BaseModel):
    round_id: int
    round_number: int
    campaign_id: int
    current_round: int


class MatchupOutcome(BaseModel):
    matchup_id: int
    matchup_index: int
    winner_id: int
    loser_id: int
    decided_by: str  # "manual", "votes" or "seed"


class RoundCompletion(BaseModel):
    round_id: int
    round_number: int
    outcomes: List[MatchupOutcome]
    next_round: Optional[int] = None
    champion_id: Optional[int] = None


class ManualWinnerRequest(BaseModel):
    winner_id: int


class ManualWinnerRead(BaseModel):
    matchup_id: int
    winner_id: int
    loser_id: int
    advanced_to_matchup_id: Optional[int] = None
    advanced_to_slot: Optional[int] = None


class UndoRequest(BaseModel):
    discard_next_round_votes: bool = False


class UndoRead(BaseModel):
    round_id: int
    round_number: int
    cleared_winners: int
    restored_competitors: int
    discarded_votes: int = 0
