from sqlalchemy import Column, DateTime, ForeignKey, Integer
from sqlalchemy.orm import relationship

from faceoff.core.database import Base, utcnow


class Matchup(Base):
    __tablename__ = "matchups"

    id = Column(Integer, primary_key=True, index=True)
    round_id = Column(Integer, ForeignKey("rounds.id", ondelete="CASCADE"), index=True, nullable=False)
    campaign_id = Column(Integer, ForeignKey("campaigns.id", ondelete="CASCADE"), index=True, nullable=False)
    matchup_index = Column(Integer, nullable=False)  # 0-based; feeds next-round slot matchup_index // 2
    competitor1_id = Column(Integer, ForeignKey("competitors.id", ondelete="SET NULL"), nullable=True)
    competitor2_id = Column(Integer, ForeignKey("competitors.id", ondelete="SET NULL"), nullable=True)
    winner_id = Column(Integer, ForeignKey("competitors.id", ondelete="SET NULL"), nullable=True)
    # Cache of the vote ledger; only ever changed in the same transaction as a Vote insert/delete
    competitor1_votes = Column(Integer, default=0, nullable=False)
    competitor2_votes = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    round = relationship("Round", back_populates="matchups")
    competitor1 = relationship("Competitor", foreign_keys=[competitor1_id])
    competitor2 = relationship("Competitor", foreign_keys=[competitor2_id])
    winner = relationship("Competitor", foreign_keys=[winner_id])
    votes = relationship("Vote", back_populates="matchup", cascade="all, delete-orphan", passive_deletes=True)

    @property
    def is_ready(self) -> bool:
        return self.competitor1_id is not None and self.competitor2_id is not None

    def slot_of(self, competitor_id: int):
        """1 or 2 for a competitor occupying this matchup, None otherwise."""
        if competitor_id is None:
            return None
        if competitor_id == self.competitor1_id:
            return 1
        if competitor_id == self.competitor2_id:
            return 2
        return None

    def opponent_of(self, competitor_id: int):
        return self.competitor2_id if competitor_id == self.competitor1_id else self.competitor1_id
