from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from faceoff.core.database import Base, utcnow

DIRECT_SOURCE = "direct"


class Vote(Base):
    __tablename__ = "votes"
    __table_args__ = (
        # The anti-double-voting guarantee; enforced by the store, not only by a prior lookup
        UniqueConstraint("matchup_id", "voter_fingerprint", "source", name="uq_vote_matchup_voter_source"),
    )

    id = Column(Integer, primary_key=True, index=True)
    matchup_id = Column(Integer, ForeignKey("matchups.id", ondelete="CASCADE"), index=True, nullable=False)
    competitor_id = Column(Integer, ForeignKey("competitors.id", ondelete="CASCADE"), nullable=False)
    campaign_id = Column(Integer, ForeignKey("campaigns.id", ondelete="CASCADE"), index=True, nullable=False)
    competitor_slot = Column(Integer, nullable=False)  # which matchup counter this ballot incremented
    voter_name = Column(String, nullable=False)  # encrypted
    voter_email = Column(String, nullable=False)  # encrypted
    voter_fingerprint = Column(String(64), index=True, nullable=False)
    source = Column(String, default=DIRECT_SOURCE, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    matchup = relationship("Matchup", back_populates="votes")
    competitor = relationship("Competitor")
    campaign = relationship("Campaign", back_populates="votes")
