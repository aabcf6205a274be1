from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from faceoff.core.database import Base, utcnow


class Competitor(Base):
    __tablename__ = "competitors"

    id = Column(Integer, primary_key=True, index=True)
    campaign_id = Column(Integer, ForeignKey("campaigns.id", ondelete="CASCADE"), index=True, nullable=False)
    name = Column(String, nullable=False)
    description = Column(Text, default="", nullable=False)
    image_url = Column(String, nullable=True)
    seed = Column(Integer, nullable=True)  # lower is better; also the tie-break
    # Written together, only by the round state machine
    is_eliminated = Column(Boolean, default=False, nullable=False)
    eliminated_in_round = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    campaign = relationship("Campaign", back_populates="competitors")
