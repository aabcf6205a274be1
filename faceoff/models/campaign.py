from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.orm import relationship

from faceoff.core.database import Base, utcnow


class Campaign(Base):
    __tablename__ = "campaigns"

    id = Column(Integer, primary_key=True, index=True)
    slug = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=False, nullable=False, index=True)
    is_demo = Column(Boolean, default=False, nullable=False)
    # Cached projection of the active round's number, kept in step by the round state machine
    current_round = Column(Integer, default=1, nullable=False)
    start_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    competitors = relationship(
        "Competitor", back_populates="campaign", cascade="all, delete-orphan", passive_deletes=True
    )
    rounds = relationship(
        "Round",
        back_populates="campaign",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Round.round_number",
    )
    votes = relationship("Vote", back_populates="campaign", cascade="all, delete-orphan", passive_deletes=True)
    vote_sources = relationship(
        "VoteSource", back_populates="campaign", cascade="all, delete-orphan", passive_deletes=True
    )
