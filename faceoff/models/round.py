from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from faceoff.core.database import Base, utcnow


class Round(Base):
    __tablename__ = "rounds"
    __table_args__ = (UniqueConstraint("campaign_id", "round_number", name="uq_round_campaign_number"),)

    id = Column(Integer, primary_key=True, index=True)
    campaign_id = Column(Integer, ForeignKey("campaigns.id", ondelete="CASCADE"), index=True, nullable=False)
    round_number = Column(Integer, nullable=False)  # 1-based, no gaps
    name = Column(String, nullable=False)
    is_active = Column(Boolean, default=False, nullable=False)
    is_complete = Column(Boolean, default=False, nullable=False)
    start_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    campaign = relationship("Campaign", back_populates="rounds")
    matchups = relationship(
        "Matchup",
        back_populates="round",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Matchup.matchup_index",
    )

    @property
    def status(self) -> str:
        if self.is_complete:
            return "complete"
        if self.is_active:
            return "active"
        return "pending"
