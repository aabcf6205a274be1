from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class VoteSourceBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    is_active: bool = True
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None

    @model_validator(mode="after")
    def window_is_ordered(self):
        if self.valid_from and self.valid_until and self.valid_until <= self.valid_from:
            raise ValueError("valid_until must be after valid_from")
        return self


class VoteSourceCreate(VoteSourceBase):
    code: str = Field(..., min_length=1, max_length=100, pattern=r"^[A-Za-z0-9_-]+$")
    campaign_id: Optional[int] = None


class VoteSourceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    is_active: Optional[bool] = None
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None


class VoteSourceRead(VoteSourceBase):
    id: int
    code: str
    campaign_id: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class SourceCheck(BaseModel):
    code: str
    allowed: bool
    reason: Optional[str] = None
    detail: Optional[str] = None
