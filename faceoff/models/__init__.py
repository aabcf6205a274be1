from faceoff.core.database import Base

# Import all models here to ensure they are registered with Base
from .campaign import Campaign
from .competitor import Competitor
from .round import Round
from .matchup import Matchup
from .vote import Vote, DIRECT_SOURCE
from .vote_source import VoteSource
from .admin_user import AdminUser

__all__ = [
    "Base",
    "Campaign",
    "Competitor",
    "Round",
    "Matchup",
    "Vote",
    "DIRECT_SOURCE",
    "VoteSource",
    "AdminUser",
]
