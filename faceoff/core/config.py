from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./faceoff.db"
    DATABASE_ECHO: bool = False

    SECRET_KEY: str = "CHANGE_ME_SECRET_KEY"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 8

    # Any string; a Fernet key is derived from it when it is not one already.
    ENCRYPTION_KEY: str = "CHANGE_ME_ENCRYPTION_KEY"
    VOTER_HASH_KEY: Optional[str] = None

    SINGLE_ACTIVE_CAMPAIGN: bool = True
    CLOSE_COMPLETED_CAMPAIGNS: bool = True
    ALLOW_GLOBAL_VOTE_SOURCES: bool = True

    ADMIN_USERNAME: Optional[str] = None
    ADMIN_PASSWORD: Optional[str] = None

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"


settings = Settings()
