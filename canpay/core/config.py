from pydantic import Field
from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    APP_NAME: str = Field("CanPay", description="Prefix for logger names")
    LOG_LEVEL: str = Field("INFO", description="Root level for engine loggers")
    LOG_PATH: str = Field("./data/logs", description="Directory for rotating log files")

    # Statutory defaults
    TAX_YEAR: int = Field(2025, description="Rate table used when a caller does not pick one")
    # employer WSIB rate; replaces the rate table default when set
    WSIB_RATE: Optional[float] = Field(None, ge=0, le=100, description="Employer WSIB rate (%)")
    DEFAULT_VACATION_RATE: float = Field(4.0, ge=0, le=15, description="Ontario ESA minimum (%)")

settings = Settings()
