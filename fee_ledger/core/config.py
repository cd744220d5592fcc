from decimal import Decimal
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    app_title: str = Field("Fee Ledger", alias="APP_TITLE")

    ledger_data_file: Optional[str] = Field(None, alias="LEDGER_DATA_FILE")
    currency: str = Field("UGX", alias="LEDGER_CURRENCY")
    overpayment_ratio: Decimal = Field(Decimal("1.1"), alias="LEDGER_OVERPAYMENT_RATIO")

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
