# ============================================================================
# src/medical_insight/config/base_config.py
# ============================================================================
"""
Base Configuration
- Data directory and analysis store location
- Vocabulary table location
"""

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseSettingsConfig(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATA_DIR: Path = Field(
        default=Path("data"),
        description="Directory for local databases and uploads"
    )

    STORE_DB_PATH: Path = Field(
        default=Path("data/analyses.db"),
        description="SQLite database holding saved analyses and insight reports"
    )

    VOCABULARY_PATH: Optional[Path] = Field(
        default=None,
        description="Override for the medical vocabulary table (JSON). Packaged table when unset."
    )

    def create_directories(self):
        """Create all necessary directories if they don't exist"""
        for directory in (self.DATA_DIR, self.STORE_DB_PATH.parent):
            directory.mkdir(parents=True, exist_ok=True)


base_settings = BaseSettingsConfig()
