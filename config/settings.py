from __future__ import annotations

import os
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv

from agent.errors import ConfigurationMissing


load_dotenv()


def _optional_float(name: str) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return float(raw)


class Settings:
    """Application settings loaded from environment variables.

    Keep all credentials and config centralized here.
    """

    def __init__(self) -> None:
        self.google_api_key: Optional[str] = os.getenv("GEMINI_API_KEY") or None
        self.mongo_uri: Optional[str] = os.getenv("MONGO_URI") or None
        self.mongo_db_name: str = os.getenv("MONGO_DB_NAME", "ifcodeLogsDB")
        self.gemini_model: str = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
        self.temperature: Optional[float] = _optional_float("MODEL_TEMPERATURE")
        self.top_p: Optional[float] = _optional_float("MODEL_TOP_P")
        self.model_timeout: float = float(os.getenv("MODEL_TIMEOUT_SECONDS", "30"))
        self.model_max_retries: int = int(os.getenv("MODEL_MAX_RETRIES", "0"))
        self.timezone: str = os.getenv("APP_TIMEZONE", "America/Sao_Paulo")
        self.static_dir: str = os.getenv("STATIC_DIR", "public")
        self.host: str = os.getenv("HOST", "0.0.0.0")
        self.port: int = int(os.getenv("PORT", "3000"))
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

    def missing(self) -> List[str]:
        """Names of required environment variables that are not set."""
        missing = []
        if not self.mongo_uri:
            missing.append("MONGO_URI")
        if not self.google_api_key:
            missing.append("GEMINI_API_KEY")
        return missing

    def require(self) -> None:
        missing = self.missing()
        if missing:
            raise ConfigurationMissing(missing)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
