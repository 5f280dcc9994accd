"""Application settings loaded from the environment (.env supported)"""
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv(dotenv_path=".env")


@dataclass(frozen=True)
class Settings:
    """Process-wide settings, read once at startup"""

    # "memory" keeps documents in-process; "supabase" uses the managed database
    store_backend: str = "memory"
    supabase_url: Optional[str] = None
    supabase_service_role_key: Optional[str] = None
    documents_table: str = "documents"
    telegram_bot_token: Optional[str] = None
    invite_base_url: str = "http://localhost:5173"
    cors_origins: str = "*"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            store_backend=os.getenv("STORE_BACKEND", "memory").lower(),
            supabase_url=os.getenv("SUPABASE_URL"),
            supabase_service_role_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY"),
            documents_table=os.getenv("DOCUMENTS_TABLE", "documents"),
            telegram_bot_token=os.getenv("TELEGRAM_BOT_TOKEN"),
            invite_base_url=os.getenv("INVITE_BASE_URL", "http://localhost:5173"),
            cors_origins=os.getenv("CORS_ORIGINS", "*"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    @property
    def allowed_origins(self) -> list:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]
