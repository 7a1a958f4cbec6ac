# league_portal/core/config.py
from __future__ import annotations

import json
import base64
from typing import List, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


EnvType = Literal["local", "dev", "staging", "prod"]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # App
    APP_NAME: str = "LeaguePortal"
    APP_ENV: EnvType = "local"
    LOG_LEVEL: str = "INFO"
    ENCRYPTION_KEY: str  # required; Fernet key for the persisted session

    # CORS
    CORS_ORIGINS: str | List[str] = Field(
        default='["http://localhost:3000","http://127.0.0.1:3000"]',
        description='JSON list or comma-separated origins',
    )

    # Local session store
    DATABASE_URL: Optional[str] = None
    PERSIST_SESSION: bool = True
    AUTO_REFRESH_TOKEN: bool = True

    # Hosted backend (rest + auth)
    SUPABASE_URL: str = "http://localhost:54321"
    SUPABASE_ANON_KEY: str = ""
    HTTP_TIMEOUT: float = 15.0

    # OAuth handshake
    AUTH_PROVIDER: str = "discord"
    OAUTH_REDIRECT_URI: str = "http://127.0.0.1:8000/auth/callback"
    FRONTEND_URL: str = "http://localhost:3000"

    @property
    def IS_LOCAL(self) -> bool:
        return self.APP_ENV == "local"

    @property
    def rest_url(self) -> str:
        return f"{self.SUPABASE_URL.rstrip('/')}/rest/v1"

    @property
    def auth_url(self) -> str:
        return f"{self.SUPABASE_URL.rstrip('/')}/auth/v1"

    # ---------- Validators ----------

    @field_validator("ENCRYPTION_KEY")
    @classmethod
    def _validate_fernet_key(cls, v: str) -> str:
        # Fernet requires 32-byte urlsafe base64-encoded key
        try:
            raw = v.strip().strip('"').strip("'")
            decoded = base64.urlsafe_b64decode(raw + "===")  # tolerate missing padding
            if len(decoded) != 32:
                raise ValueError
            return raw
        except Exception:
            raise ValueError(
                "ENCRYPTION_KEY must be a 32-byte urlsafe base64-encoded Fernet key "
                "(generate with: from cryptography.fernet import Fernet; print(Fernet.generate_key().decode()))"
            )

    @field_validator("CORS_ORIGINS")
    @classmethod
    def _parse_cors(cls, v):
        # Accept JSON list or comma-separated string
        if isinstance(v, list):
            return v
        s = str(v).strip()
        if not s:
            return []
        try:
            parsed = json.loads(s)
            if isinstance(parsed, list):
                return parsed
        except ValueError:
            pass
        return [p.strip() for p in s.split(",") if p.strip()]

    @field_validator("LOG_LEVEL")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.strip().upper() or "INFO"

    # ---------- Runtime validations ----------

    def validate_at_startup(self) -> None:
        """Fail fast with clear messages for misconfigurations."""
        problems: list[str] = []

        if not self.IS_LOCAL:
            if not self.SUPABASE_ANON_KEY:
                problems.append("SUPABASE_ANON_KEY is required in non-local env.")
            if self.SUPABASE_URL.startswith("http://localhost"):
                problems.append("SUPABASE_URL must point at the hosted project in non-local env.")
            if not self.OAUTH_REDIRECT_URI.startswith("https://"):
                problems.append("OAUTH_REDIRECT_URI must be https in non-local env.")
            if not self.CORS_ORIGINS:
                problems.append("CORS_ORIGINS must contain at least one allowed origin in non-local env.")

        if problems:
            raise RuntimeError("Config validation failed: " + " ".join(problems))


settings = Settings()
