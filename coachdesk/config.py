"""Application configuration using Pydantic Settings."""
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # App
    app_name: str = "CoachDesk"
    debug: bool = False
    log_level: str = "INFO"

    # Deployment identifier; every coach's students live under artifacts/{app_id}/users/{uid}/students
    app_id: str = "cricnets-app-v6"

    # Document store
    store_backend: Literal["mongo", "firestore"] = "mongo"

    # MongoDB (change streams need a replica set, e.g. mongodb://localhost:27017/?replicaSet=rs0)
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_db_name: str = "coachdesk"

    # Firebase (Firestore backend and ID-token sign-in)
    firebase_credentials_path: str = ""
    firebase_project_id: str = ""

    # JWT
    jwt_secret_key: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60
    jwt_refresh_token_expire_days: int = 30

    # CORS (comma-separated origins)
    cors_origins: str = "http://localhost:5173"

    @model_validator(mode="after")
    def _validate_production_secrets(self):
        if not self.debug:
            if self.jwt_secret_key in ("change-me-in-production", ""):
                raise ValueError(
                    "JWT_SECRET_KEY must be set to a strong secret when DEBUG is not enabled. "
                    "Generate one with: python -c \"import secrets; print(secrets.token_hex(32))\""
                )
        return self


settings = Settings()
