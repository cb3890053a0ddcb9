# app/core/config.py
from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Service account JSON used by the Firebase Admin SDK
    FIREBASE_CREDENTIALS: str = "app/core/firebase_key.json"

    # Web API key, only needed for email/password sign-in through the REST API
    FIREBASE_WEB_API_KEY: str = ""
    AUTH_REST_URL: str = "https://identitytoolkit.googleapis.com/v1"
    REQUEST_TIMEOUT_SECONDS: float = 10.0

    # Firestore collections
    PATIENTS_COLLECTION: str = "patients"
    USERS_COLLECTION: str = "users"

    DEBUG_MODE: bool = True

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


settings = Settings()
