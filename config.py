"""Application settings loaded from environment variables."""

from __future__ import annotations

import os


class Settings:
    """Runtime configuration for the AnglerAI wizard."""

    # Gemini
    GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", os.getenv("API_KEY", ""))
    SPECIES_MODEL: str = os.getenv("SPECIES_MODEL", "gemini-2.5-flash")
    RECOMMENDATION_MODEL: str = os.getenv("RECOMMENDATION_MODEL", "gemini-3-pro-preview")
    THINKING_BUDGET: int = int(os.getenv("THINKING_BUDGET", "32768"))

    # Zip code fallback geocoding
    GEOCODE_TIMEOUT: float = float(os.getenv("GEOCODE_TIMEOUT", "8"))

    # Server
    SECRET_KEY: str = os.getenv("SECRET_KEY", "replace_this_with_a_secure_key")
    PORT: int = int(os.getenv("PORT", "5757"))
    HOST: str = os.getenv("HOST", "0.0.0.0")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # In-memory wizard sessions; the least recently used are evicted past this
    WIZARD_MAX_SESSIONS: int = int(os.getenv("WIZARD_MAX_SESSIONS", "1000"))


settings = Settings()
