from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    # ─────────── APP ───────────
    app_name: str = "Bank Property Valuation Desk"
    environment: str = "dev"
    log_level: str = "INFO"

    # ─────────── API ───────────
    api_prefix: str = "/api/v1"
    request_id_header: str = "X-Request-Id"

    # ─────────── DATABASE ───────────
    database_url: str

    # ─────────── JWT / AUTH ───────────
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"
    jwt_access_token_minutes: int = 1440  # 24 hours

    # ─────────── ATTACHMENTS ───────────
    upload_dir: str = "instance/uploads"
    upload_public_base_url: str = "/uploads"
    max_upload_bytes: int = 8 * 1024 * 1024

    # ─────────── DROPDOWN DEFAULTS ───────────
    default_banks: List[str] = [
        "State Bank of India",
        "Bank of Baroda",
        "Union Bank of India",
        "HDFC Bank",
        "ICICI Bank",
    ]
    default_cities: List[str] = ["Ahmedabad", "Surat", "Vadodara", "Rajkot", "Mumbai"]
    default_dsas: List[str] = []
    default_engineers: List[str] = []


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
