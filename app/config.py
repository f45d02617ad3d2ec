from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ==============================
    # Application
    # ==============================
    APP_NAME: str = "Stock Reconciler"
    ENVIRONMENT: str = "local"

    # ==============================
    # Database
    # ==============================
    DATABASE_URL: str = "sqlite:///./inventory.db"
    SQLITE_BEGIN_IMMEDIATE: bool = True
    CATALOG_PAGE_SIZE: int = 1000

    # ==============================
    # Logging
    # ==============================
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # ==============================
    # Security
    # ==============================
    API_KEYS: Optional[str] = None
    API_KEY_HEADER: str = "X-API-Key"
    JWT_SECRET: Optional[str] = None
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: Optional[str] = None
    JWT_ISSUER: Optional[str] = None
    JWT_REQUIRED: bool = False

    # ==============================
    # Barcodes
    # ==============================
    BARCODE_PREFIX: str = "200"
    BARCODE_WIDTH: int = 13
    BARCODE_FALLBACK_BASE: int = 2_000_000_000_000
    BARCODE_MAX_ATTEMPTS: int = 50
    BARCODE_WRITE_ATTEMPTS: int = 5

    # ==============================
    # Catalog / stock
    # ==============================
    DEFAULT_BASE_UNIT: str = "PCS"
    DEFAULT_PACKAGING_UNIT: str = "CTN"

    # ==============================
    # Bulk import
    # ==============================
    IMPORT_MAX_ISSUES: int = 50


@lru_cache
def get_settings() -> Settings:
    """Cached settings loader (once per process)."""
    return Settings()


__all__ = ["Settings", "get_settings"]
