"""Application configuration"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    HOST: str = "0.0.0.0"
    PORT: int = 5000
    DATABASE_URL: str = "sqlite:///./inventory.db"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # CORS
    ALLOWED_ORIGINS: List[str] = ["*"]

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_PER_MINUTE: int = 60

    # Uploaded product images
    UPLOAD_DIR: str = "uploads"
    UPLOAD_URL_PATH: str = "/uploads"
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024

    # Remove the old image file when a product's image is replaced or the product is deleted
    DELETE_REPLACED_IMAGES: bool = False

    class Config:
        env_file = ".env"


settings = Settings()
