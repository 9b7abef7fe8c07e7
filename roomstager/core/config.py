"""
Configuration settings for the Roomstager API
"""
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # Application
    app_name: str = "Roomstager API"
    version: str = "1.0.0"
    environment: str = "development"
    debug: bool = True

    # CORS
    cors_origins: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    # Google AI Studio (image generation)
    google_ai_api_key: str = ""
    google_ai_image_model: str = "gemini-2.5-flash-image-preview"
    google_ai_timeout_seconds: Optional[float] = None  # None = no timeout imposed by the API layer

    # Composition pipeline
    composition_dimension: int = 1024  # Side of the square canvas sent to the model
    composition_jpeg_quality: int = 95
    composition_strict_geometry: bool = False  # Reject generated squares of the wrong size

    # Placement search
    placement_max_attempts: int = 50
    placement_min_separation: float = 25.0  # Percent of the scene

    # Product catalog
    asset_dir: str = "assets"
    image_download_retries: int = 3

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # Allow extra fields from .env


# Global settings instance
settings = Settings()
