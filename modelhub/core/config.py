from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    APP_NAME: str = "ModelHub"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "production"
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str = "sqlite:///./modelhub.db"

    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str = ""
    STATS_CACHE_TTL: int = 30

    UPLOAD_PATH: str = "./storage/uploads"
    PUBLIC_URL_PREFIX: str = "/uploads"
    MAX_FILE_SIZE: int = 52428800
    ALLOWED_FILE_TYPES: str = "model/gltf-binary,model/gltf+json,application/octet-stream"
    DEFAULT_THUMBNAIL_URL: str = (
        "https://images.unsplash.com/photo-1618005198919-d3d4b5a92ead?w=400&h=300&fit=crop"
    )

    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def allowed_file_types(self) -> List[str]:
        return [t.strip() for t in (self.ALLOWED_FILE_TYPES or "").split(",") if t.strip()]

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"


settings = Settings()
