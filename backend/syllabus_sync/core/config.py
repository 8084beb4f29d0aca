from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    PROJECT_NAME: str = "Syllabus Sync"
    DATABASE_URL: str = "sqlite:///./syllabus_sync.db"
    OLLAMA_URL: str = "http://localhost:11434"
    EXTRACTION_MODEL: str = "qwen2.5vl:7b"
    EXTRACTION_STREAMING: bool = True
    # Per-attempt deadline for the upstream extraction call.
    EXTRACTION_TIMEOUT_SECONDS: float = 120.0
    MAX_UPLOAD_BYTES: int = 20 * 1024 * 1024
    MAX_PDF_IMAGE_PAGES: int = 10
    CORS_ALLOWED_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ALLOWED_ORIGINS.split(",") if origin.strip()]


@lru_cache
def get_settings() -> "Settings":
    return Settings()


settings = get_settings()
