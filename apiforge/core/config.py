from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    SERVICE_NAME: str = "apiforge"
    APP_DEBUG: bool = True
    
    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False  # True for production (structured JSON), False for dev (colored)
    
    # Bulk validation
    VALIDATION_WORKERS: int = 8
    
    # OpenAPI emission
    OPENAPI_VERSION: str = "3.1.0"
    OPENAPI_DIALECT: str = "https://json-schema.org/draft/2020-12/schema"
    OUTPUT_FORMAT: str = "yaml"
    
    class Config:
        env_file = ".env"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
