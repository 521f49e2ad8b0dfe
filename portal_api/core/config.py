from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional

class Settings(BaseSettings):
    DATABASE_URL: str
    
    REDIS_URL: str
    
    SECRET_KEY: str
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440  # 24 hours
    
    RATE_LIMIT: int = 100
    RATE_LIMIT_WINDOW: int = 600  # 10 minutes
    
    IDEMPOTENCY_TTL: int = 300  # 5 minutes
    CONVERSION_SESSION_TTL: int = 3600  # 1 hour
    GENERATED_PASSWORD_LENGTH: int = 12
    
    WEBHOOK_URL: Optional[str] = None
    WEBHOOK_TIMEOUT: int = 10
    WEBHOOK_RETRIES: int = 3
    
    API_TITLE: str = "Agency Portal API"
    API_DESCRIPTION: str = "Operator dashboard backend: leads, customers, engagements and portal access"
    API_VERSION: str = "1.0.0"
    
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)

settings = Settings()
