from pydantic import Field
from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    # Database
    DATABASE_URL: Optional[str] = None
    PGHOST: Optional[str] = None
    PGDATABASE: Optional[str] = None
    PGUSER: Optional[str] = None
    PGPASSWORD: Optional[str] = None
    PGSSLMODE: str = "require"
    
    # Security
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    
    # Application
    PROJECT_NAME: str = "Highway Express Lane Booking"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173", "http://localhost:8080"]
    
    # Distance provider (Google Distance Matrix)
    GOOGLE_MAPS_API_KEY: Optional[str] = None
    DISTANCE_TIMEOUT_SECONDS: float = 10.0
    DISTANCE_BATCH_SIZE: int = Field(default=25, ge=1, le=25)
    
    # Expiry sweep
    SWEEP_ENABLED: bool = True
    SWEEP_INTERVAL_SECONDS: int = Field(default=30, ge=10, le=60)
    
    # Booking receipts
    RECEIPT_WEBHOOK_URL: Optional[str] = None
    RECEIPT_TIMEOUT_SECONDS: float = 10.0
    
    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        if self.PGHOST:
            return f"postgresql://{self.PGUSER}:{self.PGPASSWORD}@{self.PGHOST}/{self.PGDATABASE}?sslmode={self.PGSSLMODE}"
        return "sqlite:///./expresslane.db"
    
    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
