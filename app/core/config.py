from pydantic_settings import BaseSettings
from typing import Optional, List, Dict, Any

class Settings(BaseSettings):
    PROJECT_NAME: str = "CBT Attempt Engine"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # CORS
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./cbt.db"
    TEST_DATABASE_URL: Optional[str] = None

    # Logging
    LOG_DIR: str = "logs"
    LOG_LEVEL: str = "INFO"

    # Attempt lifecycle
    ATTEMPT_UPDATE_MAX_RETRIES: int = 3
    SWEEP_INTERVAL_MINUTES: int = 1
    SWEEP_BATCH_SIZE: int = 500
    ABANDON_GRACE_MINUTES: int = 30

    # Integrity thresholds; a counter strictly above its threshold terminates the attempt
    MAX_FULL_SCREEN_EXITS: int = 3
    MAX_TAB_SWITCHES: int = 5
    MAX_COPY_ATTEMPTS: int = 5

    # Used when an exam has no grade scale of its own; empty means no letter grades
    DEFAULT_GRADE_SCALE: List[Dict[str, Any]] = [
        {"grade": "A", "min_percentage": 70},
        {"grade": "B", "min_percentage": 60},
        {"grade": "C", "min_percentage": 50},
        {"grade": "D", "min_percentage": 45},
        {"grade": "E", "min_percentage": 40},
        {"grade": "F", "min_percentage": 0},
    ]

    class Config:
        env_file = ".env"

settings = Settings()
