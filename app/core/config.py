from typing import List

from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    PROJECT_NAME: str = "QR Exam Masking Portal"
    API_V1_STR: str = "/api/v1"
    DATABASE_URL: str
    SECRET_KEY: str = "qr-exam-masking-portal"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 7 * 24 * 60
    ENVIRONMENT: str = "development"
    LOG_DIR: str = "logs"
    ADMIN_KEY: str
    MARKER_KEY: str
    MAX_CODES_PER_BATCH: int = 500
    DEFAULT_EXAM_DURATION: int = 180
    ACTIVE_EXAM_WINDOW_DAYS: int = 7
    CORS_ORIGINS: List[str] = [
        "http://localhost",
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:8000",
    ]

    class Config:
        case_sensitive = True


settings = Settings()
