# core/config.py
from pydantic_settings import BaseSettings
from typing import List
import os

class Settings(BaseSettings):
    # 서버 설정
    PORT: int = int(os.getenv("PORT", "8000"))
    HOST: str = os.getenv("HOST", "0.0.0.0")
    ENV: str = os.getenv("ENV", "development")

    # 데이터베이스 설정 (개발 환경 기본값은 로컬 SQLite)
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./echo.db")

    # JWT 설정 (스태프 관리 API 보호용)
    SECRET_KEY: str = os.getenv("SECRET_KEY", "echo-table-secret-key-for-production-change-this")
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

    # QR 스캔 URL 접두사 - 최종 값은 {SCAN_BASE_URL}{scan_code_id}
    SCAN_BASE_URL: str = os.getenv("SCAN_BASE_URL", "http://localhost:3000/questionnaire.html?qrcode=")

    # 배정(Assignment) 설정
    DEFAULT_ASSIGNMENT_WEIGHT: int = int(os.getenv("DEFAULT_ASSIGNMENT_WEIGHT", "100"))

    # 응답 제출 시각은 고정 타임존(UTC+8)으로 기록
    SUBMISSION_UTC_OFFSET_HOURS: int = int(os.getenv("SUBMISSION_UTC_OFFSET_HOURS", "8"))

    # 읽기 전용 조회 재시도 횟수
    READ_RETRY_ATTEMPTS: int = int(os.getenv("READ_RETRY_ATTEMPTS", "3"))

    # CORS 설정 - 환경 변수 기반
    ALLOWED_ORIGINS: List[str] = []

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # 환경 변수에서 CORS 도메인 읽기 (쉼표로 구분)
        cors_origins = os.getenv("CORS_ALLOWED_ORIGINS", "")

        if cors_origins:
            self.ALLOWED_ORIGINS = [origin.strip() for origin in cors_origins.split(",")]
        elif self.ENV == "development":
            self.ALLOWED_ORIGINS = [
                "http://localhost:3000",
                "http://localhost:5173",
                "http://127.0.0.1:3000"
            ]

    # 로깅 설정
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")


    class Config:
        case_sensitive = True
        env_file = ".env"
        env_file_encoding = 'utf-8'
        extra = "ignore"  # 추가 환경변수 허용

settings = Settings()
