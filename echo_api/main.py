from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from echo_api.schemas.echo import ErrorResponse
from echo_api.core.config import settings
from echo_api.core.exceptions import EchoServiceError
from echo_api.api.v1.api import api_router
import logging

# 로깅 설정
logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL))
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Echo Table API Server",
    description="테이블 QR 스캔 기반 고객 설문 및 A/B 변형 배정 API 서버",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

logger.info(f"CORS Origins: {settings.ALLOWED_ORIGINS}")
logger.info(f"Environment: {settings.ENV}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# API 라우터 포함
app.include_router(api_router, prefix="/api/v1")

@app.on_event("startup")
async def startup_event():
    """애플리케이션 시작 시 DB 연결 확인 및 테이블 생성"""
    logger.info("Application startup...")

    from echo_api.core.database import create_tables, test_connection
    logger.info("Testing database connection...")

    if not test_connection():
        logger.error("Database connection failed during startup")
        return

    create_tables()
    logger.info("Database tables created/verified successfully")

# 도메인 예외 핸들러 - 서비스 계층 예외를 일관된 에러 응답으로 변환
@app.exception_handler(EchoServiceError)
async def echo_service_exception_handler(request: Request, exc: EchoServiceError):
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(success=False, error=exc.to_dict()).model_dump()
    )

# 전역 예외 핸들러
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Global exception: {exc}")
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            success=False,
            error={
                "code": "internal_server_error",
                "message": "서버 내부 오류가 발생했습니다."
            }
        ).model_dump()
    )

@app.get("/")
async def root():
    """루트 엔드포인트 - 서비스 정보 반환"""
    return {
        "service": "Echo Table API Server",
        "version": "1.0.0",
        "description": "테이블 QR 스캔 기반 고객 설문 및 A/B 변형 배정 API 서버",
        "docs": "/docs",
        "health": "/health"
    }

@app.get("/health")
async def health_check():
    """헬스 체크 엔드포인트"""
    return {
        "status": "healthy",
        "version": "1.0.0"
    }
