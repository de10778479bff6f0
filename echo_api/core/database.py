# core/database.py
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool
from echo_api.core.config import settings
import logging

logger = logging.getLogger(__name__)

def get_database_url():
    """드라이버 접두사를 정규화한 데이터베이스 URL 반환"""
    if not settings.DATABASE_URL:
        raise ValueError("DATABASE_URL environment variable is not set")

    url = settings.DATABASE_URL
    if url.startswith("postgresql+asyncpg://"):
        url = url.replace("postgresql+asyncpg://", "postgresql://")
    elif url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://")

    return url

def build_engine(url: str) -> Engine:
    """URL 종류에 맞는 엔진 생성

    - SQLite: 단일 연결(StaticPool) + 외래키 제약 활성화 (CASCADE 삭제에 필요) + SAVEPOINT 지원
    - PostgreSQL: 연결 유효성 검사 및 주기적 재생성
    """
    if url.startswith("sqlite"):
        sqlite_engine = create_engine(
            url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
            echo=False
        )
        enable_sqlite_foreign_keys(sqlite_engine)
        enable_sqlite_savepoints(sqlite_engine)
        return sqlite_engine

    return create_engine(
        url,
        pool_pre_ping=True,  # 연결 유효성 검사
        pool_recycle=300,  # 5분마다 연결 재생성
        connect_args={
            "connect_timeout": 10,
            "application_name": "echo-api",
            "options": "-c default_transaction_isolation=read_committed"
        },
        echo=settings.ENV == "development"  # 개발 환경에서만 SQL 로깅
    )

def enable_sqlite_foreign_keys(target: Engine) -> None:
    """SQLite는 연결마다 foreign_keys PRAGMA를 켜야 ON DELETE CASCADE가 동작함"""
    @event.listens_for(target, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

def enable_sqlite_savepoints(target: Engine) -> None:
    """pysqlite의 암묵적 BEGIN을 끄고 SQLAlchemy가 직접 BEGIN을 내도록 함 (begin_nested 동작에 필요)"""
    @event.listens_for(target, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(target, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

engine = build_engine(get_database_url())

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False
)

Base = declarative_base()

def get_db() -> Session:
    """데이터베이스 세션 생성 및 관리"""
    db = None
    try:
        db = SessionLocal()
        yield db
    except Exception as e:
        logger.error(f"Database session error: {e}")
        if db:
            db.rollback()
        raise
    finally:
        if db:
            db.close()

def create_tables(bind: Engine = None):
    """데이터베이스 테이블 생성"""
    # 모든 모델이 Base.metadata에 등록되도록 import
    from echo_api.models import database  # noqa: F401

    try:
        Base.metadata.create_all(bind=bind or engine)
        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error(f"Error creating database tables: {e}")
        raise

def test_connection() -> bool:
    """데이터베이스 연결 테스트"""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("Database connection test successful")
        return True
    except Exception as e:
        logger.error(f"Database connection test failed: {e}")
        return False
