from sqlalchemy import (
    Column, String, Boolean, DateTime, Integer, Text, ForeignKey, JSON, UniqueConstraint, Index
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from echo_api.core.database import Base
import uuid

def generate_uuid():
    return str(uuid.uuid4())

class Restaurant(Base):
    __tablename__ = "restaurants"

    id = Column(String, primary_key=True, default=generate_uuid)
    name = Column(String, nullable=False)
    address = Column(String, nullable=True)
    city = Column(String, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # 관계
    tables = relationship(
        "EchoTable", back_populates="restaurant", cascade="all, delete-orphan", passive_deletes=True
    )

class EchoTable(Base):
    __tablename__ = "echo_tables"
    __table_args__ = (
        # 테이블 번호는 레스토랑 안에서만 유일 (A1, B2 같은 영숫자 허용)
        UniqueConstraint("restaurant_id", "table_number", name="uq_echo_table_restaurant_number"),
    )

    id = Column(String, primary_key=True, default=generate_uuid)
    restaurant_id = Column(String, ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True)
    table_number = Column(String, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # 관계 - 테이블과 스캔코드는 1:1
    restaurant = relationship("Restaurant", back_populates="tables")
    scan_code = relationship(
        "ScanCode", back_populates="table", uselist=False, cascade="all, delete-orphan", passive_deletes=True
    )
    responses = relationship(
        "Response", back_populates="table", cascade="all, delete-orphan", passive_deletes=True
    )

class ScanCode(Base):
    __tablename__ = "scan_codes"

    # id 자체가 QR 코드에 인쇄되는 영구 식별자 - 제자리 재발급 없음
    id = Column(String, primary_key=True, default=generate_uuid)
    table_id = Column(String, ForeignKey("echo_tables.id", ondelete="CASCADE"), nullable=False, unique=True)
    code_value = Column(String, nullable=False, unique=True)
    created_at = Column(DateTime, server_default=func.now())

    # 관계
    table = relationship("EchoTable", back_populates="scan_code")
    assignments = relationship(
        "Assignment",
        back_populates="scan_code",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Assignment.assigned_at"
    )

class Questionnaire(Base):
    __tablename__ = "questionnaires"

    id = Column(String, primary_key=True, default=generate_uuid)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    questions = Column(JSON, nullable=False, default=list)  # [{"id", "text", "type", "order", "options"}, ...]
    retired_question_ids = Column(JSON, nullable=False, default=list)  # 편집으로 삭제된 질문 ID
    version = Column(Integer, nullable=False, default=1)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # 관계
    assignments = relationship(
        "Assignment", back_populates="questionnaire", cascade="all, delete-orphan", passive_deletes=True
    )
    responses = relationship(
        "Response", back_populates="questionnaire", cascade="all, delete-orphan", passive_deletes=True
    )

class Assignment(Base):
    __tablename__ = "scan_code_questionnaires"
    __table_args__ = (
        UniqueConstraint("scan_code_id", "questionnaire_id", name="uq_assignment_scan_code_questionnaire"),
        Index("ix_assignment_scan_code_active", "scan_code_id", "is_active"),
    )

    id = Column(String, primary_key=True, default=generate_uuid)
    scan_code_id = Column(String, ForeignKey("scan_codes.id", ondelete="CASCADE"), nullable=False)
    questionnaire_id = Column(String, ForeignKey("questionnaires.id", ondelete="CASCADE"), nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    weight = Column(Integer, nullable=False, default=100)  # 상대 확률 (양의 정수)
    assigned_at = Column(DateTime, server_default=func.now())
    deactivated_at = Column(DateTime, nullable=True)
    reactivated_at = Column(DateTime, nullable=True)  # 레스토랑 일괄 배정으로 다시 켜진 시각 (deactivated_at 은 보존)

    # 관계
    scan_code = relationship("ScanCode", back_populates="assignments")
    questionnaire = relationship("Questionnaire", back_populates="assignments")

class Response(Base):
    __tablename__ = "responses"

    id = Column(String, primary_key=True, default=generate_uuid)
    table_id = Column(String, ForeignKey("echo_tables.id", ondelete="CASCADE"), nullable=False, index=True)
    questionnaire_id = Column(String, ForeignKey("questionnaires.id", ondelete="CASCADE"), nullable=False, index=True)
    # 스캔코드 재발급/배정 하드 삭제 후에도 응답 이력은 유지
    scan_code_id = Column(String, ForeignKey("scan_codes.id", ondelete="SET NULL"), nullable=True)
    assignment_id = Column(String, ForeignKey("scan_code_questionnaires.id", ondelete="SET NULL"), nullable=True, index=True)
    answers = Column(JSON, nullable=False)  # {question_id: answer}
    flagged_keys = Column(JSON, nullable=False, default=list)  # 현재 설문에는 없는 (삭제된) 질문 키
    questionnaire_version = Column(Integer, nullable=True)
    customer_identifier = Column(String, nullable=True)
    submitted_at = Column(DateTime(timezone=True), nullable=False)

    # 관계
    table = relationship("EchoTable", back_populates="responses")
    questionnaire = relationship("Questionnaire", back_populates="responses")
