# crud/response.py
from sqlalchemy.orm import Session
from sqlalchemy import desc, func
from echo_api.models.database import Assignment, EchoTable, Questionnaire, Response
from typing import Any, Dict, List, Optional
import logging

logger = logging.getLogger(__name__)

def get_response(db: Session, response_id: str) -> Optional[Response]:
    """ID로 응답 조회"""
    return db.query(Response).filter(Response.id == response_id).first()

def get_responses_by_table(db: Session, table_id: str, limit: int = 100) -> List[Response]:
    """테이블별 응답 (최신순)"""
    return (
        db.query(Response)
        .filter(Response.table_id == table_id)
        .order_by(desc(Response.submitted_at))
        .limit(limit)
        .all()
    )

def get_variant_counts(db: Session, restaurant_id: str) -> List[Dict[str, Any]]:
    """레스토랑의 배정(변형)별 응답 수 집계

    통계적 유의성 검정은 하지 않음 - 하위 분석용 원시 집계만 제공
    """
    rows = (
        db.query(
            Response.assignment_id,
            Response.questionnaire_id,
            Questionnaire.title,
            Assignment.weight,
            func.count(Response.id)
        )
        .join(EchoTable, Response.table_id == EchoTable.id)
        .join(Questionnaire, Response.questionnaire_id == Questionnaire.id)
        .outerjoin(Assignment, Response.assignment_id == Assignment.id)
        .filter(EchoTable.restaurant_id == restaurant_id)
        .group_by(Response.assignment_id, Response.questionnaire_id, Questionnaire.title, Assignment.weight)
        .all()
    )

    total = sum(row[4] for row in rows)
    return [
        {
            "assignment_id": assignment_id,
            "questionnaire_id": questionnaire_id,
            "questionnaire_title": title,
            "weight": weight,
            "response_count": count,
            "share": round(count / total * 100, 2) if total > 0 else 0
        }
        for assignment_id, questionnaire_id, title, weight, count in rows
    ]
