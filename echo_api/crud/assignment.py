# crud/assignment.py
from sqlalchemy.orm import Session, joinedload
from echo_api.models.database import Assignment, EchoTable, Questionnaire, ScanCode
from typing import List, Optional, Tuple
from datetime import datetime
import logging

logger = logging.getLogger(__name__)

def get_assignment(db: Session, assignment_id: str) -> Optional[Assignment]:
    """ID로 배정 조회"""
    return db.query(Assignment).filter(Assignment.id == assignment_id).first()

def get_assignment_by_pair(db: Session, scan_code_id: str, questionnaire_id: str) -> Optional[Assignment]:
    """(스캔코드, 설문) 쌍으로 배정 조회"""
    return db.query(Assignment).filter(
        Assignment.scan_code_id == scan_code_id,
        Assignment.questionnaire_id == questionnaire_id
    ).first()

def get_assignments_for_scan_code(db: Session, scan_code_id: str) -> List[Assignment]:
    """스캔코드의 전체 배정 (비활성 포함, 생성순)"""
    return (
        db.query(Assignment)
        .options(joinedload(Assignment.questionnaire))
        .filter(Assignment.scan_code_id == scan_code_id)
        .order_by(Assignment.assigned_at, Assignment.id)
        .all()
    )

def get_active_assignments(db: Session, scan_code_id: str) -> List[Assignment]:
    """스캔코드의 활성 배정 (설문 활성 여부와 무관)"""
    return (
        db.query(Assignment)
        .options(joinedload(Assignment.questionnaire))
        .filter(
            Assignment.scan_code_id == scan_code_id,
            Assignment.is_active == True
        )
        .order_by(Assignment.assigned_at, Assignment.id)
        .all()
    )

def get_resolvable_assignments(db: Session, scan_code_id: str) -> List[Assignment]:
    """스캔 시점 후보 배정 - 배정과 설문 모두 활성이어야 함 (생성순 고정 정렬)"""
    return (
        db.query(Assignment)
        .join(Questionnaire, Assignment.questionnaire_id == Questionnaire.id)
        .options(joinedload(Assignment.questionnaire))
        .filter(
            Assignment.scan_code_id == scan_code_id,
            Assignment.is_active == True,
            Questionnaire.is_active == True
        )
        .order_by(Assignment.assigned_at, Assignment.id)
        .all()
    )

def get_restaurant_assignment_mix(
    db: Session,
    restaurant_id: str,
    exclude_scan_code_id: Optional[str] = None
) -> List[Tuple[str, int]]:
    """레스토랑 내 다른 스캔코드들의 활성 배정에서 고유한 (questionnaire_id, weight) 목록

    같은 설문이 여러 테이블에 서로 다른 weight로 있으면 가장 먼저 배정된 weight 사용
    """
    query = (
        db.query(Assignment.questionnaire_id, Assignment.weight)
        .join(ScanCode, Assignment.scan_code_id == ScanCode.id)
        .join(EchoTable, ScanCode.table_id == EchoTable.id)
        .filter(
            EchoTable.restaurant_id == restaurant_id,
            Assignment.is_active == True
        )
    )
    if exclude_scan_code_id:
        query = query.filter(Assignment.scan_code_id != exclude_scan_code_id)

    rows = query.order_by(Assignment.assigned_at, Assignment.id).all()

    # 설문별 첫 번째 weight만 유지 (여러 테이블에 같은 설문이 있을 수 있음)
    unique_mix = {}
    for questionnaire_id, weight in rows:
        if questionnaire_id not in unique_mix:
            unique_mix[questionnaire_id] = weight

    return list(unique_mix.items())

def get_restaurant_assignments_for_questionnaire(
    db: Session,
    questionnaire_id: str,
    restaurant_id: str
) -> List[Assignment]:
    """특정 레스토랑에서 특정 설문을 가리키는 모든 배정 (비활성 포함)"""
    return (
        db.query(Assignment)
        .join(ScanCode, Assignment.scan_code_id == ScanCode.id)
        .join(EchoTable, ScanCode.table_id == EchoTable.id)
        .filter(
            Assignment.questionnaire_id == questionnaire_id,
            EchoTable.restaurant_id == restaurant_id
        )
        .all()
    )

def add_assignment(
    db: Session,
    scan_code_id: str,
    questionnaire_id: str,
    weight: int
) -> Assignment:
    """활성 배정 추가 (커밋은 호출자 트랜잭션에서)"""
    assignment = Assignment(
        scan_code_id=scan_code_id,
        questionnaire_id=questionnaire_id,
        weight=weight,
        is_active=True,
        assigned_at=datetime.utcnow()
    )
    db.add(assignment)
    return assignment
