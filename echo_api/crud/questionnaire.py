# crud/questionnaire.py
from sqlalchemy.orm import Session, joinedload
from sqlalchemy import desc
from echo_api.crud.table import table_number_sort_key
from echo_api.models.database import Assignment, EchoTable, Questionnaire, ScanCode
from echo_api.services.validation import validate_questions, retire_removed_ids
from typing import Any, Dict, List, Optional
import logging

logger = logging.getLogger(__name__)

def create_questionnaire(
    db: Session,
    title: str,
    questions: List[Dict[str, Any]],
    description: Optional[str] = None,
    is_active: bool = True
) -> Questionnaire:
    """설문 생성 - 질문 구조는 저장 전에 검증"""
    normalized = validate_questions(questions)

    try:
        questionnaire = Questionnaire(
            title=title,
            description=description,
            questions=normalized,
            retired_question_ids=[],
            version=1,
            is_active=is_active
        )
        db.add(questionnaire)
        db.commit()
        db.refresh(questionnaire)

        logger.info(f"Created questionnaire {questionnaire.id} with {len(normalized)} questions")
        return questionnaire

    except Exception as e:
        db.rollback()
        logger.error(f"Failed to create questionnaire: {str(e)}")
        raise

def get_questionnaire(db: Session, questionnaire_id: str) -> Optional[Questionnaire]:
    """ID로 설문 조회"""
    return db.query(Questionnaire).filter(Questionnaire.id == questionnaire_id).first()

def get_all_questionnaires(db: Session) -> List[Questionnaire]:
    """전체 설문 목록 (최신순)"""
    return db.query(Questionnaire).order_by(desc(Questionnaire.created_at)).all()

def update_questionnaire(
    db: Session,
    questionnaire_id: str,
    title: Optional[str] = None,
    description: Optional[str] = None,
    is_active: Optional[bool] = None,
    questions: Optional[List[Dict[str, Any]]] = None
) -> Optional[Questionnaire]:
    """설문 수정

    질문 목록이 바뀌면 version 증가 + 빠진 질문 ID는 retired_question_ids 로 이동
    (이미 설문을 받은 고객이 이전 질문으로 응답을 제출할 수 있음)
    """
    normalized = validate_questions(questions) if questions is not None else None

    questionnaire = get_questionnaire(db, questionnaire_id)
    if not questionnaire:
        return None

    try:
        if title is not None:
            questionnaire.title = title
        if description is not None:
            questionnaire.description = description
        if is_active is not None:
            questionnaire.is_active = is_active
        if normalized is not None and normalized != questionnaire.questions:
            questionnaire.retired_question_ids = retire_removed_ids(
                questionnaire.questions, normalized, questionnaire.retired_question_ids
            )
            questionnaire.questions = normalized
            questionnaire.version = (questionnaire.version or 1) + 1

        db.commit()
        db.refresh(questionnaire)

        logger.info(f"Updated questionnaire {questionnaire_id} (version {questionnaire.version})")
        return questionnaire

    except Exception as e:
        db.rollback()
        logger.error(f"Failed to update questionnaire {questionnaire_id}: {str(e)}")
        raise

def delete_questionnaire(db: Session, questionnaire_id: str) -> bool:
    """설문 삭제 - 배정과 응답 CASCADE 삭제"""
    questionnaire = get_questionnaire(db, questionnaire_id)
    if not questionnaire:
        return False

    try:
        db.delete(questionnaire)
        db.commit()
        logger.info(f"Deleted questionnaire {questionnaire_id}")
        return True

    except Exception as e:
        db.rollback()
        logger.error(f"Failed to delete questionnaire {questionnaire_id}: {str(e)}")
        raise

def get_assignments_for_questionnaire(db: Session, questionnaire_id: str) -> List[Dict[str, Any]]:
    """설문이 배정된 레스토랑/테이블 목록 (레스토랑별 그룹, 활성 배정만)"""
    assignments = (
        db.query(Assignment)
        .options(
            joinedload(Assignment.scan_code)
            .joinedload(ScanCode.table)
            .joinedload(EchoTable.restaurant)
        )
        .filter(
            Assignment.questionnaire_id == questionnaire_id,
            Assignment.is_active == True
        )
        .all()
    )

    # 레스토랑별 그룹핑
    restaurant_map: Dict[str, Dict[str, Any]] = {}
    for assignment in assignments:
        table = assignment.scan_code.table
        restaurant = table.restaurant

        if restaurant.id not in restaurant_map:
            restaurant_map[restaurant.id] = {
                "restaurant_id": restaurant.id,
                "restaurant_name": restaurant.name,
                "restaurant_address": restaurant.address,
                "restaurant_city": restaurant.city,
                "tables": []
            }

        restaurant_map[restaurant.id]["tables"].append({
            "table_id": table.id,
            "table_number": table.table_number,
            "scan_code_id": assignment.scan_code_id,
            "assignment_id": assignment.id,
            "weight": assignment.weight
        })

    result = []
    for group in restaurant_map.values():
        group["tables"].sort(key=lambda t: table_number_sort_key(t["table_number"]))
        result.append(group)
    return result
