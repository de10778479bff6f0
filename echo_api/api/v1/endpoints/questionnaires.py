from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy.orm import Session
from echo_api.schemas.echo import (
    APIResponse, QuestionnaireCreate, QuestionnaireUpdate, RestaurantAssignRequest,
    RestaurantAssignmentResponse, SkippedTable
)
from echo_api.core.auth import get_current_staff
from echo_api.core.database import get_db
from echo_api.crud import questionnaire as questionnaire_crud
from echo_api.services.assignment_manager import AssignmentManager
from echo_api.api.v1.serializers import questionnaire_to_dict
import logging

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("/", response_model=APIResponse)
async def create_questionnaire(
    questionnaire_data: QuestionnaireCreate,
    staff_id: str = Depends(get_current_staff),
    db: Session = Depends(get_db)
):
    """설문 생성"""
    questionnaire = questionnaire_crud.create_questionnaire(
        db=db,
        title=questionnaire_data.title,
        description=questionnaire_data.description,
        is_active=questionnaire_data.isActive,
        questions=[q.model_dump(mode="json", exclude_none=True) for q in questionnaire_data.questions]
    )

    return APIResponse(
        success=True,
        message="설문이 생성되었습니다.",
        data=questionnaire_to_dict(questionnaire)
    )

@router.get("/", response_model=APIResponse)
async def get_questionnaires(
    staff_id: str = Depends(get_current_staff),
    db: Session = Depends(get_db)
):
    """설문 목록 조회 (최신순)"""
    questionnaires = questionnaire_crud.get_all_questionnaires(db)
    return APIResponse(
        success=True,
        message="설문 목록을 조회했습니다.",
        data={"questionnaires": [questionnaire_to_dict(q) for q in questionnaires], "total": len(questionnaires)}
    )

@router.get("/{questionnaire_id}", response_model=APIResponse)
async def get_questionnaire(
    questionnaire_id: str,
    staff_id: str = Depends(get_current_staff),
    db: Session = Depends(get_db)
):
    """설문 상세 조회"""
    questionnaire = questionnaire_crud.get_questionnaire(db, questionnaire_id)
    if not questionnaire:
        raise HTTPException(status_code=404, detail="설문을 찾을 수 없습니다.")

    return APIResponse(success=True, message="설문을 조회했습니다.", data=questionnaire_to_dict(questionnaire))

@router.put("/{questionnaire_id}", response_model=APIResponse)
async def update_questionnaire(
    questionnaire_id: str,
    update_data: QuestionnaireUpdate,
    staff_id: str = Depends(get_current_staff),
    db: Session = Depends(get_db)
):
    """설문 수정 - 질문 변경 시 버전 증가"""
    questions = None
    if update_data.questions is not None:
        questions = [q.model_dump(mode="json", exclude_none=True) for q in update_data.questions]

    questionnaire = questionnaire_crud.update_questionnaire(
        db=db,
        questionnaire_id=questionnaire_id,
        title=update_data.title,
        description=update_data.description,
        is_active=update_data.isActive,
        questions=questions
    )
    if not questionnaire:
        raise HTTPException(status_code=404, detail="설문을 찾을 수 없습니다.")

    return APIResponse(success=True, message="설문이 수정되었습니다.", data=questionnaire_to_dict(questionnaire))

@router.delete("/{questionnaire_id}", response_model=APIResponse)
async def delete_questionnaire(
    questionnaire_id: str,
    staff_id: str = Depends(get_current_staff),
    db: Session = Depends(get_db)
):
    """설문 삭제 (배정 및 응답 모두 삭제)"""
    if not questionnaire_crud.delete_questionnaire(db, questionnaire_id):
        raise HTTPException(status_code=404, detail="설문을 찾을 수 없습니다.")

    return APIResponse(success=True, message="설문이 삭제되었습니다.", data={"questionnaireId": questionnaire_id})

@router.get("/{questionnaire_id}/assignments", response_model=APIResponse)
async def get_questionnaire_assignments(
    questionnaire_id: str,
    staff_id: str = Depends(get_current_staff),
    db: Session = Depends(get_db)
):
    """설문이 배정된 레스토랑/테이블 목록"""
    if not questionnaire_crud.get_questionnaire(db, questionnaire_id):
        raise HTTPException(status_code=404, detail="설문을 찾을 수 없습니다.")

    restaurants = questionnaire_crud.get_assignments_for_questionnaire(db, questionnaire_id)
    return APIResponse(
        success=True,
        message="설문 배정 현황을 조회했습니다.",
        data={"questionnaireId": questionnaire_id, "restaurants": restaurants}
    )

@router.post("/{questionnaire_id}/restaurant-assignments", response_model=APIResponse)
async def assign_to_restaurant(
    questionnaire_id: str,
    assign_data: RestaurantAssignRequest,
    staff_id: str = Depends(get_current_staff),
    db: Session = Depends(get_db)
):
    """레스토랑 전체 테이블에 설문 배정 (이미 배정된 테이블은 건너뜀)"""
    result = AssignmentManager(db).assign_to_restaurant(
        assign_data.restaurantId, questionnaire_id, assign_data.weight
    )

    logger.info(f"Restaurant assignment by staff {staff_id}: assigned={result.assigned_count}, skipped={result.skipped_count}")
    return APIResponse(
        success=True,
        message=f"{result.assigned_count}개 테이블에 설문이 배정되었습니다.",
        data=RestaurantAssignmentResponse(
            assignedCount=result.assigned_count,
            reactivatedCount=result.reactivated_count,
            skippedCount=result.skipped_count,
            skippedDetail=[
                SkippedTable(
                    tableId=d["table_id"],
                    tableNumber=d["table_number"],
                    questionnaires=d["questionnaires"]
                )
                for d in result.skipped_detail
            ]
        ).model_dump()
    )

@router.delete("/{questionnaire_id}/restaurant-assignments/{restaurant_id}", response_model=APIResponse)
async def remove_from_restaurant(
    questionnaire_id: str,
    restaurant_id: str,
    staff_id: str = Depends(get_current_staff),
    db: Session = Depends(get_db)
):
    """레스토랑에서 설문 배정 전체 삭제"""
    removed_count = AssignmentManager(db).remove_all_for_restaurant(questionnaire_id, restaurant_id)

    return APIResponse(
        success=True,
        message=f"{removed_count}개의 배정이 삭제되었습니다.",
        data={"removedCount": removed_count}
    )
