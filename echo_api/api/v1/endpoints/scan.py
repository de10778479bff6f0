from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from echo_api.schemas.echo import APIResponse, ResolveResponse, ResolvedQuestionnaire, ResponseSubmitRequest
from echo_api.core.database import get_db
from echo_api.services.variant_resolver import VariantResolver
from echo_api.services.response_recorder import ResponseRecorder
from echo_api.api.v1.serializers import response_to_dict
import logging

logger = logging.getLogger(__name__)

router = APIRouter()

# 고객용 공개 엔드포인트 - 인증 없음

@router.get("/{scan_code_id}", response_model=APIResponse)
async def resolve_scan(
    scan_code_id: str,
    db: Session = Depends(get_db)
):
    """QR 스캔 - 이번 방문에 보여줄 설문 하나 선택"""
    resolved = VariantResolver(db).resolve_for_scan(scan_code_id)
    questionnaire = resolved.questionnaire

    return APIResponse(
        success=True,
        message="설문을 불러왔습니다.",
        data=ResolveResponse(
            assignmentId=resolved.assignment_id,
            scanCodeId=resolved.scan_code_id,
            tableId=resolved.table_id,
            questionnaire=ResolvedQuestionnaire(
                id=questionnaire.id,
                title=questionnaire.title,
                description=questionnaire.description,
                version=resolved.questionnaire_version,
                questions=questionnaire.questions or []
            )
        ).model_dump()
    )

@router.post("/{scan_code_id}/responses", response_model=APIResponse)
async def submit_response(
    scan_code_id: str,
    submission: ResponseSubmitRequest,
    db: Session = Depends(get_db)
):
    """설문 응답 제출"""
    response = ResponseRecorder(db).record_response(
        table_id=submission.tableId,
        questionnaire_id=submission.questionnaireId,
        scan_code_id=scan_code_id,
        assignment_id=submission.assignmentId,
        answers=submission.answers,
        customer_identifier=submission.customerIdentifier,
        questionnaire_version=submission.questionnaireVersion
    )

    return APIResponse(
        success=True,
        message="응답이 제출되었습니다. 감사합니다!",
        data=response_to_dict(response)
    )
