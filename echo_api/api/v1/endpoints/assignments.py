from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy.orm import Session
from echo_api.schemas.echo import APIResponse, AssignRequest
from echo_api.core.auth import get_current_staff
from echo_api.core.database import get_db
from echo_api.crud import assignment as assignment_crud
from echo_api.crud import table as table_crud
from echo_api.services.assignment_manager import AssignmentManager
from echo_api.services.variant_resolver import VariantResolver
from echo_api.api.v1.serializers import assignment_to_dict

router = APIRouter()

@router.post("/", response_model=APIResponse)
async def assign_questionnaire(
    assign_data: AssignRequest,
    staff_id: str = Depends(get_current_staff),
    db: Session = Depends(get_db)
):
    """테이블(스캔코드)에 설문 배정 - 테이블당 설문 하나 정책"""
    assignment = AssignmentManager(db).assign_single(
        assign_data.scanCodeId, assign_data.questionnaireId, assign_data.weight
    )

    return APIResponse(success=True, message="설문이 배정되었습니다.", data=assignment_to_dict(assignment))

@router.get("/scan-code/{scan_code_id}", response_model=APIResponse)
async def get_scan_code_assignments(
    scan_code_id: str,
    staff_id: str = Depends(get_current_staff),
    db: Session = Depends(get_db)
):
    """스캔코드의 배정 목록과 현재 선택 확률"""
    if not table_crud.get_scan_code(db, scan_code_id):
        raise HTTPException(status_code=404, detail="QR 코드를 찾을 수 없습니다.")

    assignments = assignment_crud.get_assignments_for_scan_code(db, scan_code_id)
    candidates = VariantResolver(db).list_candidates(scan_code_id)

    return APIResponse(
        success=True,
        message="배정 목록을 조회했습니다.",
        data={
            "scanCodeId": scan_code_id,
            "assignments": [assignment_to_dict(a) for a in assignments],
            "candidates": candidates
        }
    )

@router.post("/{assignment_id}/deactivate", response_model=APIResponse)
async def deactivate_assignment(
    assignment_id: str,
    staff_id: str = Depends(get_current_staff),
    db: Session = Depends(get_db)
):
    """배정 비활성화 (이력 보존)"""
    AssignmentManager(db).deactivate(assignment_id)
    return APIResponse(success=True, message="배정이 비활성화되었습니다.", data={"assignmentId": assignment_id})

@router.delete("/{assignment_id}", response_model=APIResponse)
async def remove_assignment(
    assignment_id: str,
    staff_id: str = Depends(get_current_staff),
    db: Session = Depends(get_db)
):
    """배정 영구 삭제"""
    AssignmentManager(db).remove(assignment_id)
    return APIResponse(success=True, message="배정이 삭제되었습니다.", data={"assignmentId": assignment_id})
