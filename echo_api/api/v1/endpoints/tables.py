from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy.orm import Session
from echo_api.schemas.echo import APIResponse, TableCreate
from echo_api.core.auth import get_current_staff
from echo_api.core.database import get_db
from echo_api.crud import response as response_crud
from echo_api.crud import table as table_crud
from echo_api.services.table_service import TableService, ProvisionedTable
from echo_api.api.v1.serializers import assignment_to_dict, response_to_dict, scan_code_to_dict
import logging

logger = logging.getLogger(__name__)

router = APIRouter()

def _provisioned_to_dict(provisioned: ProvisionedTable) -> dict:
    return {
        "id": provisioned.table.id,
        "restaurantId": provisioned.table.restaurant_id,
        "tableNumber": provisioned.table.table_number,
        "scanCode": scan_code_to_dict(provisioned.scan_code),
        "propagatedAssignments": [assignment_to_dict(a) for a in provisioned.assignments],
        "resolvable": len(provisioned.assignments) > 0
    }

@router.post("/", response_model=APIResponse)
async def create_table(
    table_data: TableCreate,
    staff_id: str = Depends(get_current_staff),
    db: Session = Depends(get_db)
):
    """테이블 생성 - 스캔코드 발급 및 레스토랑 배정 조합 자동 전파"""
    provisioned = TableService(db).create_table(table_data.restaurantId, table_data.tableNumber)

    message = "테이블과 QR 코드가 생성되었습니다."
    if not provisioned.assignments:
        message = "테이블과 QR 코드가 생성되었습니다. 이 레스토랑에 배정된 설문이 없어 아직 스캔할 수 없습니다."

    return APIResponse(success=True, message=message, data=_provisioned_to_dict(provisioned))

@router.delete("/{table_id}", response_model=APIResponse)
async def delete_table(
    table_id: str,
    staff_id: str = Depends(get_current_staff),
    db: Session = Depends(get_db)
):
    """테이블 삭제 (스캔코드, 배정, 응답 모두 삭제)"""
    if not table_crud.delete_table(db, table_id):
        raise HTTPException(status_code=404, detail="테이블을 찾을 수 없습니다.")

    logger.info(f"Table {table_id} deleted by staff {staff_id}")
    return APIResponse(success=True, message="테이블이 삭제되었습니다.", data={"tableId": table_id})

@router.post("/{table_id}/scan-code/regenerate", response_model=APIResponse)
async def regenerate_scan_code(
    table_id: str,
    staff_id: str = Depends(get_current_staff),
    db: Session = Depends(get_db)
):
    """QR 코드 재발급 - 기존에 인쇄된 QR 코드는 무효화됨"""
    provisioned = TableService(db).regenerate_scan_code(table_id)

    return APIResponse(
        success=True,
        message="QR 코드가 재발급되었습니다. 기존 QR 코드는 더 이상 사용할 수 없습니다.",
        data=_provisioned_to_dict(provisioned)
    )

@router.get("/{table_id}/responses", response_model=APIResponse)
async def get_table_responses(
    table_id: str,
    limit: int = Query(100, ge=1, le=500, description="가져올 개수"),
    staff_id: str = Depends(get_current_staff),
    db: Session = Depends(get_db)
):
    """테이블별 응답 목록 (최신순)"""
    if not table_crud.get_table(db, table_id):
        raise HTTPException(status_code=404, detail="테이블을 찾을 수 없습니다.")

    responses = response_crud.get_responses_by_table(db, table_id, limit=limit)
    return APIResponse(
        success=True,
        message=f"{len(responses)}개의 응답을 조회했습니다.",
        data=[response_to_dict(r) for r in responses]
    )
