from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy.orm import Session
from echo_api.schemas.echo import APIResponse, RestaurantCreate
from echo_api.core.auth import get_current_staff
from echo_api.core.database import get_db
from echo_api.crud import restaurant as restaurant_crud
from echo_api.crud import response as response_crud
from echo_api.crud import table as table_crud
from echo_api.api.v1.serializers import assignment_to_dict, restaurant_to_dict, table_to_dict
import logging

logger = logging.getLogger(__name__)

router = APIRouter()

def _get_restaurant_or_404(db: Session, restaurant_id: str):
    restaurant = restaurant_crud.get_restaurant(db, restaurant_id)
    if not restaurant:
        raise HTTPException(status_code=404, detail="레스토랑을 찾을 수 없습니다.")
    return restaurant

@router.post("/", response_model=APIResponse)
async def create_restaurant(
    restaurant_data: RestaurantCreate,
    staff_id: str = Depends(get_current_staff),
    db: Session = Depends(get_db)
):
    """레스토랑 등록"""
    restaurant = restaurant_crud.create_restaurant(
        db=db,
        name=restaurant_data.name,
        address=restaurant_data.address,
        city=restaurant_data.city
    )
    logger.info(f"Restaurant {restaurant.id} created by staff {staff_id}")

    return APIResponse(
        success=True,
        message="레스토랑이 등록되었습니다.",
        data=restaurant_to_dict(restaurant)
    )

@router.get("/", response_model=APIResponse)
async def get_restaurants(
    staff_id: str = Depends(get_current_staff),
    db: Session = Depends(get_db)
):
    """레스토랑 목록 조회 (이름순)"""
    restaurants = restaurant_crud.get_all_restaurants(db)
    return APIResponse(
        success=True,
        message="레스토랑 목록을 조회했습니다.",
        data={"restaurants": [restaurant_to_dict(r) for r in restaurants], "total": len(restaurants)}
    )

@router.get("/{restaurant_id}", response_model=APIResponse)
async def get_restaurant(
    restaurant_id: str,
    staff_id: str = Depends(get_current_staff),
    db: Session = Depends(get_db)
):
    """레스토랑 상세 조회"""
    restaurant = _get_restaurant_or_404(db, restaurant_id)
    return APIResponse(success=True, message="레스토랑을 조회했습니다.", data=restaurant_to_dict(restaurant))

@router.delete("/{restaurant_id}", response_model=APIResponse)
async def delete_restaurant(
    restaurant_id: str,
    staff_id: str = Depends(get_current_staff),
    db: Session = Depends(get_db)
):
    """레스토랑 삭제 (테이블, 스캔코드, 배정, 응답 모두 삭제)"""
    if not restaurant_crud.delete_restaurant(db, restaurant_id):
        raise HTTPException(status_code=404, detail="레스토랑을 찾을 수 없습니다.")

    return APIResponse(success=True, message="레스토랑이 삭제되었습니다.", data={"restaurantId": restaurant_id})

@router.get("/{restaurant_id}/tables", response_model=APIResponse)
async def get_restaurant_tables(
    restaurant_id: str,
    staff_id: str = Depends(get_current_staff),
    db: Session = Depends(get_db)
):
    """레스토랑 테이블 목록 (스캔코드 포함)"""
    _get_restaurant_or_404(db, restaurant_id)
    tables = table_crud.get_tables_with_scan_codes(db, restaurant_id)

    return APIResponse(
        success=True,
        message="테이블 목록을 조회했습니다.",
        data={"tables": [table_to_dict(t) for t in tables], "total": len(tables)}
    )

@router.get("/{restaurant_id}/assignments", response_model=APIResponse)
async def get_restaurant_assignments(
    restaurant_id: str,
    staff_id: str = Depends(get_current_staff),
    db: Session = Depends(get_db)
):
    """레스토랑의 스캔코드별 배정 현황"""
    _get_restaurant_or_404(db, restaurant_id)
    scan_codes = table_crud.get_scan_codes_for_restaurant(db, restaurant_id)

    result = []
    for scan_code in scan_codes:
        result.append({
            "scanCodeId": scan_code.id,
            "tableId": scan_code.table_id,
            "tableNumber": scan_code.table.table_number,
            "assignments": [
                {
                    **assignment_to_dict(a),
                    "questionnaireTitle": a.questionnaire.title if a.questionnaire else None,
                    "questionnaireActive": a.questionnaire.is_active if a.questionnaire else False
                }
                for a in scan_code.assignments
            ]
        })

    return APIResponse(
        success=True,
        message="배정 현황을 조회했습니다.",
        data={"restaurantId": restaurant_id, "scanCodes": result}
    )

@router.get("/{restaurant_id}/variant-stats", response_model=APIResponse)
async def get_variant_statistics(
    restaurant_id: str,
    staff_id: str = Depends(get_current_staff),
    db: Session = Depends(get_db)
):
    """변형(배정)별 응답 수 집계"""
    _get_restaurant_or_404(db, restaurant_id)
    counts = response_crud.get_variant_counts(db, restaurant_id)

    return APIResponse(
        success=True,
        message="변형별 응답 통계를 조회했습니다.",
        data={
            "restaurantId": restaurant_id,
            "variants": counts,
            "totalResponses": sum(c["response_count"] for c in counts)
        }
    )
