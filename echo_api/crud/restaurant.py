# crud/restaurant.py
from sqlalchemy.orm import Session
from echo_api.models.database import Restaurant
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)

def create_restaurant(
    db: Session,
    name: str,
    address: Optional[str] = None,
    city: Optional[str] = None
) -> Restaurant:
    """레스토랑 생성"""
    try:
        restaurant = Restaurant(name=name, address=address, city=city)
        db.add(restaurant)
        db.commit()
        db.refresh(restaurant)

        logger.info(f"Created restaurant {restaurant.id} ({name})")
        return restaurant

    except Exception as e:
        db.rollback()
        logger.error(f"Failed to create restaurant: {str(e)}")
        raise

def get_restaurant(db: Session, restaurant_id: str) -> Optional[Restaurant]:
    """ID로 레스토랑 조회"""
    return db.query(Restaurant).filter(Restaurant.id == restaurant_id).first()

def get_all_restaurants(db: Session) -> List[Restaurant]:
    """전체 레스토랑 목록 (이름순)"""
    return db.query(Restaurant).order_by(Restaurant.name.asc()).all()

def delete_restaurant(db: Session, restaurant_id: str) -> bool:
    """레스토랑 삭제 - 테이블/스캔코드/배정/응답은 CASCADE 삭제"""
    restaurant = get_restaurant(db, restaurant_id)
    if not restaurant:
        return False

    try:
        db.delete(restaurant)
        db.commit()
        logger.info(f"Deleted restaurant {restaurant_id}")
        return True

    except Exception as e:
        db.rollback()
        logger.error(f"Failed to delete restaurant {restaurant_id}: {str(e)}")
        raise
