# crud/table.py
from sqlalchemy.orm import Session, selectinload
from echo_api.models.database import EchoTable, ScanCode
from typing import List, Optional
import re
import logging

logger = logging.getLogger(__name__)

def table_number_sort_key(table_number: str):
    """테이블 번호 정렬 키 - 숫자는 숫자 크기로, 영숫자(A1, B12)는 자연 정렬"""
    parts = re.split(r"(\d+)", table_number or "")
    return [int(part) if i % 2 else part.lower() for i, part in enumerate(parts)]

def get_table(db: Session, table_id: str) -> Optional[EchoTable]:
    """ID로 테이블 조회"""
    return db.query(EchoTable).filter(EchoTable.id == table_id).first()

def get_table_by_number(db: Session, restaurant_id: str, table_number: str) -> Optional[EchoTable]:
    """레스토랑 내 테이블 번호로 조회"""
    return db.query(EchoTable).filter(
        EchoTable.restaurant_id == restaurant_id,
        EchoTable.table_number == table_number
    ).first()

def get_tables_with_scan_codes(db: Session, restaurant_id: str) -> List[EchoTable]:
    """레스토랑의 테이블 목록 (스캔코드 포함, 테이블 번호 자연 정렬)

    table.scan_code 는 항상 Optional[ScanCode] (uselist=False) - 컬렉션으로 노출되지 않음
    """
    tables = (
        db.query(EchoTable)
        .options(selectinload(EchoTable.scan_code))
        .filter(EchoTable.restaurant_id == restaurant_id)
        .all()
    )
    return sorted(tables, key=lambda t: table_number_sort_key(t.table_number))

def add_table(db: Session, restaurant_id: str, table_number: str) -> EchoTable:
    """테이블 추가 (커밋은 호출자 트랜잭션에서)"""
    table = EchoTable(restaurant_id=restaurant_id, table_number=table_number)
    db.add(table)
    db.flush()  # ID 생성을 위해
    return table

def delete_table(db: Session, table_id: str) -> bool:
    """테이블 삭제 - 스캔코드/배정/응답 CASCADE 삭제"""
    table = get_table(db, table_id)
    if not table:
        return False

    try:
        db.delete(table)
        db.commit()
        logger.info(f"Deleted table {table_id}")
        return True

    except Exception as e:
        db.rollback()
        logger.error(f"Failed to delete table {table_id}: {str(e)}")
        raise

def get_scan_code(db: Session, scan_code_id: str) -> Optional[ScanCode]:
    """ID로 스캔코드 조회"""
    return db.query(ScanCode).filter(ScanCode.id == scan_code_id).first()

def get_scan_code_for_update(db: Session, scan_code_id: str) -> Optional[ScanCode]:
    """스캔코드 행 잠금 조회 (SELECT ... FOR UPDATE, 지원하는 DB에서만)"""
    return db.query(ScanCode).filter(ScanCode.id == scan_code_id).with_for_update().first()

def get_scan_code_for_table(db: Session, table_id: str) -> Optional[ScanCode]:
    """테이블의 스캔코드 조회"""
    return db.query(ScanCode).filter(ScanCode.table_id == table_id).first()

def get_scan_codes_for_restaurant(db: Session, restaurant_id: str) -> List[ScanCode]:
    """레스토랑의 모든 스캔코드 (배정 포함)"""
    return (
        db.query(ScanCode)
        .join(EchoTable, ScanCode.table_id == EchoTable.id)
        .options(selectinload(ScanCode.assignments))
        .filter(EchoTable.restaurant_id == restaurant_id)
        .order_by(ScanCode.created_at, ScanCode.id)
        .all()
    )

def add_scan_code(db: Session, table_id: str, scan_code_id: str, code_value: str) -> ScanCode:
    """스캔코드 추가 (커밋은 호출자 트랜잭션에서)"""
    scan_code = ScanCode(id=scan_code_id, table_id=table_id, code_value=code_value)
    db.add(scan_code)
    db.flush()
    return scan_code
