"""
테이블/스캔코드 생성 서비스

비즈니스 로직:
- 테이블과 스캔코드는 스태프 작업 한 번으로 함께 생성
- 스캔코드가 생성될 때마다 레스토랑 배정 조합 전파(provision_propagation) 자동 실행
- 재발급은 "기존 삭제 + 신규 생성" - 기존 배정은 CASCADE 로 삭제되고 인쇄된 QR은 무효화
- 테이블 생성 + 스캔코드 + 전파는 하나의 트랜잭션
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import List

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from echo_api.core.config import settings
from echo_api.core.exceptions import ConflictError, EchoServiceError, NotFoundError, StorageError, ValidationError
from echo_api.crud import restaurant as restaurant_crud
from echo_api.crud import table as table_crud
from echo_api.models.database import Assignment, EchoTable, ScanCode
from echo_api.services.assignment_manager import AssignmentManager

logger = logging.getLogger(__name__)


@dataclass
class ProvisionedTable:
    table: EchoTable
    scan_code: ScanCode
    assignments: List[Assignment] = field(default_factory=list)


def build_code_value(scan_code_id: str) -> str:
    """QR 코드에 인쇄되는 값: {SCAN_BASE_URL}{scan_code_id}"""
    return f"{settings.SCAN_BASE_URL}{scan_code_id}"


class TableService:
    def __init__(self, db: Session):
        self.db = db
        self.assignments = AssignmentManager(db)

    def create_table(self, restaurant_id: str, table_number: str) -> ProvisionedTable:
        """테이블 + 스캔코드 생성 후 레스토랑 배정 조합 전파"""
        table_number = (table_number or "").strip()
        if not table_number:
            raise ValidationError("tableNumber", "Table number is required")

        if not restaurant_crud.get_restaurant(self.db, restaurant_id):
            raise NotFoundError("Restaurant", restaurant_id)
        if table_crud.get_table_by_number(self.db, restaurant_id, table_number):
            raise ConflictError(
                f"Table {table_number} already exists in this restaurant",
                {"restaurant_id": restaurant_id, "table_number": table_number}
            )

        try:
            table = table_crud.add_table(self.db, restaurant_id, table_number)
            scan_code = self._add_scan_code(table.id)
            assignments = self.assignments.provision_propagation(scan_code.id, restaurant_id, commit=False)
            self.db.commit()

        except EchoServiceError:
            self.db.rollback()
            raise
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError(
                f"Table {table_number} already exists in this restaurant",
                {"restaurant_id": restaurant_id, "table_number": table_number}
            ) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create table {table_number} in restaurant {restaurant_id}: {e}")
            raise StorageError(f"Failed to create table: {e}") from e

        logger.info(f"Created table {table.id} ({table_number}) with scan code {scan_code.id}")
        return ProvisionedTable(table=table, scan_code=scan_code, assignments=assignments)

    def regenerate_scan_code(self, table_id: str) -> ProvisionedTable:
        """스캔코드 재발급 - 인쇄된 기존 QR 코드는 더 이상 동작하지 않음"""
        table = table_crud.get_table(self.db, table_id)
        if not table:
            raise NotFoundError("Table", table_id)

        try:
            old_code = table_crud.get_scan_code_for_table(self.db, table_id)
            if old_code:
                # 기존 배정은 CASCADE 삭제
                self.db.delete(old_code)
                self.db.flush()
                self.db.expire(table, ["scan_code"])

            scan_code = self._add_scan_code(table.id)
            assignments = self.assignments.provision_propagation(scan_code.id, table.restaurant_id, commit=False)
            self.db.commit()

        except EchoServiceError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to regenerate scan code for table {table_id}: {e}")
            raise StorageError(f"Failed to regenerate scan code: {e}") from e

        logger.info(
            f"Regenerated scan code for table {table_id}: "
            f"{old_code.id if old_code else None} -> {scan_code.id}"
        )
        return ProvisionedTable(table=table, scan_code=scan_code, assignments=assignments)

    def _add_scan_code(self, table_id: str) -> ScanCode:
        scan_code_id = str(uuid.uuid4())
        return table_crud.add_scan_code(self.db, table_id, scan_code_id, build_code_value(scan_code_id))
