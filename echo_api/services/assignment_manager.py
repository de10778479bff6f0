"""
배정(Assignment) 관리 서비스

비즈니스 로직:
- 스캔코드 <-> 설문 배정 생성/비활성화/삭제
- 수동 테이블 배정은 "테이블당 설문 하나" 정책 적용 (활성 배정이 있으면 거부)
- 레스토랑 일괄 배정은 best-effort: 이미 배정된 테이블은 건너뛰고 나머지만 배정
- 새 스캔코드 생성 시 같은 레스토랑의 현재 배정 조합(A/B 비율 포함)을 그대로 복제
- 모든 변경은 단일 트랜잭션 - 저장소 오류 시 전체 롤백 후 StorageError
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from echo_api.core.config import settings
from echo_api.core.exceptions import (
    AllAssignedError,
    ConflictError,
    NotFoundError,
    StorageError,
)
from echo_api.crud import assignment as assignment_crud
from echo_api.crud import questionnaire as questionnaire_crud
from echo_api.crud import restaurant as restaurant_crud
from echo_api.crud import table as table_crud
from echo_api.models.database import Assignment
from echo_api.services.validation import validate_weight

logger = logging.getLogger(__name__)


@dataclass
class RestaurantAssignmentResult:
    """레스토랑 일괄 배정 결과"""
    assigned_count: int
    skipped_count: int
    reactivated_count: int = 0
    skipped_detail: List[Dict[str, Any]] = field(default_factory=list)
    assignments: List[Assignment] = field(default_factory=list)


class AssignmentManager:
    """스캔코드별 배정 집합 관리

    비즈니스 로직:
    - 세션은 요청 단위로 주입 - 호출 사이에 배정 데이터를 캐시하지 않음
    - 레스토랑 범위는 항상 명시적 파라미터로 전달 (전역 기본값 없음)
    """

    def __init__(self, db: Session):
        self.db = db

    def assign_single(
        self,
        scan_code_id: str,
        questionnaire_id: str,
        weight: Optional[int] = None
    ) -> Assignment:
        """테이블(스캔코드) 하나에 설문 배정

        Raises:
            ValidationError: weight <= 0
            NotFoundError: 스캔코드 또는 설문 없음
            ConflictError: 이미 활성 배정이 있거나 같은 쌍의 배정이 존재
            StorageError: 저장소 오류
        """
        weight = validate_weight(settings.DEFAULT_ASSIGNMENT_WEIGHT if weight is None else weight)

        try:
            # 동시 요청이 같은 스캔코드에 둘 다 성공하지 않도록 행 잠금
            scan_code = table_crud.get_scan_code_for_update(self.db, scan_code_id)
            if not scan_code:
                raise NotFoundError("ScanCode", scan_code_id)

            questionnaire = questionnaire_crud.get_questionnaire(self.db, questionnaire_id)
            if not questionnaire:
                raise NotFoundError("Questionnaire", questionnaire_id)

            existing = assignment_crud.get_active_assignments(self.db, scan_code_id)
            if existing:
                titles = [a.questionnaire.title if a.questionnaire else "Unknown" for a in existing]
                raise ConflictError(
                    f"This table already has a questionnaire assigned: \"{', '.join(titles)}\". "
                    f"Please remove the existing assignment before assigning a new one.",
                    {"scan_code_id": scan_code_id, "existing_questionnaires": titles}
                )

            if assignment_crud.get_assignment_by_pair(self.db, scan_code_id, questionnaire_id):
                raise ConflictError(
                    "An inactive assignment for this questionnaire already exists on this table. "
                    "Remove it before assigning again.",
                    {"scan_code_id": scan_code_id, "questionnaire_id": questionnaire_id}
                )

            assignment = assignment_crud.add_assignment(self.db, scan_code_id, questionnaire_id, weight)
            self.db.commit()
            self.db.refresh(assignment)

        except (NotFoundError, ConflictError):
            self.db.rollback()
            raise
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Concurrent assignment rejected for scan code {scan_code_id}: {e}")
            raise ConflictError(
                "This questionnaire is already assigned to this table",
                {"scan_code_id": scan_code_id, "questionnaire_id": questionnaire_id}
            ) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to assign questionnaire {questionnaire_id} to scan code {scan_code_id}: {e}")
            raise StorageError(f"Failed to assign questionnaire: {e}") from e

        logger.info(f"Created assignment {assignment.id} for scan code {scan_code_id} -> questionnaire {questionnaire_id} (weight {weight})")
        return assignment

    def assign_to_restaurant(
        self,
        restaurant_id: str,
        questionnaire_id: str,
        weight: Optional[int] = None
    ) -> RestaurantAssignmentResult:
        """레스토랑의 모든 테이블에 설문 배정 (이미 배정된 테이블은 건너뜀)

        재실행해도 안전 - 기존 실험 배정을 건드리지 않고 빈 테이블만 채움

        Raises:
            NotFoundError: 레스토랑/설문 없음, 테이블 또는 스캔코드가 하나도 없음
            AllAssignedError: 대상 테이블이 모두 이미 배정됨
            StorageError: 저장소 오류
        """
        weight = validate_weight(settings.DEFAULT_ASSIGNMENT_WEIGHT if weight is None else weight)

        try:
            if not restaurant_crud.get_restaurant(self.db, restaurant_id):
                raise NotFoundError("Restaurant", restaurant_id)
            if not questionnaire_crud.get_questionnaire(self.db, questionnaire_id):
                raise NotFoundError("Questionnaire", questionnaire_id)

            tables = table_crud.get_tables_with_scan_codes(self.db, restaurant_id)
            if not tables:
                raise NotFoundError("Table", f"(restaurant {restaurant_id})")

            # 스캔코드가 있는 테이블만 대상
            eligible = [t for t in tables if t.scan_code is not None]
            if not eligible:
                raise NotFoundError("ScanCode", f"(restaurant {restaurant_id})")

            skipped_detail = []
            created = []
            reactivated = []
            for table in eligible:
                active = assignment_crud.get_active_assignments(self.db, table.scan_code.id)
                if active:
                    skipped_detail.append({
                        "table_id": table.id,
                        "table_number": table.table_number,
                        "questionnaires": [a.questionnaire.title if a.questionnaire else "Unknown" for a in active]
                    })
                    continue

                # 비활성 상태로 같은 쌍이 남아 있으면 유일성 제약상 새로 만들 수 없음 - 재활성화
                # 기존 weight 와 deactivated_at 은 보존, reactivated_at 만 기록
                existing_pair = assignment_crud.get_assignment_by_pair(self.db, table.scan_code.id, questionnaire_id)
                if existing_pair:
                    existing_pair.is_active = True
                    existing_pair.reactivated_at = datetime.utcnow()
                    reactivated.append(existing_pair)
                    created.append(existing_pair)
                    continue

                created.append(
                    assignment_crud.add_assignment(self.db, table.scan_code.id, questionnaire_id, weight)
                )

            if not created:
                raise AllAssignedError(
                    f"All {len(skipped_detail)} table(s) in this restaurant already have assignments",
                    {"skipped_count": len(skipped_detail), "skipped_detail": skipped_detail}
                )

            self.db.commit()

        except (NotFoundError, AllAssignedError):
            self.db.rollback()
            raise
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Concurrent restaurant assignment conflict for {restaurant_id}: {e}")
            raise ConflictError(
                "Assignments changed while assigning; please retry",
                {"restaurant_id": restaurant_id, "questionnaire_id": questionnaire_id}
            ) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to assign questionnaire {questionnaire_id} to restaurant {restaurant_id}: {e}")
            raise StorageError(f"Failed to assign questionnaire to restaurant: {e}") from e

        if skipped_detail:
            logger.warning(f"Skipped {len(skipped_detail)} already-assigned table(s) in restaurant {restaurant_id}")
        if reactivated:
            logger.info(f"Reactivated {len(reactivated)} inactive assignment(s) with their original weight in restaurant {restaurant_id}")
        logger.info(f"Assigned questionnaire {questionnaire_id} to {len(created)} table(s) in restaurant {restaurant_id}")

        return RestaurantAssignmentResult(
            assigned_count=len(created),
            skipped_count=len(skipped_detail),
            reactivated_count=len(reactivated),
            skipped_detail=skipped_detail,
            assignments=created
        )

    def provision_propagation(
        self,
        new_scan_code_id: str,
        restaurant_id: str,
        commit: bool = True
    ) -> List[Assignment]:
        """새 스캔코드에 같은 레스토랑의 현재 배정 조합 복제

        비즈니스 로직:
        - 다른 스캔코드들의 활성 배정에서 고유한 (설문, weight) 쌍을 조회
        - 다른 레스토랑의 배정은 절대 참조하지 않음 (restaurant_id 로 범위 제한)
        - 이미 존재하는 쌍은 건너뜀 -> 동시 호출에도 중복 행이 생기지 않음
        - 조회 후 삽입 사이에 다른 전파가 같은 쌍을 넣으면 SAVEPOINT 만 롤백하고 건너뜀
        - 레스토랑에 배정이 하나도 없으면 빈 목록 (스캔 시 NoActiveQuestionnaireError)

        Args:
            commit: False 이면 호출자 트랜잭션에 포함 (테이블+스캔코드 생성과 원자적 처리)
        """
        try:
            scan_code = table_crud.get_scan_code(self.db, new_scan_code_id)
            if not scan_code:
                raise NotFoundError("ScanCode", new_scan_code_id)
            if scan_code.table is None or scan_code.table.restaurant_id != restaurant_id:
                raise NotFoundError("ScanCode", f"{new_scan_code_id} (restaurant {restaurant_id})")

            mix = assignment_crud.get_restaurant_assignment_mix(
                self.db, restaurant_id, exclude_scan_code_id=new_scan_code_id
            )

            created = []
            for questionnaire_id, weight in mix:
                if assignment_crud.get_assignment_by_pair(self.db, new_scan_code_id, questionnaire_id):
                    continue
                # 동시 실행된 다른 전파가 같은 쌍을 먼저 넣었으면 그 쌍만 건너뜀
                try:
                    with self.db.begin_nested():
                        assignment = assignment_crud.add_assignment(
                            self.db, new_scan_code_id, questionnaire_id, weight
                        )
                        self.db.flush()
                except IntegrityError:
                    logger.info(
                        f"Questionnaire {questionnaire_id} already propagated to scan code {new_scan_code_id} - skipped"
                    )
                    continue
                created.append(assignment)

            if commit:
                self.db.commit()
            else:
                self.db.flush()

        except NotFoundError:
            if commit:
                self.db.rollback()
            raise
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Propagation for scan code {new_scan_code_id} raced with another writer: {e}")
            raise ConflictError(
                "Scan code assignments were propagated concurrently",
                {"scan_code_id": new_scan_code_id}
            ) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to propagate assignments to scan code {new_scan_code_id}: {e}")
            raise StorageError(f"Failed to propagate assignments: {e}") from e

        if created:
            logger.info(f"Propagated {len(created)} assignment(s) to scan code {new_scan_code_id} in restaurant {restaurant_id}")
        elif not mix:
            logger.warning(f"No questionnaires assigned in restaurant {restaurant_id} - scan code {new_scan_code_id} created without assignment")
        return created

    def deactivate(self, assignment_id: str) -> None:
        """배정 비활성화 (소프트 삭제 - 분석용 이력 보존)"""
        assignment = self._get_or_raise(assignment_id)
        if not assignment.is_active:
            logger.info(f"Assignment {assignment_id} is already inactive - deactivated_at kept")
            return

        try:
            assignment.is_active = False
            assignment.deactivated_at = datetime.utcnow()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to deactivate assignment {assignment_id}: {e}")
            raise StorageError(f"Failed to deactivate assignment: {e}") from e

        logger.info(f"Deactivated assignment {assignment_id}")

    def remove(self, assignment_id: str) -> None:
        """배정 영구 삭제 (하드 삭제)"""
        assignment = self._get_or_raise(assignment_id)

        try:
            self.db.delete(assignment)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to remove assignment {assignment_id}: {e}")
            raise StorageError(f"Failed to remove assignment: {e}") from e

        logger.info(f"Removed assignment {assignment_id}")

    def remove_all_for_restaurant(self, questionnaire_id: str, restaurant_id: str) -> int:
        """레스토랑 내 특정 설문의 배정 전체 영구 삭제 - 삭제 건수 반환"""
        try:
            assignments = assignment_crud.get_restaurant_assignments_for_questionnaire(
                self.db, questionnaire_id, restaurant_id
            )
            for assignment in assignments:
                self.db.delete(assignment)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to remove questionnaire {questionnaire_id} from restaurant {restaurant_id}: {e}")
            raise StorageError(f"Failed to remove assignments: {e}") from e

        logger.info(f"Removed {len(assignments)} assignment(s) of questionnaire {questionnaire_id} in restaurant {restaurant_id}")
        return len(assignments)

    def _get_or_raise(self, assignment_id: str) -> Assignment:
        try:
            assignment = assignment_crud.get_assignment(self.db, assignment_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Failed to load assignment: {e}") from e

        if not assignment:
            raise NotFoundError("Assignment", assignment_id)
        return assignment
