"""
고객 응답 기록 서비스

비즈니스 로직:
- 고객 제출을 해석 당시의 배정(assignment)으로 태깅해 변형별 분석이 가능하도록 저장
- 답변 키는 설문의 질문 ID와 일치해야 함 (편집으로 삭제된 질문은 수락 후 flag)
- 제출 시각은 서버에서 고정 타임존(UTC+8)으로 부여 - 클라이언트 로케일과 무관
- 응답은 생성 후 변경/삭제 경로 없음
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from echo_api.core.config import settings
from echo_api.core.exceptions import NotFoundError, StorageError, ValidationError
from echo_api.crud import assignment as assignment_crud
from echo_api.crud import questionnaire as questionnaire_crud
from echo_api.crud import table as table_crud
from echo_api.models.database import Response
from echo_api.services.validation import check_answer_keys, question_ids

logger = logging.getLogger(__name__)


def submission_timezone() -> timezone:
    return timezone(timedelta(hours=settings.SUBMISSION_UTC_OFFSET_HOURS))


def submission_time(now: Optional[datetime] = None) -> datetime:
    """제출 시각을 고정 오프셋 타임존으로 변환 (naive 값은 UTC로 간주)"""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(submission_timezone())


class ResponseRecorder:
    """응답 기록기"""

    def __init__(self, db: Session):
        self.db = db

    def record_response(
        self,
        table_id: str,
        questionnaire_id: str,
        scan_code_id: str,
        assignment_id: str,
        answers: Dict[str, str],
        customer_identifier: Optional[str] = None,
        questionnaire_version: Optional[int] = None
    ) -> Response:
        """응답 저장

        questionnaire_version 은 스캔 시 해석된 설문 버전. 주어지지 않으면 현재 버전으로 기록

        Raises:
            NotFoundError: 테이블/설문/스캔코드/배정 없음
            ValidationError: 참조 불일치, 알 수 없는 답변 키, 범위 밖의 설문 버전
            StorageError: 저장소 오류
        """
        try:
            table = table_crud.get_table(self.db, table_id)
            questionnaire = questionnaire_crud.get_questionnaire(self.db, questionnaire_id)
            scan_code = table_crud.get_scan_code(self.db, scan_code_id)
            assignment = assignment_crud.get_assignment(self.db, assignment_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to load references for response: {e}")
            raise StorageError(f"Failed to load response references: {e}") from e

        if not table:
            raise NotFoundError("Table", table_id)
        if not questionnaire:
            raise NotFoundError("Questionnaire", questionnaire_id)
        if not scan_code:
            raise NotFoundError("ScanCode", scan_code_id)
        if not assignment:
            raise NotFoundError("Assignment", assignment_id)

        # 해석 결과와 제출 내용의 참조 일관성 확인
        if scan_code.table_id != table_id:
            raise ValidationError("tableId", "Scan code does not belong to this table")
        if assignment.scan_code_id != scan_code_id:
            raise ValidationError("assignmentId", "Assignment does not belong to this scan code")
        if assignment.questionnaire_id != questionnaire_id:
            raise ValidationError("assignmentId", "Assignment does not point to this questionnaire")
        if questionnaire_version is not None and not 1 <= questionnaire_version <= questionnaire.version:
            raise ValidationError(
                "questionnaireVersion",
                f"Questionnaire version must be between 1 and {questionnaire.version}"
            )

        clean_answers, flagged = check_answer_keys(
            answers,
            question_ids(questionnaire.questions),
            questionnaire.retired_question_ids or []
        )

        try:
            response = Response(
                table_id=table_id,
                questionnaire_id=questionnaire_id,
                scan_code_id=scan_code_id,
                assignment_id=assignment_id,
                answers=clean_answers,
                flagged_keys=flagged,
                questionnaire_version=questionnaire_version or questionnaire.version,
                customer_identifier=customer_identifier,
                submitted_at=submission_time()
            )
            self.db.add(response)
            self.db.commit()

        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to record response for assignment {assignment_id}: {e}")
            raise StorageError(f"Failed to record response: {e}") from e

        logger.info(f"Recorded response {response.id} for assignment {assignment_id} (table {table_id})")
        return response
