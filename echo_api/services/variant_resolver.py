"""
스캔 시점 설문 변형(Variant) 해석 서비스

비즈니스 로직:
- 스캔코드 하나 -> 고객에게 보여줄 설문 정확히 하나
- 배정과 설문 모두 활성인 배정만 후보 (비활성 설문은 활성 배정이어도 노출 금지)
- 후보가 여러 개면 weight 기반 가중 랜덤 선택 (A/B 테스트)
- 방문마다 독립 추첨 - 세션 고정(sticky) 없음
- 읽기 전용이므로 저장소 일시 오류는 재시도
"""

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from echo_api.core.config import settings
from echo_api.core.exceptions import NoActiveQuestionnaireError, NotFoundError, StorageError
from echo_api.crud import assignment as assignment_crud
from echo_api.crud import table as table_crud
from echo_api.models.database import Assignment, Questionnaire

logger = logging.getLogger(__name__)


@dataclass
class ResolvedVariant:
    """해석 결과 - 응답 기록 시 그대로 태깅에 사용"""
    questionnaire: Questionnaire
    assignment_id: str
    scan_code_id: str
    table_id: str
    questionnaire_version: int
    question_ids: List[str] = field(default_factory=list)


def weighted_choice(assignments: Sequence[Assignment], rng: random.Random) -> Optional[Assignment]:
    """가중 랜덤 선택

    [0, total_weight) 에서 균등 추첨한 값을 누적 weight 가 처음 넘는 배정 선택.
    weight 0 이하인 배정은 추첨 대상에서 제외 (감사용으로 목록에는 남아 있음).
    """
    drawable = [a for a in assignments if (a.weight or 0) > 0]
    if not drawable:
        return None
    if len(drawable) == 1:
        return drawable[0]

    total_weight = sum(a.weight for a in drawable)
    draw = rng.random() * total_weight

    cumulative = 0
    for assignment in drawable:
        cumulative += assignment.weight
        if cumulative > draw:
            return assignment

    # 부동소수점 경계 대비
    return drawable[-1]


class VariantResolver:
    """스캔코드 -> 설문 변형 해석기"""

    def __init__(self, db: Session, rng: Optional[random.Random] = None):
        self.db = db
        self.rng = rng or random.Random()

    def resolve_for_scan(self, scan_code_id: str) -> ResolvedVariant:
        """스캔코드에 대해 보여줄 설문 하나 선택

        Raises:
            NotFoundError: 스캔코드 없음 (재발급으로 삭제된 코드 포함)
            NoActiveQuestionnaireError: 선택 가능한 배정 없음
            StorageError: 재시도 후에도 저장소 오류
        """
        scan_code, candidates = self._load_with_retry(scan_code_id)

        selected = weighted_choice(candidates, self.rng)
        if selected is None:
            logger.warning(f"No active questionnaire for scan code {scan_code_id} ({len(candidates)} candidate(s))")
            raise NoActiveQuestionnaireError(scan_code_id)

        questionnaire = selected.questionnaire
        logger.info(
            f"Resolved scan code {scan_code_id} -> questionnaire {questionnaire.id} "
            f"(assignment {selected.id}, {len(candidates)} candidate(s))"
        )
        return ResolvedVariant(
            questionnaire=questionnaire,
            assignment_id=selected.id,
            scan_code_id=scan_code.id,
            table_id=scan_code.table_id,
            questionnaire_version=questionnaire.version,
            question_ids=[q.get("id") for q in (questionnaire.questions or [])]
        )

    def list_candidates(self, scan_code_id: str) -> List[Dict[str, Any]]:
        """후보 배정과 선택 확률 (weight 0 포함 - 감사용)"""
        _, candidates = self._load_with_retry(scan_code_id)
        total_weight = sum(a.weight for a in candidates if (a.weight or 0) > 0)
        return [
            {
                "assignment_id": a.id,
                "questionnaire_id": a.questionnaire_id,
                "questionnaire_title": a.questionnaire.title,
                "weight": a.weight,
                "probability": round(a.weight / total_weight, 4) if total_weight and a.weight > 0 else 0.0
            }
            for a in candidates
        ]

    def _load_with_retry(self, scan_code_id: str):
        attempts = max(1, settings.READ_RETRY_ATTEMPTS)
        for attempt in range(attempts):
            try:
                scan_code = table_crud.get_scan_code(self.db, scan_code_id)
                if not scan_code:
                    raise NotFoundError("ScanCode", scan_code_id)
                candidates = assignment_crud.get_resolvable_assignments(self.db, scan_code_id)
                return scan_code, candidates

            except OperationalError as e:
                self.db.rollback()
                logger.error(f"Resolve attempt {attempt + 1} for scan code {scan_code_id} failed: {e}")
                if attempt < attempts - 1:
                    wait_time = 0.1 * (2 ** attempt)  # 지수 백오프
                    time.sleep(wait_time)
                    continue
                raise StorageError(f"Failed to resolve scan code after {attempts} attempts: {e}") from e
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"Failed to resolve scan code {scan_code_id}: {e}")
                raise StorageError(f"Failed to resolve scan code: {e}") from e
