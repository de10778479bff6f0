"""
배정/설문/응답 공통 검증 유틸리티

비즈니스 로직:
- 모든 검증은 변경(mutation) 시도 전에 수행
- 실패 시 어느 필드가 잘못되었는지 알려주는 ValidationError 발생
- 서비스 계층과 API 계층이 동일한 규칙을 공유하도록 한 곳에 모음
"""

import logging
from typing import Any, Dict, Iterable, List, Tuple

from echo_api.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

QUESTION_TYPES = ("multiple_choice", "text_input")
MIN_OPTIONS = 2
MAX_OPTIONS = 5


def validate_weight(weight: Any, field: str = "weight") -> int:
    """배정 가중치 검증 - 양의 정수만 허용 (bool 제외)"""
    if isinstance(weight, bool) or not isinstance(weight, int):
        raise ValidationError(field, "Weight must be an integer")
    if weight <= 0:
        raise ValidationError(field, "Weight must be a positive integer")
    return weight


def validate_questions(questions: Any) -> List[Dict[str, Any]]:
    """질문 목록 구조 검증 후 정규화된 목록 반환

    비즈니스 로직:
    - 질문은 최소 1개 이상
    - 각 질문은 id, text, type 필수 / id는 설문 내에서 유일
    - multiple_choice 는 2~5개의 선택지, 각 선택지는 label과 value 필수
    - text_input 은 선택지를 저장하지 않음
    - order 미지정 시 목록 순서로 채움
    """
    if not isinstance(questions, list):
        raise ValidationError("questions", "Questions must be an array")

    if len(questions) == 0:
        raise ValidationError("questions", "At least one question is required")

    normalized = []
    seen_ids = set()

    for i, q in enumerate(questions):
        field = f"questions[{i}]"
        if not isinstance(q, dict):
            raise ValidationError(field, f"Question {i + 1}: must be an object")

        question_id = q.get("id")
        if not question_id or not isinstance(question_id, str):
            raise ValidationError(f"{field}.id", f"Question {i + 1}: ID is required")
        if question_id in seen_ids:
            raise ValidationError(f"{field}.id", f"Question {i + 1}: ID '{question_id}' is duplicated")
        seen_ids.add(question_id)

        text = q.get("text")
        if not text or not isinstance(text, str) or text.strip() == "":
            raise ValidationError(f"{field}.text", f"Question {i + 1}: Text is required")

        question_type = q.get("type")
        if question_type not in QUESTION_TYPES:
            raise ValidationError(
                f"{field}.type",
                f"Question {i + 1}: Type must be 'multiple_choice' or 'text_input'"
            )

        order = q.get("order")
        item = {
            "id": question_id,
            "text": text,
            "type": question_type,
            "order": order if isinstance(order, int) and not isinstance(order, bool) else i + 1,
        }

        if question_type == "multiple_choice":
            options = q.get("options")
            if not options or not isinstance(options, list):
                raise ValidationError(
                    f"{field}.options", f"Question {i + 1}: Multiple choice questions must have options"
                )
            if len(options) < MIN_OPTIONS or len(options) > MAX_OPTIONS:
                raise ValidationError(
                    f"{field}.options", f"Question {i + 1}: Multiple choice must have 2-5 options"
                )
            for j, opt in enumerate(options):
                if not isinstance(opt, dict) or not opt.get("label") or not opt.get("value"):
                    raise ValidationError(
                        f"{field}.options[{j}]",
                        f"Question {i + 1}, Option {j + 1}: Label and value are required"
                    )
            item["options"] = [{"label": opt["label"], "value": opt["value"]} for opt in options]

        normalized.append(item)

    return normalized


def question_ids(questions: Iterable[Dict[str, Any]]) -> List[str]:
    """질문 목록에서 ID만 순서대로 추출"""
    return [q["id"] for q in (questions or []) if isinstance(q, dict) and q.get("id")]


def retire_removed_ids(
    old_questions: Iterable[Dict[str, Any]],
    new_questions: Iterable[Dict[str, Any]],
    retired: Iterable[str]
) -> List[str]:
    """편집으로 빠진 질문 ID를 retired 목록에 누적 (다시 추가된 ID는 제외)"""
    new_ids = set(question_ids(new_questions))
    result = [qid for qid in (retired or []) if qid not in new_ids]
    for qid in question_ids(old_questions):
        if qid not in new_ids and qid not in result:
            result.append(qid)
    return result


def check_answer_keys(
    answers: Any,
    current_ids: Iterable[str],
    retired_ids: Iterable[str]
) -> Tuple[Dict[str, str], List[str]]:
    """응답 키 검증

    비즈니스 로직:
    - 현재 설문에 있는 질문 ID -> 정상 수락
    - 설문 편집으로 삭제된(retired) 질문 ID -> 수락하되 flag 처리
      (고객이 해석 시점의 설문으로 응답하는 사이 설문이 편집될 수 있음)
    - 어디에도 없는 키 -> 거부

    Returns:
        (answers, flagged_keys)
    """
    if not isinstance(answers, dict):
        raise ValidationError("answers", "Answers must be an object keyed by question id")

    current = set(current_ids)
    retired = set(retired_ids)
    flagged = []

    for key, value in answers.items():
        if not isinstance(value, str):
            raise ValidationError(f"answers.{key}", f"Answer for '{key}' must be a string")
        if key in current:
            continue
        if key in retired:
            flagged.append(key)
            continue
        raise ValidationError(f"answers.{key}", f"Unknown question id '{key}'")

    if flagged:
        logger.warning(f"Accepted answers for retired question ids: {flagged}")

    return dict(answers), flagged
