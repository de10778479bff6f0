"""
배정/해석 엔진 공통 예외 클래스

비즈니스 로직:
- 서비스 계층에서 발생하는 모든 도메인 오류를 하나의 상위 클래스로 묶음
- 각 예외는 HTTP 상태 코드와 에러 코드를 함께 가지고 있어 API 계층에서 일관된 응답 생성
- "대상 없음"(AllAssigned, NoActiveQuestionnaire)과 "저장소 장애"(Storage)를 타입으로 구분
"""

from typing import Any, Dict, Optional


class EchoServiceError(Exception):
    """서비스 기본 예외 클래스"""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str, detail: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail or {}

    def to_dict(self) -> Dict[str, Any]:
        payload = {"code": self.code, "message": self.message}
        if self.detail:
            payload["detail"] = self.detail
        return payload


class ValidationError(EchoServiceError):
    """입력 검증 실패 예외

    비즈니스 로직:
    - weight <= 0, 잘못된 질문/선택지 구조, 알 수 없는 답변 키 등
    - 어떤 변경(mutation)도 시도하기 전에 발생
    - field 속성으로 어느 필드가 문제인지 알려줌
    """

    status_code = 422
    code = "validation_error"

    def __init__(self, field: str, message: str):
        super().__init__(message, {"field": field})
        self.field = field


class NotFoundError(EchoServiceError):
    """참조한 ScanCode/Questionnaire/Assignment/Table/Restaurant가 존재하지 않음"""

    status_code = 404
    code = "not_found"

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} {entity_id} not found", {"entity": entity, "id": str(entity_id)})
        self.entity = entity
        self.entity_id = entity_id


class ConflictError(EchoServiceError):
    """배정 정책 또는 (ScanCode, Questionnaire) 유일성 위반

    비즈니스 로직:
    - 수동 테이블 배정 시 이미 활성 배정이 있는 경우
    - 동일한 쌍의 배정이 이미 존재하는 경우 (동시 요청 경쟁 포함)
    - 호출자가 기존 배정을 제거하거나 일괄 배정 경로를 사용해 복구 가능
    """

    status_code = 409
    code = "conflict"


class AllAssignedError(EchoServiceError):
    """일괄 배정 대상 테이블이 모두 이미 배정되어 있음 (정보성, 시스템 장애 아님)"""

    status_code = 409
    code = "all_assigned"


class NoActiveQuestionnaireError(EchoServiceError):
    """스캔 시점에 보여줄 활성 설문이 없음 - 고객에게는 '표시할 내용 없음'으로 노출"""

    status_code = 404
    code = "no_active_questionnaire"

    def __init__(self, scan_code_id: str):
        super().__init__(
            f"No active questionnaire for scan code {scan_code_id}",
            {"scan_code_id": scan_code_id}
        )
        self.scan_code_id = scan_code_id


class StorageError(EchoServiceError):
    """저장소 장애 - 항상 호출자에게 전달되며 조용히 무시되지 않음"""

    status_code = 503
    code = "storage_error"
