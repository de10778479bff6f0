from pydantic import BaseModel, Field, field_validator
from typing import List, Optional, Dict, Any
from enum import Enum

# 공통 응답 모델
class APIResponse(BaseModel):
    success: bool = True
    message: str = ""
    data: Optional[Any] = None
    error: Optional[str] = None

# 에러 응답
class ErrorResponse(BaseModel):
    success: bool = False
    error: Dict[str, Any]

# 레스토랑 관련 스키마
class RestaurantCreate(BaseModel):
    name: str = Field(..., min_length=1, description="레스토랑 이름")
    address: Optional[str] = None
    city: Optional[str] = None

# 테이블 관련 스키마
class TableCreate(BaseModel):
    restaurantId: str = Field(..., description="레스토랑 ID")
    tableNumber: str = Field(..., min_length=1, description="테이블 번호 (A1, 12 등 자유 형식)")

# 설문 관련 스키마
class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    TEXT_INPUT = "text_input"

class QuestionOption(BaseModel):
    label: str = Field(..., min_length=1, description="선택지 표시 문구")
    value: str = Field(..., min_length=1, description="선택지 값")

class QuestionDefinition(BaseModel):
    id: str = Field(..., min_length=1)
    text: str = Field(..., min_length=1)
    type: QuestionType
    order: Optional[int] = None  # 미지정 시 목록 순서로 채움
    options: Optional[List[QuestionOption]] = None  # multiple_choice 에서만 사용

    @field_validator("text")
    @classmethod
    def text_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Text is required")
        return value

class QuestionnaireCreate(BaseModel):
    title: str = Field(..., min_length=1, description="설문 제목")
    description: Optional[str] = None
    isActive: bool = True
    questions: List[QuestionDefinition] = Field(..., description="질문 목록")

class QuestionnaireUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    isActive: Optional[bool] = None
    questions: Optional[List[QuestionDefinition]] = None

# 배정 관련 스키마
class AssignRequest(BaseModel):
    scanCodeId: str
    questionnaireId: str
    weight: int = Field(100, ge=1, description="상대 확률 (양의 정수)")

class RestaurantAssignRequest(BaseModel):
    restaurantId: str
    weight: int = Field(100, ge=1, description="상대 확률 (양의 정수)")

class SkippedTable(BaseModel):
    tableId: str
    tableNumber: str
    questionnaires: List[str]

class RestaurantAssignmentResponse(BaseModel):
    assignedCount: int
    reactivatedCount: int = 0
    skippedCount: int
    skippedDetail: List[SkippedTable]

# 스캔/응답 관련 스키마
class ResolvedQuestionnaire(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    version: int
    questions: List[Dict[str, Any]]

class ResolveResponse(BaseModel):
    assignmentId: str
    scanCodeId: str
    tableId: str
    questionnaire: ResolvedQuestionnaire

class ResponseSubmitRequest(BaseModel):
    tableId: str
    questionnaireId: str
    assignmentId: str
    answers: Dict[str, str] = Field(..., description="질문 ID를 키로 하는 답변")
    customerIdentifier: Optional[str] = None
    questionnaireVersion: Optional[int] = Field(None, description="스캔 시 받은 설문 버전")
