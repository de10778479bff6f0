# api/v1/serializers.py
from typing import Any, Dict, Optional
from echo_api.models.database import Assignment, EchoTable, Questionnaire, Response, Restaurant, ScanCode

def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None

def restaurant_to_dict(restaurant: Restaurant) -> Dict[str, Any]:
    return {
        "id": restaurant.id,
        "name": restaurant.name,
        "address": restaurant.address,
        "city": restaurant.city,
        "createdAt": _iso(restaurant.created_at)
    }

def scan_code_to_dict(scan_code: Optional[ScanCode]) -> Optional[Dict[str, Any]]:
    if scan_code is None:
        return None
    return {
        "id": scan_code.id,
        "tableId": scan_code.table_id,
        "codeValue": scan_code.code_value,
        "createdAt": _iso(scan_code.created_at)
    }

def table_to_dict(table: EchoTable) -> Dict[str, Any]:
    return {
        "id": table.id,
        "restaurantId": table.restaurant_id,
        "tableNumber": table.table_number,
        "scanCode": scan_code_to_dict(table.scan_code),
        "createdAt": _iso(table.created_at)
    }

def questionnaire_to_dict(questionnaire: Questionnaire) -> Dict[str, Any]:
    return {
        "id": questionnaire.id,
        "title": questionnaire.title,
        "description": questionnaire.description,
        "isActive": questionnaire.is_active,
        "version": questionnaire.version,
        "questions": questionnaire.questions or [],
        "createdAt": _iso(questionnaire.created_at),
        "updatedAt": _iso(questionnaire.updated_at)
    }

def assignment_to_dict(assignment: Assignment) -> Dict[str, Any]:
    return {
        "id": assignment.id,
        "scanCodeId": assignment.scan_code_id,
        "questionnaireId": assignment.questionnaire_id,
        "isActive": assignment.is_active,
        "weight": assignment.weight,
        "assignedAt": _iso(assignment.assigned_at),
        "deactivatedAt": _iso(assignment.deactivated_at),
        "reactivatedAt": _iso(assignment.reactivated_at)
    }

def response_to_dict(response: Response) -> Dict[str, Any]:
    return {
        "id": response.id,
        "tableId": response.table_id,
        "questionnaireId": response.questionnaire_id,
        "scanCodeId": response.scan_code_id,
        "assignmentId": response.assignment_id,
        "answers": response.answers,
        "flaggedKeys": response.flagged_keys or [],
        "questionnaireVersion": response.questionnaire_version,
        "submittedAt": _iso(response.submitted_at)
    }
