# api/v1/api.py
from fastapi import APIRouter
from echo_api.api.v1.endpoints import restaurants, tables, questionnaires, assignments, scan

api_router = APIRouter()

# 스태프 관리용 API
api_router.include_router(restaurants.router, prefix="/restaurants", tags=["restaurants"])
api_router.include_router(tables.router, prefix="/tables", tags=["tables"])
api_router.include_router(questionnaires.router, prefix="/questionnaires", tags=["questionnaires"])
api_router.include_router(assignments.router, prefix="/assignments", tags=["assignments"])

# 고객 스캔 API
api_router.include_router(scan.router, prefix="/scan", tags=["scan"])
