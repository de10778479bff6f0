from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from echo_api.core.security import verify_token
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()

def get_current_staff(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> str:
    """현재 인증된 스태프 ID 조회

    계정/세션 관리는 외부 인증 서비스 담당 - 여기서는 토큰 검증만 수행
    """
    staff_id = verify_token(credentials.credentials)

    if not staff_id:
        logger.warning("Rejected staff request with invalid token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="유효하지 않은 토큰입니다."
        )

    return staff_id
