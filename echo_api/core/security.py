from datetime import datetime, timedelta, timezone
from typing import Any, Union, Optional
from jose import jwt, JWTError
from echo_api.core.config import settings
import logging

logger = logging.getLogger(__name__)

def create_access_token(
    subject: Union[str, Any], expires_delta: timedelta = None
) -> str:
    """스태프용 JWT 액세스 토큰 생성"""
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode = {"exp": expire, "sub": str(subject), "type": "access"}
    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return encoded_jwt

def verify_token(token: str, token_type: str = "access") -> Optional[str]:
    """JWT 토큰 검증 및 스태프 ID 반환"""
    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
        )
        staff_id: str = payload.get("sub")
        token_type_in_token: str = payload.get("type")

        if staff_id is None or token_type_in_token != token_type:
            return None

        return staff_id
    except JWTError as e:
        logger.error(f"JWT validation error: {e}")
        return None
