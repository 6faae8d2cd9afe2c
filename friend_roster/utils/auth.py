import hashlib
import time
from datetime import datetime, timedelta
from typing import Optional, Dict, Any

from jose import JWTError, ExpiredSignatureError, jwt

from friend_roster.core.config import settings
from friend_roster.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TOKEN_LIFETIME = timedelta(hours=2)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    액세스 토큰 발급

    운영 환경에서는 외부 Identity Provider가 토큰을 발급하며,
    이 함수는 로컬 개발과 테스트에서 같은 형식의 토큰을 만들 때 사용합니다.
    """
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or DEFAULT_TOKEN_LIFETIME)
    to_encode.update({"exp": expire})
    if settings.token_audience and "aud" not in to_encode:
        to_encode["aud"] = settings.token_audience
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: Optional[str]) -> Optional[Dict[str, Any]]:
    """토큰 서명/만료 검증 후 payload 반환 (실패 시 None)"""
    if not token:
        return None

    options = {"verify_aud": settings.token_audience is not None}
    try:
        return jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
            audience=settings.token_audience,
            options=options
        )
    except ExpiredSignatureError:
        logger.info("Access token expired")
        return None
    except JWTError as e:
        logger.info(f"Access token rejected: {e}")
        return None


def token_fingerprint(token: str) -> str:
    """세션 키로 사용할 토큰 해시 (원문 토큰은 저장하지 않음)"""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def token_remaining_seconds(payload: Dict[str, Any]) -> Optional[int]:
    """토큰 만료까지 남은 시간 (초)"""
    exp = payload.get("exp")
    if exp is None:
        return None
    remaining = int(exp - time.time())
    return max(remaining, 0)
