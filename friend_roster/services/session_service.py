"""
로그인 세션 관리 서비스

Redis를 사용하여 Identity Provider 토큰별 로그인/로그아웃 상태를 관리합니다.
"""

import json
from datetime import datetime
from typing import Optional

from redis.exceptions import RedisError

from friend_roster.core.config import settings
from friend_roster.core.errors import DependencyException
from friend_roster.core.logging import get_logger
from friend_roster.database.redis import get_redis
from friend_roster.utils.auth import token_fingerprint

logger = get_logger(__name__)

# Redis 키 패턴
SESSION_KEY = "session:{session_id}"
USER_SESSIONS_KEY = "user:sessions:{user_id}"


def session_ttl(token_ttl: Optional[int]) -> int:
    """세션 TTL: 토큰 남은 수명과 설정값 중 작은 값"""
    if token_ttl is None:
        return settings.session_ttl_seconds
    return max(1, min(token_ttl, settings.session_ttl_seconds))


async def open_session(user_id: str, token: str, token_ttl: Optional[int] = None) -> str:
    """
    로그인 세션 생성

    Args:
        user_id: 사용자 ID
        token: Identity Provider 액세스 토큰
        token_ttl: 토큰 만료까지 남은 시간 (초)

    Returns:
        str: 세션 ID (토큰 해시)
    """
    session_id = token_fingerprint(token)
    ttl = session_ttl(token_ttl)
    session_data = {
        "user_id": user_id,
        "created_at": datetime.utcnow().isoformat()
    }

    try:
        redis = await get_redis()

        # 파이프라인을 사용한 원자적 연산
        pipe = redis.pipeline()
        pipe.setex(SESSION_KEY.format(session_id=session_id), ttl, json.dumps(session_data))
        pipe.sadd(USER_SESSIONS_KEY.format(user_id=user_id), session_id)
        pipe.expire(USER_SESSIONS_KEY.format(user_id=user_id), settings.session_ttl_seconds)
        await pipe.execute()
    except RedisError as e:
        logger.error(f"Failed to open session for user {user_id}: {e}")
        raise DependencyException("Session Store") from e

    logger.info(f"Session opened for user {user_id}", extra={
        "user_id": user_id,
        "session_ttl": ttl,
        "event_type": "session_opened"
    })
    return session_id


async def get_session_user(token: str) -> Optional[str]:
    """토큰에 해당하는 활성 세션의 사용자 ID (없으면 None)"""
    try:
        redis = await get_redis()
        raw = await redis.get(SESSION_KEY.format(session_id=token_fingerprint(token)))
    except RedisError as e:
        logger.error(f"Failed to read session: {e}")
        raise DependencyException("Session Store") from e

    if not raw:
        return None
    return json.loads(raw).get("user_id")


async def is_session_active(token: str, user_id: str) -> bool:
    """토큰 세션이 활성 상태이고 같은 사용자 소유인지 확인"""
    return await get_session_user(token) == user_id


async def close_session(token: str, user_id: str) -> bool:
    """로그아웃: 토큰 세션 삭제"""
    session_id = token_fingerprint(token)
    try:
        redis = await get_redis()
        pipe = redis.pipeline()
        pipe.delete(SESSION_KEY.format(session_id=session_id))
        pipe.srem(USER_SESSIONS_KEY.format(user_id=user_id), session_id)
        deleted, _ = await pipe.execute()
    except RedisError as e:
        logger.error(f"Failed to close session for user {user_id}: {e}")
        raise DependencyException("Session Store") from e

    logger.info(f"Session closed for user {user_id}", extra={
        "user_id": user_id,
        "event_type": "session_closed"
    })
    return bool(deleted)


async def close_all_sessions(user_id: str) -> int:
    """사용자의 모든 세션 삭제 (계정 삭제 시)"""
    try:
        redis = await get_redis()
        user_key = USER_SESSIONS_KEY.format(user_id=user_id)
        session_ids = await redis.smembers(user_key)

        pipe = redis.pipeline()
        for session_id in session_ids:
            pipe.delete(SESSION_KEY.format(session_id=session_id))
        pipe.delete(user_key)
        await pipe.execute()
    except RedisError as e:
        logger.error(f"Failed to close sessions for user {user_id}: {e}")
        raise DependencyException("Session Store") from e

    return len(session_ids)
