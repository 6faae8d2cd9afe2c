"""
User Directory service layer for database operations.

Mirrors identities issued by the Identity Provider so they can be enumerated
for the friend candidate list.
"""

from typing import Optional, List
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, or_, func
from sqlalchemy.exc import IntegrityError

from friend_roster.core.config import settings
from friend_roster.core.logging import get_logger
from friend_roster.models.users import User

logger = get_logger(__name__)

LIKE_ESCAPE = "\\"


# =============================================================================
# User Lookup
# =============================================================================

async def find_user_by_id(db: AsyncSession, user_id: str) -> Optional[User]:
    """사용자 ID로 조회"""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def list_all_users(db: AsyncSession, limit: Optional[int] = None) -> List[User]:
    """
    전체 사용자 목록 (관리자 범위)

    Args:
        db: 데이터베이스 세션
        limit: 최대 개수 (기본값: settings.directory_max_users)

    Returns:
        List[User]: 가입 순으로 정렬된 사용자 목록
    """
    stmt = (
        select(User)
        .order_by(User.created_at, User.id)
        .limit(limit or settings.directory_max_users)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def search_users(
    db: AsyncSession,
    query: str,
    limit: Optional[int] = None
) -> List[User]:
    """사용자명 또는 이메일 부분 일치 검색 (대소문자 무시)"""
    # %, _ 는 와일드카드가 아닌 문자 그대로 매칭
    escaped = (
        query.lower()
        .replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    pattern = f"%{escaped}%"
    stmt = (
        select(User)
        .where(
            or_(
                func.lower(User.username).like(pattern, escape=LIKE_ESCAPE),
                func.lower(User.email).like(pattern, escape=LIKE_ESCAPE)
            )
        )
        .order_by(User.created_at, User.id)
        .limit(limit or settings.directory_max_users)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_users_by_ids(db: AsyncSession, user_ids: List[str]) -> List[User]:
    """사용자 ID 목록으로 사용자들 조회"""
    if not user_ids:
        return []

    stmt = select(User).where(User.id.in_(user_ids))
    result = await db.execute(stmt)
    return list(result.scalars().all())


# =============================================================================
# Identity Provisioning
# =============================================================================

async def upsert_identity(
    db: AsyncSession,
    user_id: str,
    email: Optional[str] = None,
    username: Optional[str] = None
) -> User:
    """
    Identity Provider 토큰으로 확인된 사용자를 디렉터리에 반영합니다.

    처음 보는 ID면 생성하고, 이미 있으면 이메일/사용자명과 마지막 접속 시간을 갱신합니다.
    """
    now = datetime.utcnow()
    user = await find_user_by_id(db, user_id)

    if user is None:
        user = User(
            id=user_id,
            email=email,
            username=username,
            created_at=now,
            last_seen_at=now
        )
        db.add(user)
        try:
            await db.commit()
        except IntegrityError:
            # 동시 요청이 먼저 생성한 경우
            await db.rollback()
            user = await find_user_by_id(db, user_id)
            if user is None:
                raise
        else:
            await db.refresh(user)
            logger.info(f"Identity provisioned: {user_id}", extra={
                "user_id": user_id,
                "event_type": "identity_provisioned"
            })
            return user

    if email is not None:
        user.email = email
    if username is not None:
        user.username = username
    user.last_seen_at = now

    await db.commit()
    await db.refresh(user)
    return user


async def delete_user(db: AsyncSession, user_id: str, commit: bool = True) -> bool:
    """디렉터리에서 사용자 삭제"""
    result = await db.execute(delete(User).where(User.id == user_id))
    if commit:
        await db.commit()
    return result.rowcount > 0
