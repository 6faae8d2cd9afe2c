"""
Profile service layer for MongoDB operations.

Profile Store adapter: one optional secret message per identity.
"""

from datetime import datetime
from typing import Optional

from beanie.operators import Set
from pymongo.errors import PyMongoError

from friend_roster.models.profiles import Profile
from friend_roster.core.errors import ProfileStoreUnavailableException
from friend_roster.core.logging import get_logger

logger = get_logger(__name__)


async def find_profile(user_id: str) -> Optional[Profile]:
    """사용자 ID로 프로필 조회"""
    try:
        return await Profile.find_one(Profile.user_id == user_id)
    except PyMongoError as e:
        logger.error(f"Failed to load profile for {user_id}: {e}")
        raise ProfileStoreUnavailableException() from e


async def get_secret_message(user_id: str) -> Optional[str]:
    """시크릿 메시지 조회 (프로필이 없으면 None)"""
    profile = await find_profile(user_id)
    if not profile:
        return None
    return profile.secret_message


async def set_secret_message(user_id: str, message: str) -> Profile:
    """
    시크릿 메시지 저장 (upsert)

    Args:
        user_id: 사용자 ID
        message: 검증된 시크릿 메시지

    Returns:
        Profile: 저장된 프로필
    """
    now = datetime.utcnow()
    try:
        await Profile.find_one(Profile.user_id == user_id).upsert(
            Set({Profile.secret_message: message, Profile.updated_at: now}),
            on_insert=Profile(
                user_id=user_id,
                secret_message=message,
                created_at=now,
                updated_at=now
            )
        )
        profile = await Profile.find_one(Profile.user_id == user_id)
    except PyMongoError as e:
        logger.error(f"Failed to save profile for {user_id}: {e}")
        raise ProfileStoreUnavailableException() from e

    logger.info(f"Secret message updated for user {user_id}", extra={
        "user_id": user_id,
        "event_type": "profile_updated"
    })
    return profile


async def delete_profile(user_id: str) -> bool:
    """프로필 삭제 (계정 삭제 시)"""
    try:
        result = await Profile.find(Profile.user_id == user_id).delete()
    except PyMongoError as e:
        logger.error(f"Failed to delete profile for {user_id}: {e}")
        raise ProfileStoreUnavailableException() from e

    return bool(result and result.deleted_count)
