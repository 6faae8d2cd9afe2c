from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from friend_roster.database.mysql import get_async_session
from friend_roster.models.users import User
from friend_roster.schemas.user import UserProfile, DirectoryEntry
from friend_roster.api.auth import get_current_user, get_admin_user
from friend_roster.services import directory_service
from friend_roster.core.errors import ResourceNotFoundException
from friend_roster.core.validators import Validator
from friend_roster.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("", response_model=List[DirectoryEntry])
async def list_all_users(
    admin_user: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_async_session)
) -> List[DirectoryEntry]:
    """
    전체 사용자 목록 (관리자 전용)

    Returns:
        List[DirectoryEntry]: {id, email} 목록
    """
    users = await directory_service.list_all_users(db)
    return [DirectoryEntry.model_validate(user) for user in users]


@router.get("/{user_id}", response_model=UserProfile)
async def get_user_by_id(
    user_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session)
) -> UserProfile:
    """
    특정 ID의 사용자를 조회합니다.

    Args:
        user_id: 조회할 사용자 ID
        current_user: 현재 사용자
        db: 데이터베이스 세션

    Returns:
        UserProfile: 사용자 정보
    """
    user_id = Validator.validate_identity_id(user_id)

    user = await directory_service.find_user_by_id(db, user_id)
    if not user:
        raise ResourceNotFoundException("User")

    return UserProfile.model_validate(user)
