from fastapi import APIRouter, Depends

from friend_roster.models.users import User
from friend_roster.schemas.user import SecretMessageUpdate, SecretMessageResponse
from friend_roster.api.auth import get_current_user
from friend_roster.services import profile_service
from friend_roster.core.validators import Validator
from friend_roster.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/profile", tags=["User Profile"])


@router.get("/secret-message", response_model=SecretMessageResponse)
async def get_my_secret_message(
    current_user: User = Depends(get_current_user)
) -> SecretMessageResponse:
    """
    현재 사용자의 시크릿 메시지를 조회합니다.

    Returns:
        SecretMessageResponse: 메시지가 없으면 secret_message=null
    """
    message = await profile_service.get_secret_message(current_user.id)
    return SecretMessageResponse(user_id=current_user.id, secret_message=message)


@router.put("/secret-message", response_model=SecretMessageResponse)
async def update_my_secret_message(
    payload: SecretMessageUpdate,
    current_user: User = Depends(get_current_user)
) -> SecretMessageResponse:
    """
    현재 사용자의 시크릿 메시지를 저장합니다 (upsert).

    Args:
        payload: 저장할 메시지 (앞뒤 공백 제거, 빈 값 거부)
        current_user: 현재 인증된 사용자

    Returns:
        SecretMessageResponse: 저장된 메시지
    """
    message = Validator.validate_secret_message(payload.secret_message)

    profile = await profile_service.set_secret_message(current_user.id, message)

    return SecretMessageResponse(
        user_id=current_user.id,
        secret_message=profile.secret_message if profile else message
    )
