from typing import Optional, Tuple, Dict, Any
from fastapi import APIRouter, Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from friend_roster.core.config import settings
from friend_roster.core.errors import (
    AuthenticationException,
    invalid_token_error,
    session_not_found_error,
    admin_only_error
)
from friend_roster.core.logging import (
    get_logger,
    set_user_context,
    log_authentication_event,
    log_security_event
)
from friend_roster.database.mysql import get_async_session
from friend_roster.models.users import User
from friend_roster.schemas.user import UserProfile, SessionResponse
from friend_roster.services import directory_service, profile_service, session_service
from friend_roster.services.relationship_service import RelationshipService
from friend_roster.utils.auth import decode_access_token, token_remaining_seconds

logger = get_logger(__name__)

# Identity Provider가 발급한 Bearer 토큰
bearer_scheme = HTTPBearer(auto_error=False)
router = APIRouter(prefix="/auth", tags=["Authentication"])


def _claims_identity(payload: Dict[str, Any]) -> Tuple[str, Optional[str], Optional[str]]:
    """토큰 payload에서 (sub, email, username) 추출"""
    user_id = payload.get("sub")
    if not user_id:
        raise invalid_token_error()

    metadata = payload.get("user_metadata") or {}
    email = payload.get("email") or metadata.get("email")
    username = metadata.get("username") or payload.get("preferred_username")
    return str(user_id), email, username


async def get_verified_token(
        request: Request,
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> Tuple[str, Dict[str, Any]]:
    """
    Bearer 토큰 서명/만료 검증

    Returns:
        (token, payload)
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationException("Not authenticated")

    token = credentials.credentials
    payload = decode_access_token(token)
    if not payload:
        log_security_event(
            logger,
            "invalid_token",
            severity="low",
            ip_address=request.client.host if request.client else None
        )
        raise invalid_token_error()

    return token, payload


async def get_current_user(
        request: Request,
        verified: Tuple[str, Dict[str, Any]] = Depends(get_verified_token),
        db: AsyncSession = Depends(get_async_session)
) -> User:
    """
    현재 인증된 사용자 조회

    토큰이 유효하고 로그인 세션이 살아 있는 경우에만 사용자를 반환합니다.
    요청자 ID는 항상 이 경로로만 결정됩니다.
    """
    token, payload = verified
    user_id, email, username = _claims_identity(payload)

    # 로그인 세션 확인 (로그아웃된 토큰 거부)
    if not await session_service.is_session_active(token, user_id):
        raise session_not_found_error()

    user = await directory_service.find_user_by_id(db, user_id)
    if not user:
        user = await directory_service.upsert_identity(db, user_id, email, username)

    set_user_context(user.id)
    request.state.user_id = user.id
    return user


async def get_admin_user(
        current_user: User = Depends(get_current_user)
) -> User:
    """관리자 권한 확인 (User Directory 전체 조회용)"""
    if current_user.id not in settings.admin_user_ids:
        log_security_event(logger, "admin_access_denied", user_id=current_user.id)
        raise admin_only_error()
    return current_user


@router.post("/login", response_model=SessionResponse)
async def login(
        verified: Tuple[str, Dict[str, Any]] = Depends(get_verified_token),
        db: AsyncSession = Depends(get_async_session)
) -> SessionResponse:
    """
    로그인 세션 시작

    - Identity Provider가 발급한 토큰을 Bearer로 전달
    - 토큰 사용자를 디렉터리에 반영하고 세션을 생성
    """
    token, payload = verified
    user_id, email, username = _claims_identity(payload)

    user = await directory_service.upsert_identity(db, user_id, email, username)

    token_ttl = token_remaining_seconds(payload)
    session_id = await session_service.open_session(user.id, token, token_ttl)

    log_authentication_event(logger, "login", user_id=user.id, email=user.email)

    return SessionResponse(
        user=UserProfile.model_validate(user),
        session_id=session_id,
        expires_in=session_service.session_ttl(token_ttl)
    )


@router.post("/logout")
async def logout(
        verified: Tuple[str, Dict[str, Any]] = Depends(get_verified_token),
        current_user: User = Depends(get_current_user)
) -> dict:
    """
    로그아웃 (현재 토큰의 세션 종료)
    """
    token, _ = verified
    await session_service.close_session(token, current_user.id)

    log_authentication_event(logger, "logout", user_id=current_user.id)

    return {
        "message": "Successfully logged out",
        "user_id": current_user.id
    }


@router.get("/me", response_model=UserProfile)
async def get_me(
        current_user: User = Depends(get_current_user)
) -> UserProfile:
    """현재 사용자 정보"""
    return UserProfile.model_validate(current_user)


@router.delete("/account")
async def delete_account(
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_async_session)
) -> dict:
    """
    계정 삭제

    프로필과 세션을 먼저 삭제한 뒤 친구 관계와 디렉터리 항목을 한 트랜잭션으로 삭제합니다.
    외부 저장소 장애 시 관계 데이터는 그대로 남아 재시도할 수 있습니다.
    Identity Provider의 계정 자체는 삭제하지 않습니다.
    """
    user_id = current_user.id

    await profile_service.delete_profile(user_id)
    await session_service.close_all_sessions(user_id)

    removed_edges = await RelationshipService.delete_all_for(db, user_id, commit=False)
    await directory_service.delete_user(db, user_id, commit=False)
    await db.commit()

    log_authentication_event(logger, "account_deleted", user_id=user_id, removed_edges=removed_edges)

    return {
        "message": "User deleted successfully.",
        "user_id": user_id
    }
