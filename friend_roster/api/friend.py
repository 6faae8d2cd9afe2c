from typing import List, Optional
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.ext.asyncio import AsyncSession

from friend_roster.database.mysql import get_async_session
from friend_roster.models.users import User
from friend_roster.schemas.friendship import (
    FriendRequestCreate,
    FriendEdgeResponse,
    FriendListResponse,
    FriendRequestListResponse,
    CandidateResponse,
    CandidateList
)
from friend_roster.api.auth import get_current_user
from friend_roster.core.errors import user_not_found_error
from friend_roster.core.validators import Validator
from friend_roster.services import directory_service
from friend_roster.services.relationship_service import RelationshipService
from friend_roster.services.roster_service import RosterService
from friend_roster.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/friends", tags=["Friends"])


@router.post("/request", response_model=FriendEdgeResponse,
             status_code=status.HTTP_201_CREATED)
async def send_friend_request(
        friend_request: FriendRequestCreate,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_async_session)
):
    """
    친구 요청을 전송합니다.

    요청자는 인증된 세션의 사용자이며, 요청 본문으로 지정할 수 없습니다.

    Args:
        friend_request: 친구 요청 데이터 (recipient_id)
        current_user: 현재 인증된 사용자
        db: 데이터베이스 세션

    Returns:
        FriendEdgeResponse: 생성된 친구 요청 정보
    """
    # 공백뿐인 ID는 디렉터리 조회 전에 거부
    recipient_id = Validator.validate_identity_id(friend_request.recipient_id, "recipient")

    # 대상 사용자 존재 확인 (자기 자신은 서비스에서 거부)
    if recipient_id != current_user.id:
        target_user = await directory_service.find_user_by_id(db, recipient_id)
        if not target_user:
            raise user_not_found_error(recipient_id)

    edge = await RelationshipService.send_request(
        db, current_user.id, recipient_id, email=current_user.email
    )

    return FriendEdgeResponse.model_validate(edge)


@router.delete("/request/{recipient_id}")
async def cancel_friend_request(
        recipient_id: str,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_async_session)
):
    """
    자신이 특정 사용자에게 보낸 친구 요청을 취소합니다.

    Example:
        DELETE /friends/request/9b2f...
        # 현재 유저가 해당 사용자에게 보낸 pending 요청을 취소
    """
    await RelationshipService.cancel_request(db, current_user.id, recipient_id)

    return {
        "message": "Friend request cancelled successfully",
        "recipient_id": recipient_id
    }


@router.post("/{edge_id}/accept", response_model=FriendEdgeResponse)
async def accept_friend_request(
        edge_id: int,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_async_session)
):
    """
    받은 친구 요청을 수락합니다.

    Args:
        edge_id: 친구 요청 ID
        current_user: 현재 인증된 사용자 (요청 수신자여야 함)
        db: 데이터베이스 세션

    Returns:
        FriendEdgeResponse: 수락된 친구 관계
    """
    edge = await RelationshipService.accept_request(db, edge_id, current_user.id)
    return FriendEdgeResponse.model_validate(edge)


@router.post("/{edge_id}/decline")
async def decline_friend_request(
        edge_id: int,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_async_session)
):
    """
    친구 요청을 거절하거나 친구를 삭제합니다.

    Args:
        edge_id: 친구 관계 ID
        current_user: 현재 인증된 사용자 (당사자여야 함)
        db: 데이터베이스 세션
    """
    await RelationshipService.decline_request(db, edge_id, current_user.id)

    return {
        "message": "Friend request declined successfully",
        "edge_id": edge_id
    }


@router.get("", response_model=List[FriendListResponse])
async def get_friends_list(
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_async_session)
):
    """
    현재 사용자의 친구 목록과 친구들의 시크릿 메시지를 조회합니다.
    """
    friends = await RosterService.build_friends_view(db, current_user.id)
    return [FriendListResponse.model_validate(entry) for entry in friends]


@router.get("/requests", response_model=List[FriendRequestListResponse])
async def get_friend_requests(
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_async_session)
):
    """
    현재 사용자가 받은 친구 요청 목록을 조회합니다.
    """
    requests = await RosterService.build_pending_view(db, current_user.id)
    return [FriendRequestListResponse.model_validate(entry) for entry in requests]


@router.get("/candidates", response_model=CandidateList)
async def get_friend_candidates(
        query: Optional[str] = Query(None, min_length=1, max_length=100,
                                     description="사용자명/이메일 검색어"),
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_async_session)
):
    """
    친구 요청 후보 목록

    검색 조건:
    - 본인 제외
    - 이미 친구인 사용자 제외
    - 나에게 요청을 보낸 사용자 제외 (받은 요청 목록에 표시)
    - 내가 요청을 보낸 사용자는 tag=pending
    """
    candidates = await RelationshipService.list_candidates(db, current_user.id, query)
    return CandidateList(
        candidates=[CandidateResponse.model_validate(candidate) for candidate in candidates],
        total=len(candidates)
    )
