from datetime import datetime
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, and_, or_
from sqlalchemy.exc import IntegrityError

from friend_roster.core.errors import (
    AlreadyRequestedOrFriendsException,
    NotFoundOrUnauthorizedException,
    SelfRequestException
)
from friend_roster.core.logging import get_logger, log_relationship_event
from friend_roster.core.validators import Validator, validate_friend_request
from friend_roster.models.friend_edges import (
    FriendEdge,
    STATUS_PENDING,
    STATUS_ACCEPTED,
    canonical_pair
)
from friend_roster.services import directory_service

logger = get_logger(__name__)


class RelationshipService:
    """친구 관계 상태 머신 (friend_edges 테이블의 유일한 변경 주체)"""

    @staticmethod
    async def send_request(
        db: AsyncSession,
        requester: str,
        recipient: str,
        email: Optional[str] = None
    ) -> FriendEdge:
        """
        친구 요청을 전송합니다.

        Args:
            db: 데이터베이스 세션
            requester: 요청자 ID (인증된 사용자)
            recipient: 대상자 ID
            email: 요청자 이메일 (비정규화 저장)

        Returns:
            FriendEdge: 생성된 pending 엣지
        """
        requester, recipient = validate_friend_request(requester, recipient)

        # 자기 자신에게 친구 요청 불가
        if requester == recipient:
            raise SelfRequestException()

        # 기존 관계 확인 (양방향)
        existing = await RelationshipService.find_edge(db, requester, recipient)
        if existing:
            raise AlreadyRequestedOrFriendsException()

        user_low, user_high = canonical_pair(requester, recipient)
        now = datetime.utcnow()
        edge = FriendEdge(
            requester=requester,
            recipient=recipient,
            user_low=user_low,
            user_high=user_high,
            status=STATUS_PENDING,
            email=email,
            created_at=now,
            updated_at=now
        )

        db.add(edge)
        try:
            await db.commit()
        except IntegrityError:
            # 동시 요청이 먼저 같은 쌍을 생성함 (uq_friend_edges_pair)
            await db.rollback()
            logger.info(f"Concurrent friend request rejected: {requester} -> {recipient}")
            raise AlreadyRequestedOrFriendsException()

        await db.refresh(edge)

        log_relationship_event(logger, "request_sent", edge.id, requester, recipient)
        return edge

    @staticmethod
    async def cancel_request(
        db: AsyncSession,
        requester: str,
        recipient: str
    ) -> None:
        """
        자신이 보낸 pending 친구 요청을 취소합니다.

        Args:
            db: 데이터베이스 세션
            requester: 요청자 ID (인증된 사용자)
            recipient: 요청을 받은 사용자 ID
        """
        requester, recipient = validate_friend_request(requester, recipient)

        result = await db.execute(
            delete(FriendEdge).where(
                and_(
                    FriendEdge.requester == requester,
                    FriendEdge.recipient == recipient,
                    FriendEdge.status == STATUS_PENDING
                )
            )
        )

        if result.rowcount == 0:
            raise NotFoundOrUnauthorizedException()

        await db.commit()

        log_relationship_event(logger, "request_cancelled", None, requester, recipient)

    @staticmethod
    async def accept_request(
        db: AsyncSession,
        edge_id: int,
        acting_user: str
    ) -> FriendEdge:
        """
        친구 요청을 수락합니다.

        status가 pending이고 acting_user가 수신자인 경우에만 accepted로 바꿉니다
        (단일 조건부 UPDATE로 compare-and-swap).

        Args:
            db: 데이터베이스 세션
            edge_id: 친구 요청 ID
            acting_user: 수락하는 사용자 ID

        Returns:
            FriendEdge: 업데이트된 친구 관계
        """
        edge_id = Validator.validate_positive_integer(edge_id, "edge_id")
        acting_user = Validator.validate_identity_id(acting_user, "acting_user")

        result = await db.execute(
            update(FriendEdge)
            .where(
                and_(
                    FriendEdge.id == edge_id,
                    FriendEdge.recipient == acting_user,
                    FriendEdge.status == STATUS_PENDING
                )
            )
            .values(status=STATUS_ACCEPTED, updated_at=datetime.utcnow())
        )

        if result.rowcount == 0:
            raise NotFoundOrUnauthorizedException()

        await db.commit()

        edge = await RelationshipService.get_edge_by_id(db, edge_id)
        if edge is None:
            # 커밋 직후 상대방이 삭제한 경우
            raise NotFoundOrUnauthorizedException()

        log_relationship_event(logger, "request_accepted", edge.id, edge.requester, edge.recipient)
        return edge

    @staticmethod
    async def decline_request(
        db: AsyncSession,
        edge_id: int,
        acting_user: str
    ) -> None:
        """
        친구 요청을 거절하거나 친구 관계를 끊습니다 (hard delete).

        pending/accepted 모두 양쪽 당사자 누구든 삭제할 수 있습니다.

        Args:
            db: 데이터베이스 세션
            edge_id: 친구 관계 ID
            acting_user: 거절하는 사용자 ID
        """
        edge_id = Validator.validate_positive_integer(edge_id, "edge_id")
        acting_user = Validator.validate_identity_id(acting_user, "acting_user")

        edge = await RelationshipService.get_edge_by_id(db, edge_id)
        previous_status = edge.status if edge else None
        requester = edge.requester if edge else None
        recipient = edge.recipient if edge else None

        result = await db.execute(
            delete(FriendEdge).where(
                and_(
                    FriendEdge.id == edge_id,
                    or_(
                        FriendEdge.requester == acting_user,
                        FriendEdge.recipient == acting_user
                    )
                )
            )
        )

        if result.rowcount == 0:
            raise NotFoundOrUnauthorizedException()

        await db.commit()

        log_relationship_event(
            logger,
            "request_declined" if previous_status == STATUS_PENDING else "unfriended",
            edge_id,
            requester,
            recipient,
            acting_user=acting_user
        )

    @staticmethod
    async def find_edge(
        db: AsyncSession,
        user_a: str,
        user_b: str
    ) -> Optional[FriendEdge]:
        """
        두 사용자 간의 엣지를 찾습니다 (양방향 검색).

        Args:
            db: 데이터베이스 세션
            user_a: 첫 번째 사용자 ID
            user_b: 두 번째 사용자 ID

        Returns:
            Optional[FriendEdge]: 엣지 또는 None
        """
        query = select(FriendEdge).where(
            or_(
                and_(FriendEdge.requester == user_a, FriendEdge.recipient == user_b),
                and_(FriendEdge.requester == user_b, FriendEdge.recipient == user_a)
            )
        )

        result = await db.execute(query)
        return result.scalars().first()

    @staticmethod
    async def get_edge_by_id(
        db: AsyncSession,
        edge_id: int
    ) -> Optional[FriendEdge]:
        """엣지를 ID로 조회합니다."""
        query = (
            select(FriendEdge)
            .where(FriendEdge.id == edge_id)
            .execution_options(populate_existing=True)
        )

        result = await db.execute(query)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_edges_for(
        db: AsyncSession,
        user_id: str,
        status: Optional[str] = None
    ) -> List[FriendEdge]:
        """
        사용자가 한쪽 당사자인 모든 엣지를 조회합니다.

        Args:
            db: 데이터베이스 세션
            user_id: 사용자 ID
            status: 상태 필터 (None이면 전체)

        Returns:
            List[FriendEdge]: 생성 순 엣지 목록
        """
        conditions = [
            or_(
                FriendEdge.requester == user_id,
                FriendEdge.recipient == user_id
            )
        ]
        if status is not None:
            conditions.append(FriendEdge.status == status)

        query = (
            select(FriendEdge)
            .where(and_(*conditions))
            .order_by(FriendEdge.created_at, FriendEdge.id)
        )

        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def list_candidates(
        db: AsyncSession,
        viewer: str,
        query: Optional[str] = None
    ) -> list:
        """
        친구 요청 후보 목록을 조회합니다.

        조건:
        - 본인 제외
        - 이미 친구(accepted)인 사용자 제외
        - viewer가 받은 pending 요청의 요청자 제외 (받은 요청 목록에 표시됨)
        - viewer가 보낸 pending 요청의 대상은 "pending" 태그로 포함

        Args:
            db: 데이터베이스 세션
            viewer: 현재 사용자 ID
            query: 사용자명/이메일 검색어 (선택)

        Returns:
            List[Candidate]: 태그가 붙은 후보 목록
        """
        from friend_roster.services.roster_service import Candidate, tag_candidate

        if query:
            users = await directory_service.search_users(db, Validator.validate_search_query(query))
        else:
            users = await directory_service.list_all_users(db)

        edges_by_peer = {
            edge.peer_of(viewer): edge
            for edge in await RelationshipService.list_edges_for(db, viewer)
        }

        candidates = []
        for user in users:
            if user.id == viewer:
                continue

            edge = edges_by_peer.get(user.id)
            tag = tag_candidate(viewer, edge)
            if tag is None:
                continue

            candidates.append(Candidate(
                user_id=user.id,
                email=user.email,
                username=user.username,
                tag=tag,
                edge_id=edge.id if edge else None
            ))

        return candidates

    @staticmethod
    async def delete_all_for(db: AsyncSession, user_id: str, commit: bool = True) -> int:
        """사용자가 관련된 모든 엣지 삭제 (계정 삭제 시, commit=False면 호출자가 커밋)"""
        result = await db.execute(
            delete(FriendEdge).where(
                or_(
                    FriendEdge.requester == user_id,
                    FriendEdge.recipient == user_id
                )
            )
        )
        if commit:
            await db.commit()
        return result.rowcount

    @staticmethod
    async def are_friends(
        db: AsyncSession,
        user_a: str,
        user_b: str
    ) -> bool:
        """
        두 사용자가 친구인지 확인합니다.

        Args:
            db: 데이터베이스 세션
            user_a: 첫 번째 사용자 ID
            user_b: 두 번째 사용자 ID

        Returns:
            bool: 친구 여부
        """
        edge = await RelationshipService.find_edge(db, user_a, user_b)
        return edge is not None and edge.status == STATUS_ACCEPTED
