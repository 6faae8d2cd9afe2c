"""
Roster 서비스

친구 관계 저장소와 프로필 저장소로부터 사용자별 화면 데이터를 계산합니다.
상태를 보관하지 않으며 요청마다 다시 계산합니다.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_

from friend_roster.core.logging import get_logger, log_dependency_failure
from friend_roster.models.friend_edges import FriendEdge, STATUS_PENDING, STATUS_ACCEPTED
from friend_roster.services import directory_service, profile_service
from friend_roster.services.relationship_service import RelationshipService

logger = get_logger(__name__)


class CandidateTag(str, Enum):
    """후보 목록 버튼 상태"""
    ADD = "add"
    PENDING = "pending"


@dataclass
class FriendEntry:
    edge_id: int
    peer: str
    email: Optional[str]
    secret_message: Optional[str]
    since: datetime


@dataclass
class PendingEntry:
    edge_id: int
    peer: str
    email: Optional[str]
    created_at: datetime


@dataclass
class Candidate:
    user_id: str
    email: Optional[str]
    username: Optional[str]
    tag: CandidateTag
    edge_id: Optional[int] = None


def tag_candidate(viewer: str, edge: Optional[FriendEdge]) -> Optional[CandidateTag]:
    """
    후보 태그 규칙

    - 엣지 없음 → ADD
    - viewer가 보낸 pending → PENDING (취소 가능)
    - viewer가 받은 pending → None (받은 요청 목록에 표시)
    - accepted → None (이미 친구)
    """
    if edge is None:
        return CandidateTag.ADD
    if edge.status == STATUS_PENDING and edge.requester == viewer:
        return CandidateTag.PENDING
    return None


class RosterService:
    """친구 목록/받은 요청 목록 계산"""

    @staticmethod
    async def build_friends_view(db: AsyncSession, viewer: str) -> List[FriendEntry]:
        """
        수락된 친구 목록과 각 친구의 시크릿 메시지를 조회합니다.

        프로필 조회는 친구마다 독립적으로 동시에 수행하며, 한 친구의 조회 실패는
        해당 항목의 secret_message를 None으로 두고 전체 목록은 정상 반환합니다.

        Args:
            db: 데이터베이스 세션
            viewer: 현재 사용자 ID

        Returns:
            List[FriendEntry]: 친구 목록
        """
        edges = await RelationshipService.list_edges_for(db, viewer, status=STATUS_ACCEPTED)
        if not edges:
            return []

        peers = [edge.peer_of(viewer) for edge in edges]
        users = await directory_service.get_users_by_ids(db, peers)
        email_by_id = {user.id: user.email for user in users}

        secret_messages = await asyncio.gather(
            *(RosterService._load_secret_message(peer) for peer in peers)
        )

        return [
            FriendEntry(
                edge_id=edge.id,
                peer=peer,
                email=email_by_id.get(peer),
                secret_message=secret_message,
                since=edge.updated_at or edge.created_at
            )
            for edge, peer, secret_message in zip(edges, peers, secret_messages)
        ]

    @staticmethod
    async def build_pending_view(db: AsyncSession, viewer: str) -> List[PendingEntry]:
        """
        viewer가 받은 pending 요청 목록을 조회합니다.

        viewer가 보낸 요청은 포함하지 않습니다 (후보 목록의 PENDING 태그로 표시).

        Args:
            db: 데이터베이스 세션
            viewer: 현재 사용자 ID

        Returns:
            List[PendingEntry]: 받은 요청 목록
        """
        query = (
            select(FriendEdge)
            .where(
                and_(
                    FriendEdge.recipient == viewer,
                    FriendEdge.status == STATUS_PENDING
                )
            )
            .order_by(FriendEdge.created_at, FriendEdge.id)
        )
        result = await db.execute(query)
        edges = list(result.scalars().all())
        if not edges:
            return []

        users = await directory_service.get_users_by_ids(db, [edge.requester for edge in edges])
        email_by_id = {user.id: user.email for user in users}

        return [
            PendingEntry(
                edge_id=edge.id,
                peer=edge.requester,
                email=email_by_id.get(edge.requester) or edge.email,
                created_at=edge.created_at
            )
            for edge in edges
        ]

    @staticmethod
    async def _load_secret_message(peer: str) -> Optional[str]:
        """친구 한 명의 시크릿 메시지 (실패 시 None)"""
        try:
            return await profile_service.get_secret_message(peer)
        except Exception as e:
            log_dependency_failure(logger, "profile_store", "build_friends_view", e, peer=peer)
            return None
