from datetime import datetime
from sqlalchemy import Column, Integer, DateTime, String, UniqueConstraint, CheckConstraint, Index
from friend_roster.database.mysql import Base

STATUS_PENDING = "pending"
STATUS_ACCEPTED = "accepted"


def canonical_pair(user_a: str, user_b: str) -> tuple[str, str]:
    """순서 없는 쌍 {A, B}의 정규화 키 (min, max)"""
    return (user_a, user_b) if user_a <= user_b else (user_b, user_a)


class FriendEdge(Base):
    __tablename__ = "friend_edges"
    __table_args__ = (
        # 한 쌍에는 활성 엣지가 최대 하나 (방향 무관)
        UniqueConstraint("user_low", "user_high", name="uq_friend_edges_pair"),
        CheckConstraint("requester <> recipient", name="ck_friend_edges_not_self"),
        Index("ix_friend_edges_recipient_status", "recipient", "status"),
        {"sqlite_autoincrement": True},  # 삭제된 엣지 ID 재사용 금지
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    requester = Column(String(64), nullable=False, index=True)  # Friend requester
    recipient = Column(String(64), nullable=False, index=True)  # Friend target
    user_low = Column(String(64), nullable=False)
    user_high = Column(String(64), nullable=False)
    status = Column(String(20), nullable=False, default=STATUS_PENDING)  # pending, accepted
    email = Column(String(255), nullable=True)  # requester email (denormalized)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def peer_of(self, user_id: str) -> str:
        """user_id 기준 상대방 ID"""
        return self.recipient if self.requester == user_id else self.requester

    def __repr__(self):
        return f"<FriendEdge(id={self.id}, requester={self.requester}, recipient={self.recipient}, status={self.status})>"
