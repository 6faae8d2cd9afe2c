from datetime import datetime
from sqlalchemy import Column, String, DateTime
from friend_roster.database.mysql import Base


class User(Base):
    """Identity Provider가 발급한 ID의 디렉터리 미러"""
    __tablename__ = "users"

    id = Column(String(64), primary_key=True)  # Identity Provider subject (opaque)
    email = Column(String(255), nullable=True, index=True)
    username = Column(String(50), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    last_seen_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, username={self.username})>"
