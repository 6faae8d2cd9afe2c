import os

# 설정 로드 전에 테스트 환경 변수 지정
os.environ.setdefault("MYSQL_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("MONGO_URL", "mongodb://localhost:27017")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379")

import pytest
import pytest_asyncio
from types import SimpleNamespace
from typing import AsyncGenerator, Dict, Optional
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool
from unittest.mock import patch
from datetime import datetime, timedelta

from friend_roster.main import app
from friend_roster.database.mysql import Base, get_async_session
from friend_roster.models.users import User
from friend_roster.models.friend_edges import FriendEdge, STATUS_PENDING, STATUS_ACCEPTED, canonical_pair
from friend_roster.utils.auth import create_access_token, token_fingerprint


# 테스트용 인메모리 SQLite 데이터베이스 설정
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def test_engine():
    """테스트용 비동기 데이터베이스 엔진 생성"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        echo=False
    )

    # 테이블 생성
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # 정리
    await engine.dispose()


@pytest_asyncio.fixture
async def test_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """테스트용 데이터베이스 세션"""
    async_session = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session() as session:
        yield session


@pytest_asyncio.fixture
async def client(test_session, fake_session_store, fake_profile_store) -> AsyncGenerator[AsyncClient, None]:
    """테스트용 비동기 HTTP 클라이언트"""
    def get_test_session():
        return test_session

    app.dependency_overrides[get_async_session] = get_test_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# =============================================================================
# 외부 저장소 Fake (Redis 세션, MongoDB 프로필)
# =============================================================================

@pytest_asyncio.fixture
async def fake_session_store():
    """Mock session service (토큰 → 사용자 ID)"""

    sessions: Dict[str, str] = {}

    async def mock_open_session(user_id, token, token_ttl=None):
        sessions[token] = user_id
        return token_fingerprint(token)

    async def mock_is_session_active(token, user_id):
        return sessions.get(token) == user_id

    async def mock_close_session(token, user_id):
        return sessions.pop(token, None) is not None

    async def mock_close_all_sessions(user_id):
        tokens = [token for token, owner in sessions.items() if owner == user_id]
        for token in tokens:
            del sessions[token]
        return len(tokens)

    with patch('friend_roster.services.session_service.open_session', side_effect=mock_open_session), \
         patch('friend_roster.services.session_service.is_session_active', side_effect=mock_is_session_active), \
         patch('friend_roster.services.session_service.close_session', side_effect=mock_close_session), \
         patch('friend_roster.services.session_service.close_all_sessions', side_effect=mock_close_all_sessions):
        yield sessions


@pytest_asyncio.fixture
async def fake_profile_store():
    """Mock profile service (사용자 ID → 시크릿 메시지)"""

    profiles: Dict[str, str] = {}

    async def mock_get_secret_message(user_id) -> Optional[str]:
        return profiles.get(user_id)

    async def mock_set_secret_message(user_id, message):
        profiles[user_id] = message
        return SimpleNamespace(user_id=user_id, secret_message=message)

    async def mock_delete_profile(user_id):
        return profiles.pop(user_id, None) is not None

    with patch('friend_roster.services.profile_service.get_secret_message', side_effect=mock_get_secret_message), \
         patch('friend_roster.services.profile_service.set_secret_message', side_effect=mock_set_secret_message), \
         patch('friend_roster.services.profile_service.delete_profile', side_effect=mock_delete_profile):
        yield profiles


# =============================================================================
# 사용자 / 토큰
# =============================================================================

async def _create_user(session: AsyncSession, user_id: str, username: str, email: str) -> User:
    now = datetime.utcnow()
    user = User(id=user_id, username=username, email=email, created_at=now, last_seen_at=now)
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


@pytest_asyncio.fixture
async def test_user_1(test_session) -> User:
    """테스트용 사용자 1"""
    return await _create_user(test_session, "user-a", "alice", "alice@example.com")


@pytest_asyncio.fixture
async def test_user_2(test_session) -> User:
    """테스트용 사용자 2"""
    return await _create_user(test_session, "user-b", "bob", "bob@example.com")


@pytest_asyncio.fixture
async def test_user_3(test_session) -> User:
    """테스트용 사용자 3"""
    return await _create_user(test_session, "user-c", "carol", "carol@example.com")


def make_token(user_id: str, email: Optional[str] = None, expires_delta: Optional[timedelta] = None) -> str:
    """Identity Provider 형식의 테스트 토큰"""
    data = {"sub": user_id}
    if email:
        data["email"] = email
    return create_access_token(data=data, expires_delta=expires_delta)


@pytest_asyncio.fixture
async def auth_token_user_1(test_user_1, fake_session_store) -> str:
    """사용자 1의 인증 토큰 (로그인 세션 포함)"""
    token = make_token(test_user_1.id, test_user_1.email)
    fake_session_store[token] = test_user_1.id
    return token


@pytest_asyncio.fixture
async def auth_token_user_2(test_user_2, fake_session_store) -> str:
    """사용자 2의 인증 토큰 (로그인 세션 포함)"""
    token = make_token(test_user_2.id, test_user_2.email)
    fake_session_store[token] = test_user_2.id
    return token


@pytest_asyncio.fixture
async def auth_token_user_3(test_user_3, fake_session_store) -> str:
    """사용자 3의 인증 토큰 (로그인 세션 포함)"""
    token = make_token(test_user_3.id, test_user_3.email)
    fake_session_store[token] = test_user_3.id
    return token


# =============================================================================
# 친구 관계
# =============================================================================

async def _create_edge(session: AsyncSession, requester: User, recipient: User, status: str) -> FriendEdge:
    user_low, user_high = canonical_pair(requester.id, recipient.id)
    now = datetime.utcnow()
    edge = FriendEdge(
        requester=requester.id,
        recipient=recipient.id,
        user_low=user_low,
        user_high=user_high,
        status=status,
        email=requester.email,
        created_at=now,
        updated_at=now
    )
    session.add(edge)
    await session.commit()
    await session.refresh(edge)
    return edge


@pytest_asyncio.fixture
async def accepted_friendship(test_session, test_user_1, test_user_2) -> FriendEdge:
    """수락된 친구 관계 (user-a ↔ user-b)"""
    return await _create_edge(test_session, test_user_1, test_user_2, STATUS_ACCEPTED)


@pytest_asyncio.fixture
async def pending_friendship(test_session, test_user_1, test_user_3) -> FriendEdge:
    """대기 중인 친구 요청 (user-a → user-c)"""
    return await _create_edge(test_session, test_user_1, test_user_3, STATUS_PENDING)


def pytest_configure(config):
    """pytest 설정"""
    config.addinivalue_line(
        "markers", "asyncio: mark test as async"
    )
