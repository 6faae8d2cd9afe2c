import json
import pytest
from datetime import timedelta
from httpx import AsyncClient
from fastapi import status
from unittest.mock import AsyncMock, MagicMock, patch
from redis.exceptions import RedisError

from friend_roster.core.config import settings
from friend_roster.core.errors import DependencyException, ProfileStoreUnavailableException
from friend_roster.services import session_service
from friend_roster.utils.auth import (
    create_access_token,
    decode_access_token,
    token_fingerprint,
    token_remaining_seconds
)


class TestAuthUtils:
    """인증 유틸리티 테스트"""

    def test_jwt_token_creation_and_decode(self):
        """JWT 토큰 생성 및 디코딩 테스트"""
        token = create_access_token({"sub": "user-a", "email": "alice@example.com"})

        decoded = decode_access_token(token)
        assert decoded is not None
        assert decoded["sub"] == "user-a"
        assert decoded["email"] == "alice@example.com"

    def test_invalid_token_decode(self):
        """잘못된 토큰 디코딩 테스트"""
        assert decode_access_token("invalid.token.here") is None
        assert decode_access_token(None) is None

    def test_expired_token_decode(self):
        token = create_access_token({"sub": "user-a"}, expires_delta=timedelta(seconds=-10))
        assert decode_access_token(token) is None

    def test_token_remaining_seconds(self):
        token = create_access_token({"sub": "user-a"}, expires_delta=timedelta(minutes=10))
        remaining = token_remaining_seconds(decode_access_token(token))

        assert 0 < remaining <= 600
        assert token_remaining_seconds({}) is None

    def test_token_fingerprint_is_stable(self):
        assert token_fingerprint("abc") == token_fingerprint("abc")
        assert token_fingerprint("abc") != token_fingerprint("abd")
        assert "abc" not in token_fingerprint("abc")


class TestSessionService:
    """세션 저장소 어댑터 테스트"""

    def test_session_ttl_bounded_by_token(self):
        assert session_service.session_ttl(60) == 60
        assert session_service.session_ttl(None) == settings.session_ttl_seconds
        assert session_service.session_ttl(10 ** 9) == settings.session_ttl_seconds
        assert session_service.session_ttl(0) == 1

    @pytest.mark.asyncio
    async def test_get_session_user(self):
        redis = MagicMock()
        redis.get = AsyncMock(return_value=json.dumps({"user_id": "user-a"}))

        with patch('friend_roster.services.session_service.get_redis', new=AsyncMock(return_value=redis)):
            assert await session_service.get_session_user("token") == "user-a"
            assert await session_service.is_session_active("token", "user-a")
            assert not await session_service.is_session_active("token", "user-b")

        redis.get.assert_awaited_with(f"session:{token_fingerprint('token')}")

    @pytest.mark.asyncio
    async def test_session_store_unavailable(self):
        redis = MagicMock()
        redis.get = AsyncMock(side_effect=RedisError("connection refused"))

        with patch('friend_roster.services.session_service.get_redis', new=AsyncMock(return_value=redis)):
            with pytest.raises(DependencyException) as exc_info:
                await session_service.get_session_user("token")

        assert exc_info.value.status_code == status.HTTP_503_SERVICE_UNAVAILABLE


class TestAuthAPI:
    """인증 API 테스트"""

    @pytest.mark.asyncio
    async def test_login_provisions_identity(self, client: AsyncClient, fake_session_store):
        """처음 보는 ID로 로그인하면 디렉터리에 등록"""
        token = create_access_token({
            "sub": "user-new",
            "email": "new@example.com",
            "user_metadata": {"username": "newbie"}
        })

        response = await client.post("/auth/login", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["user"]["id"] == "user-new"
        assert data["user"]["email"] == "new@example.com"
        assert data["user"]["username"] == "newbie"
        assert data["session_id"] == token_fingerprint(token)
        assert fake_session_store[token] == "user-new"

        response = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["id"] == "user-new"

    @pytest.mark.asyncio
    async def test_login_with_invalid_token(self, client: AsyncClient):
        response = await client.post("/auth/login", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.headers["www-authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_token_without_session_rejected(self, client: AsyncClient, test_user_1):
        """유효한 토큰이라도 로그인 세션이 없으면 거부"""
        token = create_access_token({"sub": test_user_1.id})

        response = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["message"] == "Session not found or logged out"

    @pytest.mark.asyncio
    async def test_logout_ends_session(self, client: AsyncClient, auth_token_user_1):
        headers = {"Authorization": f"Bearer {auth_token_user_1}"}

        response = await client.post("/auth/logout", headers=headers)
        assert response.status_code == status.HTTP_200_OK

        response = await client.get("/friends", headers=headers)
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    @pytest.mark.asyncio
    async def test_get_me_without_token(self, client: AsyncClient):
        response = await client.get("/auth/me")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["error"] == "authentication_error"

    @pytest.mark.asyncio
    async def test_delete_account(
        self, client: AsyncClient, accepted_friendship, auth_token_user_1, auth_token_user_2,
        fake_profile_store, fake_session_store
    ):
        """계정 삭제 시 관계/프로필/세션 정리"""
        fake_profile_store["user-a"] = "bye"

        response = await client.delete("/auth/account", headers={"Authorization": f"Bearer {auth_token_user_1}"})

        assert response.status_code == status.HTTP_200_OK
        assert "user-a" not in fake_profile_store
        assert auth_token_user_1 not in fake_session_store

        response = await client.get("/friends", headers={"Authorization": f"Bearer {auth_token_user_2}"})
        assert response.json() == []

    @pytest.mark.asyncio
    async def test_delete_account_keeps_data_when_profile_store_fails(
        self, client: AsyncClient, accepted_friendship, auth_token_user_1, auth_token_user_2, fake_session_store
    ):
        """프로필 저장소 장애 시 관계, 세션, 디렉터리 항목이 남아 재시도 가능"""
        headers = {"Authorization": f"Bearer {auth_token_user_1}"}

        with patch(
            'friend_roster.services.profile_service.delete_profile',
            side_effect=ProfileStoreUnavailableException()
        ):
            response = await client.delete("/auth/account", headers=headers)

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert auth_token_user_1 in fake_session_store

        response = await client.get("/friends", headers={"Authorization": f"Bearer {auth_token_user_2}"})
        assert [entry["peer"] for entry in response.json()] == ["user-a"]

        response = await client.delete("/auth/account", headers=headers)
        assert response.status_code == status.HTTP_200_OK


class TestUserDirectoryAPI:
    """사용자 디렉터리 API 테스트"""

    @pytest.mark.asyncio
    async def test_list_users_requires_admin(self, client: AsyncClient, auth_token_user_1):
        response = await client.get("/users", headers={"Authorization": f"Bearer {auth_token_user_1}"})

        assert response.status_code == status.HTTP_403_FORBIDDEN

    @pytest.mark.asyncio
    async def test_list_users_as_admin(
        self, client: AsyncClient, monkeypatch, auth_token_user_1, test_user_2, test_user_3
    ):
        monkeypatch.setattr(settings, "admin_user_ids", ["user-a"])

        response = await client.get("/users", headers={"Authorization": f"Bearer {auth_token_user_1}"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == [
            {"id": "user-a", "email": "alice@example.com"},
            {"id": "user-b", "email": "bob@example.com"},
            {"id": "user-c", "email": "carol@example.com"},
        ]

    @pytest.mark.asyncio
    async def test_get_user_by_id(self, client: AsyncClient, auth_token_user_1, test_user_2):
        headers = {"Authorization": f"Bearer {auth_token_user_1}"}

        response = await client.get(f"/users/{test_user_2.id}", headers=headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["username"] == "bob"

        response = await client.get("/users/ghost-user", headers=headers)
        assert response.status_code == status.HTTP_404_NOT_FOUND
