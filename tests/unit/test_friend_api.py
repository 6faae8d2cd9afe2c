import pytest
from httpx import AsyncClient
from fastapi import status

from friend_roster.services.relationship_service import RelationshipService


class TestFriendRequestAPI:
    """친구 요청 API 테스트"""

    @pytest.mark.asyncio
    async def test_send_friend_request_success(self, client: AsyncClient, auth_token_user_1, test_user_2):
        """친구 요청 전송 API 성공 테스트"""
        response = await client.post(
            "/friends/request",
            json={"recipient_id": test_user_2.id},
            headers={"Authorization": f"Bearer {auth_token_user_1}"}
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["requester"] == "user-a"
        assert data["recipient"] == test_user_2.id
        assert data["status"] == "pending"

    @pytest.mark.asyncio
    async def test_send_friend_request_to_self(self, client: AsyncClient, auth_token_user_1, test_user_1):
        """자기 자신에게 친구 요청 실패 테스트"""
        response = await client.post(
            "/friends/request",
            json={"recipient_id": test_user_1.id},
            headers={"Authorization": f"Bearer {auth_token_user_1}"}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["message"] == "Cannot send friend request to yourself"

    @pytest.mark.asyncio
    async def test_send_friend_request_to_nonexistent_user(self, client: AsyncClient, auth_token_user_1):
        """존재하지 않는 사용자에게 친구 요청 실패 테스트"""
        response = await client.post(
            "/friends/request",
            json={"recipient_id": "ghost-user"},
            headers={"Authorization": f"Bearer {auth_token_user_1}"}
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.asyncio
    async def test_send_friend_request_blank_recipient(
        self, client: AsyncClient, auth_token_user_1, test_session
    ):
        """공백뿐인 recipient_id는 검증 오류 (엣지 생성 없음)"""
        response = await client.post(
            "/friends/request",
            json={"recipient_id": "   "},
            headers={"Authorization": f"Bearer {auth_token_user_1}"}
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["error"] == "validation_error"
        assert await RelationshipService.list_edges_for(test_session, "user-a") == []

    @pytest.mark.asyncio
    async def test_send_duplicate_request_conflict(self, client: AsyncClient, pending_friendship, auth_token_user_1):
        response = await client.post(
            "/friends/request",
            json={"recipient_id": "user-c"},
            headers={"Authorization": f"Bearer {auth_token_user_1}"}
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["error"] == "already_requested_or_friends"

    @pytest.mark.asyncio
    async def test_send_reverse_request_conflict(self, client: AsyncClient, pending_friendship, auth_token_user_3):
        """상대가 이미 요청한 경우 반대 방향 요청도 409"""
        response = await client.post(
            "/friends/request",
            json={"recipient_id": "user-a"},
            headers={"Authorization": f"Bearer {auth_token_user_3}"}
        )

        assert response.status_code == status.HTTP_409_CONFLICT

    @pytest.mark.asyncio
    async def test_requester_comes_from_session(self, client: AsyncClient, auth_token_user_1, test_user_2):
        """본문에 requester를 넣어도 무시됨"""
        response = await client.post(
            "/friends/request",
            json={"recipient_id": test_user_2.id, "requester": "user-c"},
            headers={"Authorization": f"Bearer {auth_token_user_1}"}
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["requester"] == "user-a"

    @pytest.mark.asyncio
    async def test_send_request_missing_recipient(self, client: AsyncClient, auth_token_user_1):
        response = await client.post(
            "/friends/request",
            json={},
            headers={"Authorization": f"Bearer {auth_token_user_1}"}
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_cancel_friend_request(self, client: AsyncClient, pending_friendship, auth_token_user_1):
        response = await client.delete(
            "/friends/request/user-c",
            headers={"Authorization": f"Bearer {auth_token_user_1}"}
        )

        assert response.status_code == status.HTTP_200_OK

        response = await client.get(
            "/friends/candidates",
            headers={"Authorization": f"Bearer {auth_token_user_1}"}
        )
        tags = {c["user_id"]: c["tag"] for c in response.json()["candidates"]}
        assert tags["user-c"] == "add"

    @pytest.mark.asyncio
    async def test_cancel_without_pending_request(self, client: AsyncClient, auth_token_user_1, test_user_2):
        response = await client.delete(
            f"/friends/request/{test_user_2.id}",
            headers={"Authorization": f"Bearer {auth_token_user_1}"}
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestFriendTransitionAPI:
    """수락/거절 API 테스트"""

    @pytest.mark.asyncio
    async def test_accept_friend_request_success(self, client: AsyncClient, pending_friendship, auth_token_user_3):
        """친구 요청 수락 API 성공 테스트"""
        edge_id = pending_friendship.id
        response = await client.post(
            f"/friends/{edge_id}/accept",
            headers={"Authorization": f"Bearer {auth_token_user_3}"}
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "accepted"

    @pytest.mark.asyncio
    async def test_accept_by_requester_is_opaque(self, client: AsyncClient, pending_friendship, auth_token_user_1):
        """권한 없는 수락과 존재하지 않는 요청은 같은 응답"""
        edge_id = pending_friendship.id
        headers = {"Authorization": f"Bearer {auth_token_user_1}"}

        unauthorized = await client.post(f"/friends/{edge_id}/accept", headers=headers)
        missing = await client.post("/friends/9999/accept", headers=headers)

        assert unauthorized.status_code == status.HTTP_404_NOT_FOUND
        assert missing.status_code == status.HTTP_404_NOT_FOUND
        assert unauthorized.json() == missing.json()

    @pytest.mark.asyncio
    async def test_decline_friend_request(self, client: AsyncClient, pending_friendship, auth_token_user_3):
        """친구 요청 거절 API 테스트"""
        edge_id = pending_friendship.id
        headers = {"Authorization": f"Bearer {auth_token_user_3}"}

        response = await client.post(f"/friends/{edge_id}/decline", headers=headers)
        assert response.status_code == status.HTTP_200_OK

        response = await client.get("/friends/requests", headers=headers)
        assert response.json() == []

    @pytest.mark.asyncio
    async def test_decline_by_third_party(self, client: AsyncClient, pending_friendship, auth_token_user_2):
        edge_id = pending_friendship.id
        response = await client.post(
            f"/friends/{edge_id}/decline",
            headers={"Authorization": f"Bearer {auth_token_user_2}"}
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.asyncio
    async def test_unfriend(self, client: AsyncClient, accepted_friendship, auth_token_user_1):
        """accepted 엣지 거절로 친구 삭제"""
        edge_id = accepted_friendship.id
        headers = {"Authorization": f"Bearer {auth_token_user_1}"}

        response = await client.post(f"/friends/{edge_id}/decline", headers=headers)
        assert response.status_code == status.HTTP_200_OK

        response = await client.get("/friends", headers=headers)
        assert response.json() == []


class TestRosterAPI:
    """친구 목록/받은 요청/후보 API 테스트"""

    @pytest.mark.asyncio
    async def test_get_friends_list_success(
        self, client: AsyncClient, accepted_friendship, auth_token_user_1, fake_profile_store
    ):
        """친구 목록 조회 API 성공 테스트"""
        fake_profile_store["user-b"] = "bob's secret"

        response = await client.get(
            "/friends",
            headers={"Authorization": f"Bearer {auth_token_user_1}"}
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert len(data) == 1
        assert data[0]["peer"] == "user-b"
        assert data[0]["email"] == "bob@example.com"
        assert data[0]["secret_message"] == "bob's secret"

    @pytest.mark.asyncio
    async def test_get_friend_requests_success(self, client: AsyncClient, pending_friendship, auth_token_user_3):
        """받은 친구 요청 목록 조회 API 성공 테스트"""
        response = await client.get(
            "/friends/requests",
            headers={"Authorization": f"Bearer {auth_token_user_3}"}
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert len(data) == 1
        assert data[0]["peer"] == "user-a"
        assert data[0]["email"] == "alice@example.com"

    @pytest.mark.asyncio
    async def test_get_candidates(
        self, client: AsyncClient, accepted_friendship, pending_friendship, auth_token_user_1
    ):
        response = await client.get(
            "/friends/candidates",
            headers={"Authorization": f"Bearer {auth_token_user_1}"}
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["total"] == 1
        assert data["candidates"][0]["user_id"] == "user-c"
        assert data["candidates"][0]["tag"] == "pending"

    @pytest.mark.asyncio
    async def test_get_candidates_search(self, client: AsyncClient, auth_token_user_1, test_user_2, test_user_3):
        response = await client.get(
            "/friends/candidates",
            params={"query": "bob"},
            headers={"Authorization": f"Bearer {auth_token_user_1}"}
        )

        assert response.status_code == status.HTTP_200_OK
        assert [c["user_id"] for c in response.json()["candidates"]] == ["user-b"]

    @pytest.mark.asyncio
    async def test_friend_api_without_auth(self, client: AsyncClient):
        """인증 없이 친구 API 접근 실패 테스트"""
        response = await client.get("/friends")
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

        response = await client.post("/friends/request", json={"recipient_id": "user-b"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
