# User schemas
from .user import (
    UserProfile,
    DirectoryEntry,
    SessionResponse,
    SecretMessageUpdate,
    SecretMessageResponse
)

# Friendship schemas
from .friendship import (
    FriendRequestCreate,
    FriendEdgeResponse,
    FriendListResponse,
    FriendRequestListResponse,
    CandidateResponse,
    CandidateList
)

__all__ = [
    "UserProfile",
    "DirectoryEntry",
    "SessionResponse",
    "SecretMessageUpdate",
    "SecretMessageResponse",
    "FriendRequestCreate",
    "FriendEdgeResponse",
    "FriendListResponse",
    "FriendRequestListResponse",
    "CandidateResponse",
    "CandidateList",
]
