from .users import User
from .friend_edges import FriendEdge
from .profiles import Profile

__all__ = [
    "User",
    "FriendEdge",
    "Profile",
]
