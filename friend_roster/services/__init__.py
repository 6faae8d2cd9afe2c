"""
Services layer for data access and external communications.

This layer handles:
- Relationship Store queries and state transitions
- Roster derivation
- Profile Store, User Directory and session store access
"""

from . import directory_service
from . import profile_service
from . import session_service

__all__ = [
    "directory_service",
    "profile_service",
    "session_service"
]
