from datetime import datetime
from typing import Optional
from beanie import Document, Indexed
from pydantic import Field


class Profile(Document):
    user_id: Indexed(str, unique=True) = Field(..., description="Identity ID")
    secret_message: Optional[str] = Field(None, description="Secret message shown to friends")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "profiles"

    def __repr__(self):
        return f"<Profile(user_id={self.user_id}, has_secret={self.secret_message is not None})>"
