from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict


class UserProfile(BaseModel):
    """사용자 디렉터리 스키마"""
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="사용자 ID")
    email: Optional[str] = Field(None, description="이메일")
    username: Optional[str] = Field(None, description="사용자명")
    created_at: Optional[datetime] = Field(None, description="최초 확인 일시")
    last_seen_at: Optional[datetime] = Field(None, description="마지막 접속 시간")


class DirectoryEntry(BaseModel):
    """관리자용 디렉터리 항목 (id, email)"""
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="사용자 ID")
    email: Optional[str] = Field(None, description="이메일")


class SessionResponse(BaseModel):
    """로그인 세션 응답 스키마"""
    user: UserProfile = Field(..., description="로그인한 사용자")
    session_id: str = Field(..., description="세션 ID")
    expires_in: int = Field(..., description="세션 만료까지 남은 시간(초)")


class SecretMessageUpdate(BaseModel):
    """시크릿 메시지 저장 요청 스키마"""
    secret_message: str = Field(..., max_length=500, description="시크릿 메시지")


class SecretMessageResponse(BaseModel):
    """시크릿 메시지 응답 스키마"""
    user_id: str = Field(..., description="사용자 ID")
    secret_message: Optional[str] = Field(None, description="시크릿 메시지 (없으면 null)")
