from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict


class FriendRequestCreate(BaseModel):
    """친구 요청 생성 스키마 (요청자는 인증된 사용자로 결정)"""
    recipient_id: str = Field(..., min_length=1, max_length=64, description="친구 요청 대상 사용자 ID")


class FriendEdgeResponse(BaseModel):
    """친구 관계 응답 스키마"""
    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="친구 관계 ID")
    requester: str = Field(..., description="친구 요청한 사용자 ID")
    recipient: str = Field(..., description="친구 요청 받은 사용자 ID")
    status: str = Field(..., description="친구 관계 상태: pending, accepted")
    created_at: datetime = Field(..., description="생성일시")
    updated_at: datetime = Field(..., description="수정일시")


class FriendListResponse(BaseModel):
    """친구 목록 항목 스키마"""
    model_config = ConfigDict(from_attributes=True)

    edge_id: int = Field(..., description="친구 관계 ID")
    peer: str = Field(..., description="친구 사용자 ID")
    email: Optional[str] = Field(None, description="친구 이메일")
    secret_message: Optional[str] = Field(None, description="친구의 시크릿 메시지")
    since: datetime = Field(..., description="친구가 된 일시")


class FriendRequestListResponse(BaseModel):
    """받은 친구 요청 항목 스키마"""
    model_config = ConfigDict(from_attributes=True)

    edge_id: int = Field(..., description="친구 요청 ID")
    peer: str = Field(..., description="요청한 사용자 ID")
    email: Optional[str] = Field(None, description="요청한 사용자 이메일")
    created_at: datetime = Field(..., description="요청일시")


class CandidateResponse(BaseModel):
    """친구 요청 후보 스키마"""
    model_config = ConfigDict(from_attributes=True)

    user_id: str = Field(..., description="사용자 ID")
    email: Optional[str] = Field(None, description="이메일")
    username: Optional[str] = Field(None, description="사용자명")
    tag: str = Field(..., description="버튼 상태: add, pending")
    edge_id: Optional[int] = Field(None, description="보낸 요청 ID (tag=pending인 경우)")


class CandidateList(BaseModel):
    """친구 요청 후보 목록 스키마"""
    candidates: List[CandidateResponse] = Field(..., description="후보 목록")
    total: int = Field(..., description="후보 수")
