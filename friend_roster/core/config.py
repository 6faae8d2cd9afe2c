"""
Friend Roster Configuration

환경 변수를 통한 설정 관리
"""

from typing import List, Optional
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()  # .env 파일 로드


class Settings(BaseSettings):
    """Friend Roster 설정"""

    # Application
    app_name: str = "Friend Roster"
    version: str = "1.0.0"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8003

    # Database - MySQL (관계 저장소, 사용자 디렉터리)
    mysql_url: str

    # Database - MongoDB (프로필 저장소)
    mongo_url: str = "mongodb://localhost:27017"
    mongo_db_name: str = "friend_roster"

    # Database - Redis (세션)
    redis_url: str = "redis://localhost:6379"
    redis_max_connections: int = 20

    # JWT (Identity Provider가 발급한 토큰 검증용)
    secret_key: str
    algorithm: str = "HS256"
    token_audience: Optional[str] = None
    session_ttl_seconds: int = 60 * 60 * 24 * 7  # 7일

    # User Directory
    admin_user_ids: List[str] = []
    directory_max_users: int = 1000

    # CORS
    cors_origins: List[str] = ["http://localhost:3000"]

    # Logging
    log_dir: str = "logs"

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
