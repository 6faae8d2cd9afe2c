"""
Friend Roster - FastAPI Application

친구 요청/수락/거절과 친구 목록(시크릿 메시지 포함)을 관리하는 서비스
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from starlette.exceptions import HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from friend_roster.core.config import settings
from friend_roster.core.logging import setup_logging, get_logger
from friend_roster.database import init_databases, close_databases
from friend_roster.api import auth, friend, health, profile, user
from friend_roster.middleware.error_handler import (
    ErrorHandlerMiddleware,
    create_http_exception_handler,
    create_request_validation_handler
)
from friend_roster.middleware.logging_middleware import LoggingMiddleware

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle management"""
    # Startup
    setup_logging()
    logger.info(f"{settings.app_name} starting up...")
    await init_databases()

    yield

    # Shutdown
    logger.info(f"{settings.app_name} shutting down...")
    await close_databases()


app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    lifespan=lifespan
)

# 미들웨어는 역순으로 실행 (LoggingMiddleware가 가장 바깥)
app.add_middleware(ErrorHandlerMiddleware)
app.add_middleware(LoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(HTTPException, create_http_exception_handler())
app.add_exception_handler(RequestValidationError, create_request_validation_handler())

# Include routers
app.include_router(health.router)
app.include_router(auth.router)
app.include_router(profile.router)
app.include_router(friend.router)
app.include_router(user.router)

# Prometheus metrics
Instrumentator().instrument(app).expose(app)


@app.get("/")
async def root():
    return {
        "service": settings.app_name,
        "version": settings.version,
        "status": "running"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "friend_roster.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
