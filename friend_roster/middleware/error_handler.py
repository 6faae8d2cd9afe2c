import traceback
from typing import Callable
from fastapi import Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from sqlalchemy.exc import IntegrityError, OperationalError, DatabaseError
from pydantic import ValidationError as PydanticValidationError
from pymongo.errors import PyMongoError
from redis.exceptions import RedisError

from friend_roster.core.errors import (
    BaseCustomException,
    ValidationError,
    create_error_response,
    create_validation_error_response
)
from friend_roster.core.config import settings
from friend_roster.core.logging import get_logger, log_dependency_failure

logger = get_logger(__name__)


def _validation_errors(errors) -> list:
    validation_errors = []
    for error in errors:
        field_name = ".".join(str(loc) for loc in error["loc"])
        value = error.get("input")
        validation_errors.append(
            ValidationError(
                field=field_name,
                message=error["msg"],
                value=value if isinstance(value, (str, int, float, bool)) else None
            )
        )
    return validation_errors


def _dependency_unavailable(dependency: str, error: Exception) -> JSONResponse:
    error_response = create_error_response(
        "dependency_error",
        f"{dependency} unavailable",
        status.HTTP_503_SERVICE_UNAVAILABLE,
        {"service": dependency, "detail": str(error) if settings.debug else None}
    )
    return JSONResponse(
        status_code=error_response.status_code,
        content=error_response.model_dump()
    )


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    통합 에러 처리 미들웨어

    라우터 밖으로 전파된 예외를 캐치하고 표준화된 에러 응답을 반환합니다.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            response = await call_next(request)
            return response

        except BaseCustomException as e:
            # 우리가 정의한 커스텀 예외들
            return JSONResponse(
                status_code=e.status_code,
                content=e.to_dict(),
                headers=e.headers
            )

        except PydanticValidationError as e:
            error_response = create_validation_error_response(
                "Request validation failed",
                _validation_errors(e.errors())
            )

            return JSONResponse(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                content=error_response.model_dump()
            )

        except IntegrityError as e:
            # 서비스에서 변환되지 않은 무결성 제약 조건 위반
            error_detail = str(e.orig) if hasattr(e, 'orig') else str(e)
            logger.warning(f"Unhandled integrity error: {error_detail}")

            error_response = create_error_response(
                "database_constraint",
                "Database constraint violation",
                status.HTTP_409_CONFLICT,
                {"detail": error_detail if settings.debug else None}
            )

            return JSONResponse(
                status_code=error_response.status_code,
                content=error_response.model_dump()
            )

        except (OperationalError, DatabaseError) as e:
            log_dependency_failure(logger, "relationship_store", request.url.path, e)
            return _dependency_unavailable("Relationship Store", e)

        except PyMongoError as e:
            log_dependency_failure(logger, "profile_store", request.url.path, e)
            return _dependency_unavailable("Profile Store", e)

        except RedisError as e:
            log_dependency_failure(logger, "session_store", request.url.path, e)
            return _dependency_unavailable("Session Store", e)

        except Exception as e:
            # 예상하지 못한 모든 에러들
            error_detail = None
            if settings.debug:
                error_detail = {
                    "exception": str(e),
                    "type": type(e).__name__,
                    "traceback": traceback.format_exc()
                }

            error_response = create_error_response(
                "internal_server_error",
                "An unexpected error occurred",
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                error_detail
            )

            logger.error(
                f"Unhandled exception: {type(e).__name__}: {str(e)}",
                exc_info=True
            )

            return JSONResponse(
                status_code=error_response.status_code,
                content=error_response.model_dump()
            )


def create_http_exception_handler():
    """FastAPI HTTPException 핸들러 생성"""
    async def http_exception_handler(request: Request, exc):
        """HTTPException을 표준 형식으로 변환"""

        # 우리의 커스텀 예외인 경우 그대로 반환
        if isinstance(exc, BaseCustomException):
            return JSONResponse(
                status_code=exc.status_code,
                content=exc.to_dict(),
                headers=exc.headers
            )

        # 일반 HTTPException인 경우 표준 형식으로 변환
        error_response = create_error_response(
            "http_error",
            exc.detail if isinstance(exc.detail, str) else "HTTP error occurred",
            exc.status_code,
            {"detail": exc.detail} if not isinstance(exc.detail, str) else None
        )

        return JSONResponse(
            status_code=exc.status_code,
            content=error_response.model_dump(),
            headers=getattr(exc, "headers", None)
        )

    return http_exception_handler


def create_request_validation_handler():
    """요청 본문/파라미터 검증 실패 핸들러 생성"""
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        error_response = create_validation_error_response(
            "Request validation failed",
            _validation_errors(exc.errors())
        )

        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=error_response.model_dump()
        )

    return request_validation_handler
