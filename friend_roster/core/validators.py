import re
from typing import Optional, List, Any, Union

from .errors import ValidationException, ValidationError

# Identity Provider가 발급하는 불투명 ID (UUID 등)
IDENTITY_ID_MAX_LENGTH = 64
SECRET_MESSAGE_MAX_LENGTH = 500


class Validator:
    """입력 검증을 위한 유틸리티 클래스"""

    @staticmethod
    def validate_required(value: Any, field_name: str) -> Any:
        """필수 필드 검증"""
        if value is None or (isinstance(value, str) and value.strip() == ""):
            raise ValidationException(
                f"{field_name} is required",
                validation_errors=[
                    ValidationError(field=field_name, message="This field is required", value=value)
                ]
            )
        return value

    @staticmethod
    def validate_string_length(
        value: str,
        field_name: str,
        min_length: Optional[int] = None,
        max_length: Optional[int] = None
    ) -> str:
        """문자열 길이 검증"""
        errors = []

        if min_length and len(value) < min_length:
            errors.append(
                ValidationError(
                    field=field_name,
                    message=f"Must be at least {min_length} characters long",
                    value=len(value)
                )
            )

        if max_length and len(value) > max_length:
            errors.append(
                ValidationError(
                    field=field_name,
                    message=f"Must be no more than {max_length} characters long",
                    value=len(value)
                )
            )

        if errors:
            raise ValidationException(
                f"{field_name} length validation failed",
                validation_errors=errors
            )

        return value

    @staticmethod
    def validate_identity_id(value: Optional[str], field_name: str = "user_id") -> str:
        """Identity ID 검증 (필수, 길이 제한, 제어 문자 금지)"""
        Validator.validate_required(value, field_name)
        value = value.strip()
        Validator.validate_string_length(value, field_name, max_length=IDENTITY_ID_MAX_LENGTH)

        if re.search(r'[\x00-\x1f\x7f\s]', value):
            raise ValidationException(
                f"Invalid {field_name}",
                validation_errors=[
                    ValidationError(
                        field=field_name,
                        message="Identifier cannot contain whitespace or control characters",
                        value=value
                    )
                ]
            )

        return value

    @staticmethod
    def validate_positive_integer(value: Union[int, str], field_name: str) -> int:
        """양의 정수 검증"""
        try:
            int_value = int(value)
            if int_value <= 0:
                raise ValueError("Must be positive")
            return int_value
        except (ValueError, TypeError):
            raise ValidationException(
                f"{field_name} must be a positive integer",
                validation_errors=[
                    ValidationError(
                        field=field_name,
                        message="Must be a positive integer",
                        value=value
                    )
                ]
            )

    @staticmethod
    def validate_secret_message(message: Optional[str], field_name: str = "secret_message") -> str:
        """시크릿 메시지 검증 (앞뒤 공백 제거 후 비어 있으면 거부)"""
        errors = []

        if message is None or message.strip() == "":
            errors.append(
                ValidationError(
                    field=field_name,
                    message="Secret message cannot be empty"
                )
            )
        else:
            message = message.strip()

            if len(message) > SECRET_MESSAGE_MAX_LENGTH:
                errors.append(
                    ValidationError(
                        field=field_name,
                        message=f"Secret message must be no more than {SECRET_MESSAGE_MAX_LENGTH} characters",
                        value=len(message)
                    )
                )

            # 제어 문자 검증 (줄바꿈/탭 허용)
            if re.search(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]', message):
                errors.append(
                    ValidationError(
                        field=field_name,
                        message="Secret message contains invalid control characters"
                    )
                )

        if errors:
            raise ValidationException(
                "Secret message validation failed",
                validation_errors=errors
            )

        return message

    @staticmethod
    def validate_search_query(query: str, field_name: str = "query") -> str:
        """검색 쿼리 검증"""
        errors = []

        if len(query.strip()) < 1:
            errors.append(
                ValidationError(
                    field=field_name,
                    message="Search query must be at least 1 character long"
                )
            )

        if len(query) > 100:
            errors.append(
                ValidationError(
                    field=field_name,
                    message="Search query must be no more than 100 characters",
                    value=len(query)
                )
            )

        if errors:
            raise ValidationException(
                "Search query validation failed",
                validation_errors=errors
            )

        return query.strip()

    @staticmethod
    def validate_multiple_fields(validations: List[callable]) -> List[Any]:
        """여러 필드 동시 검증"""
        errors = []
        results = []

        for validation_func in validations:
            try:
                result = validation_func()
                results.append(result)
            except ValidationException as e:
                errors.extend(e.validation_errors)

        if errors:
            raise ValidationException(
                "Multiple validation errors",
                validation_errors=errors
            )

        return results


# 편의 함수들
def validate_friend_request(requester: Optional[str], recipient: Optional[str]) -> List[str]:
    """친구 요청 당사자 ID 검증"""
    validator = Validator()

    validations = [
        lambda: validator.validate_identity_id(requester, "requester"),
        lambda: validator.validate_identity_id(recipient, "recipient"),
    ]

    return validator.validate_multiple_fields(validations)
