"""Personalization 도메인 예외 정의

외부 협력자(생성형 백엔드, 문서 저장소) 실패와 잘못된 피드백 이벤트를 구분합니다.
오케스트레이터 경계에서 앞의 두 가지는 흡수되고, MalformedEventException만
호출자에게 검증 오류로 전달됩니다.
"""

from enum import Enum
from typing import Any, Optional

from app.core.exceptions import BadRequestException, InternalServerException


class PersonalizationErrorCode(str, Enum):
    """개인화 도메인 에러 코드"""

    SUGGESTION_BACKEND_UNAVAILABLE = "SUGGESTION_BACKEND_UNAVAILABLE"
    INTEREST_STORE_UNAVAILABLE = "INTEREST_STORE_UNAVAILABLE"
    MALFORMED_FEEDBACK_EVENT = "MALFORMED_FEEDBACK_EVENT"


class BackendUnavailableError(InternalServerException):
    """생성형 추천 백엔드 호출 실패 또는 타임아웃"""

    def __init__(self, detail_msg: str, backend: str = "generative"):
        super().__init__(
            message="추천 백엔드를 일시적으로 사용할 수 없습니다.",
            error_code=PersonalizationErrorCode.SUGGESTION_BACKEND_UNAVAILABLE,
            detail={"backend": backend, "info": detail_msg},
        )


class StoreUnavailableError(InternalServerException):
    """관심사 문서 저장소 읽기/쓰기 실패"""

    def __init__(
        self, operation: str, user_id: str, detail_msg: str = ""
    ):
        self.operation = operation
        super().__init__(
            message="관심사 저장소를 일시적으로 사용할 수 없습니다.",
            error_code=PersonalizationErrorCode.INTEREST_STORE_UNAVAILABLE,
            detail={
                "operation": operation,
                "user_id": user_id,
                "info": detail_msg,
            },
        )


class MalformedEventException(BadRequestException):
    """필수 필드가 없거나 형식이 잘못된 피드백 이벤트"""

    def __init__(self, errors: Optional[list[dict[str, Any]]] = None):
        super().__init__(
            message="피드백 이벤트 형식이 올바르지 않습니다.",
            error_code=PersonalizationErrorCode.MALFORMED_FEEDBACK_EVENT,
            detail={"errors": errors or []},
        )
