"""예외 단위 테스트"""

import json

import pytest
from fastapi import HTTPException

from app.core.exceptions import (
    BadRequestException,
    ErrorCode,
    InternalServerException,
    UnauthorizedException,
    base_exception_handler,
    generic_exception_handler,
    http_exception_handler,
)
from app.domains.personalization.exceptions import (
    BackendUnavailableError,
    MalformedEventException,
    PersonalizationErrorCode,
    StoreUnavailableError,
)


class TestGlobalExceptions:
    """전역 예외 테스트"""

    def test_bad_request_exception(self):
        """BadRequestException"""
        exc = BadRequestException(message="잘못된 입력입니다.")

        assert exc.status_code == 400
        assert exc.error_code == ErrorCode.BAD_REQUEST
        assert exc.message == "잘못된 입력입니다."

    def test_unauthorized_exception(self):
        """UnauthorizedException"""
        exc = UnauthorizedException()

        assert exc.status_code == 401
        assert exc.error_code == ErrorCode.UNAUTHORIZED

    def test_internal_server_exception(self):
        """InternalServerException"""
        exc = InternalServerException(detail={"job": "sync"})

        assert exc.status_code == 500
        assert exc.error_code == ErrorCode.INTERNAL_ERROR
        assert exc.detail_info == {"job": "sync"}


class TestDomainExceptions:
    """도메인 예외 테스트"""

    def test_backend_unavailable(self):
        exc = BackendUnavailableError("timed out", backend="gpt-4.1-mini")

        assert exc.status_code == 500
        assert (
            exc.error_code
            == PersonalizationErrorCode.SUGGESTION_BACKEND_UNAVAILABLE
        )
        assert exc.detail_info == {
            "backend": "gpt-4.1-mini",
            "info": "timed out",
        }

    def test_store_unavailable(self):
        exc = StoreUnavailableError("put", "user-1", "connection refused")

        assert exc.status_code == 500
        assert exc.operation == "put"
        assert exc.error_code == PersonalizationErrorCode.INTEREST_STORE_UNAVAILABLE
        assert exc.detail_info["user_id"] == "user-1"

    def test_malformed_event(self):
        exc = MalformedEventException(
            errors=[{"loc": ["action"], "msg": "bad", "type": "enum"}]
        )

        assert exc.status_code == 400
        assert exc.error_code == PersonalizationErrorCode.MALFORMED_FEEDBACK_EVENT
        assert exc.detail_info["errors"][0]["loc"] == ["action"]

    def test_malformed_event_without_errors(self):
        assert MalformedEventException().detail_info == {"errors": []}


class TestExceptionHandlers:
    """예외 핸들러 응답 형식 테스트"""

    @pytest.mark.asyncio
    async def test_base_exception_envelope(self):
        response = await base_exception_handler(
            None, StoreUnavailableError("delete", "user-1")
        )
        body = json.loads(response.body)

        assert response.status_code == 500
        assert body["success"] is False
        assert body["error"]["code"] == "INTEREST_STORE_UNAVAILABLE"
        assert body["error"]["detail"]["operation"] == "delete"

    @pytest.mark.asyncio
    async def test_http_exception_envelope(self):
        response = await http_exception_handler(
            None, HTTPException(status_code=404, detail="Not Found")
        )
        body = json.loads(response.body)

        assert response.status_code == 404
        assert body["message"] == "Not Found"

    @pytest.mark.asyncio
    async def test_generic_exception_envelope(self):
        response = await generic_exception_handler(None, RuntimeError("x"))
        body = json.loads(response.body)

        assert response.status_code == 500
        assert body["error"]["code"] == "INTERNAL_ERROR"
