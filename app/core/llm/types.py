"""LLM 관련 공통 타입 정의"""

from typing import Optional

from pydantic import BaseModel

from app.core.exceptions import ErrorCode, InternalServerException


class LLMMessage(BaseModel):
    """LLM 메시지 형식

    Attributes:
        role: 메시지 역할 ("system", "user", "assistant")
        content: 메시지 내용
    """

    role: str
    content: str


class LLMResult(BaseModel):
    """LLM 호출 결과

    Attributes:
        content: 생성된 텍스트
        model: 사용된 모델 이름
        input_tokens: 입력 토큰 수
        output_tokens: 출력 토큰 수
        finish_reason: 생성 완료 이유 (선택사항)
    """

    content: str
    model: str
    input_tokens: int
    output_tokens: int
    finish_reason: Optional[str] = None


class LLMProviderError(InternalServerException):
    """단일 LLM 프로바이더 호출 실패

    추천 백엔드는 이 예외를 BackendUnavailableError로 변환하여
    오케스트레이터의 재시도/폴백 로직에 넘깁니다.

    Example:
        try:
            result = await litellm.acompletion(model="gpt-4.1-mini", ...)
        except Exception as e:
            raise LLMProviderError(
                provider="gpt-4.1-mini",
                original_error=str(e)
            )
    """

    def __init__(self, provider: str, original_error: str):
        super().__init__(
            message=f"LLM provider '{provider}' failed: {original_error}",
            error_code=ErrorCode.LLM_PROVIDER_ERROR,
            detail={"provider": provider, "error": original_error},
        )
