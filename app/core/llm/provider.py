"""LiteLLM 기반 LLM 프로바이더 래퍼

이 모듈은 LiteLLM을 직접 호출하는 유일한 곳입니다.
"""

import os
from typing import Optional

from litellm import acompletion

from app.core.config import settings
from app.core.llm.types import LLMMessage, LLMProviderError, LLMResult
from app.core.logging import get_logger

logger = get_logger(__name__)


def _setup_api_keys() -> None:
    """환경 변수에 API 키 설정 (LiteLLM이 자동으로 읽음)"""
    os.environ.setdefault("OPENAI_API_KEY", settings.openai_api_key)
    os.environ.setdefault("ANTHROPIC_API_KEY", settings.anthropic_api_key)
    os.environ.setdefault("GOOGLE_API_KEY", settings.google_api_key)


# 모듈 로드 시 API 키 설정
_setup_api_keys()


async def acompletion_raw(
    model: str,
    messages: list[LLMMessage],
    temperature: float = 0.7,
    max_tokens: Optional[int] = None,
    **kwargs,
) -> LLMResult:
    """LiteLLM completion 호출 (비동기)

    Args:
        model: 모델 이름 (예: "gpt-4.1-mini", "claude-4.5-haiku")
        messages: 대화 메시지 리스트
        temperature: 샘플링 온도 (0.0 ~ 1.0)
        max_tokens: 최대 출력 토큰 수
        **kwargs: LiteLLM에 전달할 추가 파라미터

    Returns:
        LLMResult: 생성된 텍스트 및 사용량 정보

    Raises:
        LLMProviderError: 프로바이더 호출 실패 시
    """
    try:
        response = await acompletion(
            model=model,
            messages=[msg.model_dump() for msg in messages],
            temperature=temperature,
            max_tokens=max_tokens,
            **kwargs,
        )

        choice = response.choices[0]
        usage = response.usage

        return LLMResult(
            content=choice.message.content or "",
            model=response.model,
            input_tokens=usage.prompt_tokens,
            output_tokens=usage.completion_tokens,
            finish_reason=choice.finish_reason,
        )

    except Exception as e:
        logger.error(f"LiteLLM completion failed for model {model}: {e}")
        raise LLMProviderError(provider=model, original_error=str(e))
