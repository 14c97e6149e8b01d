"""Core LLM 인프라 공개 API

이 모듈은 도메인에서 사용할 공개 인터페이스만 노출합니다.
"""

from app.core.llm.provider import acompletion_raw
from app.core.llm.types import LLMMessage, LLMProviderError, LLMResult

__all__ = [
    # Types
    "LLMMessage",
    "LLMResult",
    "LLMProviderError",
    # Functions
    "acompletion_raw",
]
