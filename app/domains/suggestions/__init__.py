"""Suggestions 도메인

생성형 백엔드(LLM)로 레시피/FAQ 후보 추천을 만듭니다.
"""

from app.domains.suggestions.backend import (
    GenerativeBackend,
    LLMSuggestionBackend,
)

__all__ = [
    "GenerativeBackend",
    "LLMSuggestionBackend",
]
