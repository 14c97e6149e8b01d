"""생성형 추천 백엔드

오케스트레이터는 GenerativeBackend 프로토콜에만 의존합니다.
LLMSuggestionBackend는 Core LLM 레이어(LiteLLM)로 후보를 생성하는 기본 구현입니다.
"""

import json
from typing import Any, Optional, Protocol

from pydantic import ValidationError

from app.core.llm import LLMMessage, LLMProviderError, acompletion_raw
from app.core.logging import get_logger
from app.domains.personalization.exceptions import BackendUnavailableError
from app.domains.personalization.schemas import (
    CandidateSuggestion,
    GenerationRequest,
    PersonalizationDirective,
)
from app.domains.suggestions import prompts

logger = get_logger(__name__)


class GenerativeBackend(Protocol):
    """후보 추천 생성기 인터페이스

    실패나 타임아웃 시 BackendUnavailableError를 발생시켜야 합니다.
    """

    async def generate(
        self, request: GenerationRequest
    ) -> list[CandidateSuggestion]: ...


def _join(values: list[str], empty: str = "none") -> str:
    return ", ".join(values) if values else empty


def render_personalization(directive: PersonalizationDirective) -> str:
    """디렉티브를 프롬프트 문단으로 변환"""
    if not directive.is_rich:
        return prompts.MINIMAL_PERSONALIZATION_TEMPLATE

    return prompts.RICH_PERSONALIZATION_TEMPLATE.format(
        confidence=directive.confidence,
        satisfaction=directive.satisfaction_score,
        keywords=_join(directive.preferred_keywords),
        categories=_join(directive.preferred_categories),
        search_terms=_join(directive.recent_search_terms),
        vendors=_join(directive.favorite_vendors),
        content_type=directive.preferred_content_type.value,
    )


def build_messages(request: GenerationRequest, limit: int) -> list[LLMMessage]:
    """추천 생성 프롬프트 구성"""
    context = request.media_context
    return [
        LLMMessage(role="system", content=prompts.SYSTEM_PROMPT),
        LLMMessage(
            role="user",
            content=prompts.USER_PROMPT_TEMPLATE.format(
                limit=limit,
                caption=context.caption,
                keywords=_join(list(context.keywords)),
                media_type=context.media_type,
                content_types=", ".join(ct.value for ct in context.content_types),
                personalization=render_personalization(request.directive),
            ),
        ),
    ]


def parse_candidates(raw: str) -> list[dict[str, Any]]:
    """모델 응답에서 JSON 배열 추출

    코드 펜스(```json)와 ``{"suggestions": [...]}`` 형태도 허용합니다.

    Raises:
        ValueError: JSON 배열을 찾을 수 없음
    """
    cleaned = raw.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.strip("` \n")
        if cleaned.startswith("json"):
            cleaned = cleaned[4:].strip()

    parsed = json.loads(cleaned)
    if isinstance(parsed, dict):
        parsed = parsed.get("suggestions")
    if not isinstance(parsed, list):
        raise ValueError("response is not a JSON array")
    return [item for item in parsed if isinstance(item, dict)]


class LLMSuggestionBackend:
    """LiteLLM 기반 레시피/FAQ 추천 생성기

    Args:
        model: LiteLLM 모델 이름
        temperature: 샘플링 온도
        max_candidates: 요청당 최대 후보 수
        max_tokens: 최대 출력 토큰 수
    """

    def __init__(
        self,
        model: str,
        temperature: float = 0.4,
        max_candidates: int = 5,
        max_tokens: Optional[int] = 800,
    ):
        self.model = model
        self.temperature = temperature
        self.max_candidates = max_candidates
        self.max_tokens = max_tokens

    async def generate(
        self, request: GenerationRequest
    ) -> list[CandidateSuggestion]:
        """후보 추천 생성

        형식이 잘못된 항목과 요청하지 않은 콘텐츠 유형은 버립니다.

        Raises:
            BackendUnavailableError: LLM 호출 실패 또는 응답 파싱 실패
        """
        limit = min(request.media_context.limit, self.max_candidates)
        messages = build_messages(request, limit)

        try:
            result = await acompletion_raw(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except LLMProviderError as e:
            raise BackendUnavailableError(detail_msg=e.message, backend=self.model)

        try:
            items = parse_candidates(result.content)
        except ValueError as e:
            # json.JSONDecodeError는 ValueError의 하위 클래스
            logger.warning(
                f"Unparseable suggestion response from {result.model}: {e}"
            )
            raise BackendUnavailableError(
                detail_msg=f"invalid response: {e}", backend=self.model
            )

        allowed = set(request.media_context.content_types)
        candidates: list[CandidateSuggestion] = []
        for item in items:
            try:
                candidate = CandidateSuggestion.model_validate(item)
            except ValidationError as e:
                logger.warning(
                    f"Dropping malformed candidate: {e.error_count()} errors"
                )
                continue
            if candidate.content_type not in allowed:
                continue
            candidates.append(candidate)
            if len(candidates) >= limit:
                break

        logger.info(
            f"Generated {len(candidates)} candidates: "
            f"user_id={request.user_id}, model={result.model}, "
            f"tier={request.directive.tier.value}, "
            f"tokens={result.input_tokens}/{result.output_tokens}"
        )
        return candidates
