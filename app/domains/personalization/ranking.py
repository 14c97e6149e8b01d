"""후보 추천 개인화 랭킹"""

from typing import Sequence

from app.domains.personalization.config import (
    DEFAULT_CONFIG,
    PersonalizationConfig,
)
from app.domains.personalization.confidence import compute_confidence
from app.domains.personalization.schemas import (
    CandidateSuggestion,
    ContentType,
    RankedSuggestion,
    UserInterests,
)


def compute_bonus(
    candidate: CandidateSuggestion,
    interests: UserInterests,
    config: PersonalizationConfig = DEFAULT_CONFIG,
) -> float:
    """신뢰도 적용 전 보너스 (상한 적용)"""
    per_keyword = (
        config.faq_keyword_bonus
        if candidate.content_type == ContentType.FAQ
        else config.recipe_keyword_bonus
    )
    preferred_keywords = set(interests.preferred_keywords)
    matches = sum(1 for kw in candidate.keywords if kw in preferred_keywords)

    bonus = matches * per_keyword
    if candidate.category and (
        candidate.category in interests.preferred_categories
    ):
        bonus += config.category_bonus
    return min(bonus, config.max_bonus)


def rank_candidates(
    candidates: Sequence[CandidateSuggestion],
    interests: UserInterests,
    config: PersonalizationConfig = DEFAULT_CONFIG,
) -> list[RankedSuggestion]:
    """관심사 기반으로 후보 추천 재정렬

    보너스는 카운터로부터 다시 계산한 신뢰도로 가중됩니다. 레코드에 저장된
    ``personalization_confidence`` 값은 사용하지 않으므로, 유의미한 데이터가
    없는 사용자는 항상 기본 점수 순서를 그대로 받습니다.
    최종 점수가 같으면 원래 후보 순서를 유지합니다.

    Args:
        candidates: 생성형 백엔드가 반환한 후보 목록
        interests: 사용자 관심사 레코드
        config: 튜닝 파라미터

    Returns:
        list[RankedSuggestion]: 최종 점수 내림차순 목록
    """
    confidence = compute_confidence(interests, config).confidence

    ranked = []
    for candidate in candidates:
        bonus = compute_bonus(candidate, interests, config) * confidence
        final_score = min(candidate.base_relevance_score + bonus, 1.0)
        ranked.append(
            RankedSuggestion.from_candidate(
                candidate, final_score=final_score, applied_bonus=bonus
            )
        )

    # sorted는 안정 정렬
    return sorted(ranked, key=lambda item: -item.final_score)
