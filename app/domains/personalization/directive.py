"""개인화 디렉티브 생성

생성형 백엔드 프롬프트에 들어갈 사용자 선호 요약을 만듭니다.
신뢰도 게이트를 통과한 사용자만 rich 단계를 받습니다.
"""

from app.domains.personalization.config import (
    DEFAULT_CONFIG,
    PersonalizationConfig,
)
from app.domains.personalization.confidence import compute_confidence
from app.domains.personalization.schemas import (
    DirectiveTier,
    PersonalizationDirective,
    UserInterests,
    select_scores,
)

DIRECTIVE_SEARCH_TERMS = 5
DIRECTIVE_VENDORS = 3


def build_directive(
    interests: UserInterests, config: PersonalizationConfig = DEFAULT_CONFIG
) -> PersonalizationDirective:
    """관심사 레코드로부터 개인화 디렉티브 생성

    rich 조건: 유의미한 데이터가 있고 신뢰도가 ``rich_directive_confidence`` 초과.
    그 외에는 선호 목록이 비어 있는 minimal 디렉티브를 반환합니다.
    """
    result = compute_confidence(interests, config)

    base = {
        "significant": result.significant,
        "confidence": result.confidence,
        "satisfaction_score": interests.satisfaction_score,
        "total_interactions": interests.total_interactions,
    }

    if not (
        result.significant
        and result.confidence > config.rich_directive_confidence
    ):
        return PersonalizationDirective(tier=DirectiveTier.MINIMAL, **base)

    return PersonalizationDirective(
        tier=DirectiveTier.RICH,
        preferred_keywords=list(interests.preferred_keywords),
        preferred_categories=list(interests.preferred_categories),
        keyword_scores=select_scores(
            interests.keyword_relevance_scores, interests.preferred_keywords
        ),
        category_scores=select_scores(
            interests.category_relevance_scores,
            interests.preferred_categories,
        ),
        recent_search_terms=interests.recent_search_terms[
            :DIRECTIVE_SEARCH_TERMS
        ],
        favorite_vendors=interests.favorite_vendors[:DIRECTIVE_VENDORS],
        preferred_content_type=interests.preferred_content_type,
        **base,
    )
