"""개인화 신뢰도 계산

관심사 레코드의 카운터만으로 0~1 신뢰도와 유의미한 데이터 보유 여부를 계산합니다.
I/O가 없는 순수 함수이며, 같은 입력에는 항상 같은 결과를 반환합니다.
"""

from typing import NamedTuple

from app.domains.personalization.config import (
    DEFAULT_CONFIG,
    PersonalizationConfig,
)
from app.domains.personalization.schemas import UserInterests


class ConfidenceResult(NamedTuple):
    """신뢰도 계산 결과"""

    confidence: float
    significant: bool


def is_significant(
    interests: UserInterests, config: PersonalizationConfig = DEFAULT_CONFIG
) -> bool:
    """개인화를 적용할 만큼 상호작용이 쌓였는지 여부"""
    return interests.total_interactions >= config.significance_threshold


def interaction_weight(
    interests: UserInterests, config: PersonalizationConfig = DEFAULT_CONFIG
) -> float:
    """상호작용 수 가중치 (기준 횟수에서 1.0으로 포화)"""
    return min(
        interests.total_interactions / config.interaction_reference_count, 1.0
    )


def engagement_rate(interests: UserInterests) -> float:
    """노출(view/expand) 대비 명시적 피드백(upvote/downvote) 비율

    노출 기록이 없을 때는 명시적 피드백이 하나라도 있으면 1.0으로 봅니다.
    반응을 남긴 추천은 이미 노출된 것이기 때문입니다.
    """
    if interests.total_impressions == 0:
        return 1.0 if interests.total_explicit_feedback > 0 else 0.0
    return min(
        interests.total_explicit_feedback / interests.total_impressions, 1.0
    )


def compute_confidence(
    interests: UserInterests, config: PersonalizationConfig = DEFAULT_CONFIG
) -> ConfidenceResult:
    """개인화 신뢰도 계산

    confidence =
        w_i * interaction_weight + w_s * satisfaction + w_e * engagement_rate

    Args:
        interests: 사용자 관심사 레코드
        config: 튜닝 파라미터

    Returns:
        ConfidenceResult: (confidence, significant).
        유의미하지 않으면 confidence는 0.0
    """
    if not is_significant(interests, config):
        return ConfidenceResult(confidence=0.0, significant=False)

    score = (
        config.interaction_weight * interaction_weight(interests, config)
        + config.satisfaction_weight * interests.satisfaction_score
        + config.engagement_weight * engagement_rate(interests)
    )
    return ConfidenceResult(
        confidence=min(max(score, 0.0), 1.0), significant=True
    )


def refresh_confidence(
    interests: UserInterests, config: PersonalizationConfig = DEFAULT_CONFIG
) -> UserInterests:
    """저장된 값 대신 카운터로부터 신뢰도를 다시 계산한 레코드 반환"""
    result = compute_confidence(interests, config)
    if result.confidence == interests.personalization_confidence:
        return interests
    return interests.model_copy(
        update={"personalization_confidence": result.confidence}
    )
