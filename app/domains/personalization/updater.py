"""관심사 갱신 엔진

피드백 이벤트 하나를 관심사 레코드에 반영한 새 레코드를 만듭니다.
입력 레코드는 절대 변경하지 않으므로, 쓰기가 진행되는 동안에도
다른 요청이 기존 레코드를 안전하게 읽을 수 있습니다.
"""

from datetime import datetime
from typing import Optional

from app.core.utils.datetime import now_utc
from app.domains.personalization.config import (
    DEFAULT_CONFIG,
    PersonalizationConfig,
)
from app.domains.personalization.confidence import compute_confidence
from app.domains.personalization.schemas import (
    FeedbackAction,
    FeedbackEvent,
    PreferredContentType,
    UserInterests,
)

POSITIVE_SIGNAL = 1.0
NEGATIVE_SIGNAL = 0.0

# 선호 콘텐츠 유형으로 인정되는 긍정 피드백 비율
CONTENT_TYPE_DOMINANCE = 0.6


def classify_action(
    action: FeedbackAction, config: PersonalizationConfig = DEFAULT_CONFIG
) -> Optional[float]:
    """액션을 학습 신호로 변환

    Returns:
        긍정이면 1.0, 부정이면 0.0, 중립(점수에 반영하지 않음)이면 None
    """
    if action == FeedbackAction.UPVOTE:
        return POSITIVE_SIGNAL
    if action == FeedbackAction.DOWNVOTE:
        return NEGATIVE_SIGNAL
    if action == FeedbackAction.EXPAND and config.expand_is_positive:
        return POSITIVE_SIGNAL
    return None


def learning_rate(count: int, config: PersonalizationConfig) -> float:
    """상호작용 수에 따라 감소하는 이동 평균 스텝 (하한 있음)"""
    return max(1.0 / max(count, 1), config.min_learning_rate)


def _update_scores(
    terms: tuple[str, ...],
    scores: dict[str, float],
    counts: dict[str, int],
    signal: Optional[float],
    config: PersonalizationConfig,
) -> None:
    for term in terms:
        counts[term] = counts.get(term, 0) + 1
        if signal is None:
            continue
        if term not in scores:
            scores[term] = signal
            continue
        w = learning_rate(counts[term], config)
        updated = scores[term] * (1.0 - w) + signal * w
        scores[term] = min(max(updated, 0.0), 1.0)


def top_terms(
    scores: dict[str, float], counts: dict[str, int], limit: int
) -> list[str]:
    """(점수, 상호작용 수) 내림차순 상위 N개

    점수가 0인 항목(부정 피드백만 받은 항목)은 제외하며,
    동점은 처음 등장한 순서를 유지합니다.
    """
    eligible = [term for term, score in scores.items() if score > 0.0]
    ranked = sorted(
        eligible,
        key=lambda term: (-scores[term], -counts.get(term, 0)),
    )
    return ranked[:limit]


def _push_front(
    items: list[str], value: str, limit: int, case_insensitive: bool = False
) -> list[str]:
    if case_insensitive:
        folded = value.casefold()
        rest = [item for item in items if item.casefold() != folded]
    else:
        rest = [item for item in items if item != value]
    return [value, *rest][:limit]


def derive_preferred_content_type(
    positive_counts: dict[str, int], config: PersonalizationConfig
) -> PreferredContentType:
    """긍정 피드백 분포로 선호 콘텐츠 유형 결정"""
    total = sum(positive_counts.values())
    if total < config.significance_threshold:
        return PreferredContentType.BALANCED

    for content_type in (PreferredContentType.RECIPE, PreferredContentType.FAQ):
        if positive_counts.get(content_type.value, 0) / total >= (
            CONTENT_TYPE_DOMINANCE
        ):
            return content_type
    return PreferredContentType.BALANCED


def apply_feedback(
    interests: UserInterests,
    event: FeedbackEvent,
    config: PersonalizationConfig = DEFAULT_CONFIG,
    now: Optional[datetime] = None,
) -> UserInterests:
    """피드백 이벤트를 반영한 새 관심사 레코드 반환

    Args:
        interests: 현재 관심사 레코드 (변경되지 않음)
        event: 검증된 피드백 이벤트
        config: 튜닝 파라미터
        now: 갱신 시각 (기본값: 현재 UTC)

    Returns:
        UserInterests: 갱신된 새 레코드
    """
    signal = classify_action(event.action, config)

    keyword_scores = dict(interests.keyword_relevance_scores)
    keyword_counts = dict(interests.keyword_interaction_counts)
    _update_scores(event.keywords, keyword_scores, keyword_counts, signal, config)

    category_scores = dict(interests.category_relevance_scores)
    category_counts = dict(interests.category_interaction_counts)
    if event.category:
        _update_scores(
            (event.category,), category_scores, category_counts, signal, config
        )

    positive = interests.total_positive_feedback
    negative = interests.total_negative_feedback
    if signal == POSITIVE_SIGNAL:
        positive += 1
    elif signal == NEGATIVE_SIGNAL:
        negative += 1
    total = positive + negative

    impressions = interests.total_impressions
    if event.action in (FeedbackAction.VIEW, FeedbackAction.EXPAND):
        impressions += 1
    explicit = interests.total_explicit_feedback
    if event.action in (FeedbackAction.UPVOTE, FeedbackAction.DOWNVOTE):
        explicit += 1

    content_type_counts = dict(interests.content_type_positive_counts)
    if signal == POSITIVE_SIGNAL:
        key = event.content_type.value
        content_type_counts[key] = content_type_counts.get(key, 0) + 1

    search_terms = list(interests.recent_search_terms)
    if event.search_term:
        search_terms = _push_front(
            search_terms,
            event.search_term,
            config.max_recent_search_terms,
            case_insensitive=True,
        )

    vendors = list(interests.favorite_vendors)
    if signal == POSITIVE_SIGNAL and event.vendor_id:
        vendors = _push_front(
            vendors, event.vendor_id, config.max_favorite_vendors
        )

    updated = interests.model_copy(
        update={
            "keyword_relevance_scores": keyword_scores,
            "keyword_interaction_counts": keyword_counts,
            "preferred_keywords": top_terms(
                keyword_scores, keyword_counts, config.max_preferred_keywords
            ),
            "category_relevance_scores": category_scores,
            "category_interaction_counts": category_counts,
            "preferred_categories": top_terms(
                category_scores,
                category_counts,
                config.max_preferred_categories,
            ),
            "total_positive_feedback": positive,
            "total_negative_feedback": negative,
            "total_interactions": total,
            "satisfaction_score": positive / total if total else 0.0,
            "total_impressions": impressions,
            "total_explicit_feedback": explicit,
            "content_type_positive_counts": content_type_counts,
            "preferred_content_type": derive_preferred_content_type(
                content_type_counts, config
            ),
            "recent_search_terms": search_terms,
            "favorite_vendors": vendors,
            "updated_at": now or now_utc(),
        }
    )

    confidence = compute_confidence(updated, config).confidence
    return updated.model_copy(update={"personalization_confidence": confidence})
