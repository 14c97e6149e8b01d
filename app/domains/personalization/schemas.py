"""Personalization 도메인 스키마 정의

사용자 관심사 레코드, 피드백 이벤트, 후보/랭킹 결과, 개인화 디렉티브 및
API 요청/응답 스키마입니다.

피드백 이벤트와 후보 추천은 경계에서 검증되며, 키워드와 카테고리는
소문자/공백 정규화되어 랭킹 로직까지 같은 형태로 전달됩니다.
"""

import re
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Mapping, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from app.core.utils.datetime import ensure_utc, now_utc
from app.domains.personalization.config import (
    DEFAULT_CONFIG,
    PersonalizationConfig,
)
from app.domains.personalization.exceptions import MalformedEventException


class ContentType(str, Enum):
    """추천 콘텐츠 유형"""

    RECIPE = "recipe"
    FAQ = "faq"


class FeedbackAction(str, Enum):
    """사용자가 추천에 남길 수 있는 피드백 액션"""

    VIEW = "view"
    EXPAND = "expand"
    UPVOTE = "upvote"
    DOWNVOTE = "downvote"


class PreferredContentType(str, Enum):
    """사용자가 선호하는 콘텐츠 유형"""

    RECIPE = "recipe"
    FAQ = "faq"
    BALANCED = "balanced"


class DirectiveTier(str, Enum):
    """개인화 디렉티브 단계"""

    RICH = "rich"
    MINIMAL = "minimal"


def normalize_term(value: str) -> str:
    """키워드/카테고리 정규화 (소문자, 공백 정리)"""
    return " ".join(value.strip().lower().split())


def normalize_terms(values: Any) -> tuple[str, ...]:
    """키워드 목록 정규화

    문자열 하나가 들어오면 글자 단위로 쪼개지는 것을 막기 위해 거부합니다.
    set 입력은 순서가 없으므로 정렬하여 결과를 결정적으로 만듭니다.
    """
    if values is None:
        return ()
    if isinstance(values, (str, bytes)):
        raise ValueError("keywords must be a list of strings")
    if isinstance(values, (set, frozenset)):
        values = sorted(values, key=str)
    if not isinstance(values, (list, tuple)):
        raise ValueError("keywords must be a list of strings")

    result: list[str] = []
    for value in values:
        if not isinstance(value, str):
            raise ValueError("keywords must contain only strings")
        term = normalize_term(value)
        if term and term not in result:
            result.append(term)
    return tuple(result)


_TITLE_PUNCTUATION = re.compile(r"[^\w\s]")
TITLE_MIN_WORD_LENGTH = 3


def title_keywords(title: Optional[str]) -> list[str]:
    """콘텐츠 제목에서 키워드 추출 (문장부호 제거, 3글자 이상 단어)"""
    if not title:
        return []
    cleaned = _TITLE_PUNCTUATION.sub("", title.lower())
    return [
        word for word in cleaned.split() if len(word) >= TITLE_MIN_WORD_LENGTH
    ]


def _normalize_optional_term(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError("must be a string")
    term = normalize_term(value)
    return term or None


def _strip_optional(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError("must be a string")
    stripped = value.strip()
    return stripped or None


def _clamp01(value: float) -> float:
    return min(max(float(value), 0.0), 1.0)


class UserInterests(BaseModel):
    """사용자별 개인화 관심사 레코드

    문서 저장소에는 camelCase 키로 저장되며(``to_document``),
    ``personalization_confidence``는 항상 다른 필드로부터 다시 계산됩니다.
    레코드는 불변이며 InterestUpdateEngine만 새 레코드를 만들어냅니다.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    user_id: str
    preferred_keywords: list[str] = Field(default_factory=list)
    keyword_relevance_scores: dict[str, float] = Field(default_factory=dict)
    keyword_interaction_counts: dict[str, int] = Field(default_factory=dict)
    preferred_categories: list[str] = Field(default_factory=list)
    category_relevance_scores: dict[str, float] = Field(default_factory=dict)
    category_interaction_counts: dict[str, int] = Field(default_factory=dict)
    satisfaction_score: float = Field(default=0.0, ge=0.0, le=1.0)
    total_positive_feedback: int = Field(default=0, ge=0)
    total_negative_feedback: int = Field(default=0, ge=0)
    total_interactions: int = Field(default=0, ge=0)
    total_impressions: int = Field(default=0, ge=0)
    total_explicit_feedback: int = Field(default=0, ge=0)
    content_type_positive_counts: dict[str, int] = Field(default_factory=dict)
    preferred_content_type: PreferredContentType = (
        PreferredContentType.BALANCED
    )
    personalization_confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    recent_search_terms: list[str] = Field(default_factory=list)
    favorite_vendors: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=now_utc)
    updated_at: datetime = Field(default_factory=now_utc)

    @model_validator(mode="after")
    def validate_totals(self) -> "UserInterests":
        """총 상호작용 수 = 긍정 + 부정, 상호작용이 없으면 신뢰도 0"""
        expected = self.total_positive_feedback + self.total_negative_feedback
        if self.total_interactions != expected:
            raise ValueError(
                "total_interactions must equal positive + negative feedback "
                f"({self.total_interactions} != {expected})"
            )
        if self.total_interactions == 0 and self.personalization_confidence:
            raise ValueError(
                "personalization_confidence must be 0 without interactions"
            )
        return self

    @classmethod
    def empty(
        cls, user_id: str, now: Optional[datetime] = None
    ) -> "UserInterests":
        """신규 사용자를 위한 빈 관심사 레코드"""
        timestamp = now or now_utc()
        return cls(user_id=user_id, created_at=timestamp, updated_at=timestamp)

    def to_document(self) -> dict[str, Any]:
        """문서 저장소용 JSON 직렬화 (userId는 문서 키로 사용되므로 제외)"""
        return self.model_dump(mode="json", by_alias=True, exclude={"user_id"})

    @classmethod
    def from_document(
        cls,
        user_id: str,
        data: Mapping[str, Any],
        config: PersonalizationConfig = DEFAULT_CONFIG,
    ) -> "UserInterests":
        """저장된 문서에서 레코드 복원

        누락된 키는 기본값으로 채우고, 점수는 [0,1]로 자르며, 목록 중복 제거와
        상한, 총계 불변식을 복구합니다. 신뢰도는 호출 측에서 다시 계산해야 합니다.
        """
        raw = dict(data)
        raw.pop("userId", None)
        raw.pop("user_id", None)

        def _list(key: str, limit: int) -> list[str]:
            items: list[str] = []
            for item in raw.get(key) or []:
                if item not in items:
                    items.append(item)
            return items[:limit]

        def _scores(key: str) -> dict[str, float]:
            return {
                str(k): _clamp01(v) for k, v in (raw.get(key) or {}).items()
            }

        def _counts(key: str) -> dict[str, int]:
            return {
                str(k): max(int(v), 0) for k, v in (raw.get(key) or {}).items()
            }

        positive = max(int(raw.get("totalPositiveFeedback", 0)), 0)
        negative = max(int(raw.get("totalNegativeFeedback", 0)), 0)

        created_at = raw.get("createdAt") or now_utc()
        updated_at = raw.get("updatedAt") or created_at

        return cls(
            user_id=user_id,
            preferred_keywords=_list(
                "preferredKeywords", config.max_preferred_keywords
            ),
            keyword_relevance_scores=_scores("keywordRelevanceScores"),
            keyword_interaction_counts=_counts("keywordInteractionCounts"),
            preferred_categories=_list(
                "preferredCategories", config.max_preferred_categories
            ),
            category_relevance_scores=_scores("categoryRelevanceScores"),
            category_interaction_counts=_counts("categoryInteractionCounts"),
            satisfaction_score=(
                positive / (positive + negative)
                if positive + negative
                else 0.0
            ),
            total_positive_feedback=positive,
            total_negative_feedback=negative,
            total_interactions=positive + negative,
            total_impressions=max(int(raw.get("totalImpressions", 0)), 0),
            total_explicit_feedback=max(
                int(raw.get("totalExplicitFeedback", 0)), 0
            ),
            content_type_positive_counts=_counts("contentTypePositiveCounts"),
            preferred_content_type=raw.get(
                "preferredContentType", PreferredContentType.BALANCED
            ),
            recent_search_terms=_list(
                "recentSearchTerms", config.max_recent_search_terms
            ),
            favorite_vendors=_list(
                "favoriteVendors", config.max_favorite_vendors
            ),
            created_at=created_at,
            updated_at=updated_at,
        )


class FeedbackEvent(BaseModel):
    """추천에 대한 사용자 피드백 이벤트 (일회성, 저장하지 않음)

    모바일 앱에서 오는 camelCase 페이로드와 snake_case 모두 허용합니다.
    ``content_title``이 있으면 제목 단어가 ``keywords`` 뒤에 합쳐집니다.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    user_id: str
    content_type: ContentType
    action: FeedbackAction
    keywords: tuple[str, ...] = ()
    category: Optional[str] = None
    timestamp: datetime = Field(default_factory=now_utc)
    search_term: Optional[str] = None
    vendor_id: Optional[str] = None
    content_id: Optional[str] = None
    content_title: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def merge_title_keywords(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        title = data.get("contentTitle", data.get("content_title"))
        if not isinstance(title, str):
            return data

        keywords = data.get("keywords")
        if keywords is not None and not isinstance(keywords, (list, tuple)):
            # 형식 오류는 keywords 필드 검증에서 보고
            return data
        merged = dict(data)
        merged["keywords"] = [*(keywords or ()), *title_keywords(title)]
        return merged

    @field_validator("user_id", mode="before")
    @classmethod
    def validate_user_id(cls, v: Any) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("user_id must be a non-empty string")
        return v.strip()

    @field_validator("keywords", mode="before")
    @classmethod
    def validate_keywords(cls, v: Any) -> tuple[str, ...]:
        return normalize_terms(v)

    @field_validator("category", mode="before")
    @classmethod
    def validate_category(cls, v: Any) -> Optional[str]:
        return _normalize_optional_term(v)

    @field_validator(
        "search_term", "vendor_id", "content_id", "content_title", mode="before"
    )
    @classmethod
    def validate_optional_text(cls, v: Any) -> Optional[str]:
        return _strip_optional(v)

    @field_validator("timestamp")
    @classmethod
    def validate_timestamp(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @classmethod
    def parse(cls, payload: Mapping[str, Any]) -> "FeedbackEvent":
        """원시 페이로드 검증

        Raises:
            MalformedEventException: 필수 필드 누락 또는 형식 오류
        """
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            raise MalformedEventException(errors=_summarize_errors(e))


def _summarize_errors(error: ValidationError) -> list[dict[str, Any]]:
    return [
        {
            "loc": [str(part) for part in item["loc"]],
            "msg": item["msg"],
            "type": item["type"],
        }
        for item in error.errors()
    ]


class CandidateSuggestion(BaseModel):
    """생성형 백엔드가 반환한 후보 추천

    ``payload``는 랭킹과 무관하게 그대로 전달됩니다.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str = Field(..., min_length=1)
    content_type: ContentType
    base_relevance_score: float = Field(..., ge=0.0, le=1.0)
    keywords: tuple[str, ...] = ()
    category: Optional[str] = None
    payload: dict[str, Any] = Field(default_factory=dict)

    @field_validator("keywords", mode="before")
    @classmethod
    def validate_keywords(cls, v: Any) -> tuple[str, ...]:
        return normalize_terms(v)

    @field_validator("category", mode="before")
    @classmethod
    def validate_category(cls, v: Any) -> Optional[str]:
        return _normalize_optional_term(v)


class RankedSuggestion(CandidateSuggestion):
    """개인화 랭킹이 적용된 추천

    Attributes:
        final_score: base_relevance_score + 보너스 (최대 1.0)
        applied_bonus: 신뢰도 가중치까지 적용된 실제 보너스
    """

    final_score: float = Field(..., ge=0.0, le=1.0)
    applied_bonus: float = Field(..., ge=0.0)

    @classmethod
    def from_candidate(
        cls,
        candidate: CandidateSuggestion,
        final_score: float,
        applied_bonus: float,
    ) -> "RankedSuggestion":
        return cls(
            **candidate.model_dump(),
            final_score=final_score,
            applied_bonus=applied_bonus,
        )


class MediaContext(BaseModel):
    """추천 요청 시 게시물(미디어) 컨텍스트"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    caption: str = ""
    media_type: str = "photo"
    vendor_id: Optional[str] = None
    keywords: tuple[str, ...] = ()
    content_types: tuple[ContentType, ...] = (
        ContentType.RECIPE,
        ContentType.FAQ,
    )
    limit: int = Field(default=5, ge=1, le=20)

    @field_validator("keywords", mode="before")
    @classmethod
    def validate_keywords(cls, v: Any) -> tuple[str, ...]:
        return normalize_terms(v)


class PersonalizationDirective(BaseModel):
    """생성형 백엔드 프롬프트에 전달할 사용자 선호 요약

    minimal 단계에서는 컬렉션 필드가 모두 비어 있습니다.
    """

    tier: DirectiveTier
    significant: bool
    confidence: float = Field(..., ge=0.0, le=1.0)
    satisfaction_score: float = Field(..., ge=0.0, le=1.0)
    total_interactions: int = Field(..., ge=0)
    preferred_keywords: list[str] = Field(default_factory=list)
    preferred_categories: list[str] = Field(default_factory=list)
    keyword_scores: dict[str, float] = Field(default_factory=dict)
    category_scores: dict[str, float] = Field(default_factory=dict)
    recent_search_terms: list[str] = Field(default_factory=list)
    favorite_vendors: list[str] = Field(default_factory=list)
    preferred_content_type: PreferredContentType = (
        PreferredContentType.BALANCED
    )

    @property
    def is_rich(self) -> bool:
        return self.tier == DirectiveTier.RICH


class GenerationRequest(BaseModel):
    """생성형 백엔드 요청"""

    user_id: str
    media_context: MediaContext
    directive: PersonalizationDirective


# API 스키마


class SuggestionRequest(BaseModel):
    """추천 요청 API 스키마"""

    user_id: str = Field(..., min_length=1, description="사용자 ID")
    context: MediaContext = Field(
        default_factory=MediaContext, description="게시물 컨텍스트"
    )
    timeout_seconds: Optional[float] = Field(
        default=None, gt=0.0, le=30.0, description="호출자 타임아웃 (초)"
    )


class SuggestionListResponse(BaseModel):
    """추천 목록 응답"""

    user_id: str
    suggestions: list[RankedSuggestion] = Field(default_factory=list)
    personalized: bool = Field(
        ..., description="신뢰도 보너스가 하나라도 적용되었는지 여부"
    )


class InterestAnalytics(BaseModel):
    """사용자 관심사 분석 응답"""

    user_id: str
    total_interactions: int
    total_positive_feedback: int
    total_negative_feedback: int
    total_impressions: int
    engagement_rate: float
    satisfaction_score: float
    personalization_confidence: float
    has_significant_data: bool
    preferred_keywords_count: int
    preferred_categories_count: int
    recent_search_terms_count: int
    favorite_vendors_count: int
    top_keywords: list[str]
    top_categories: list[str]
    preferred_content_type: PreferredContentType
    created_at: datetime
    updated_at: datetime


def select_scores(
    scores: Mapping[str, float], names: Iterable[str]
) -> dict[str, float]:
    """선호 목록에 포함된 항목의 점수만 추출"""
    return {name: scores[name] for name in names if name in scores}


class FeedbackAcceptedResponse(BaseModel):
    """피드백 접수 응답 (반영은 백그라운드에서 진행)"""

    user_id: str
    action: FeedbackAction
    content_type: ContentType
    accepted: bool = True
