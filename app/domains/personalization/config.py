"""개인화 튜닝 상수

순수 함수(신뢰도 계산, 관심사 갱신, 랭킹)는 전역 설정 대신 이 객체를 인자로 받습니다.
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.core.config import Settings


class PersonalizationConfig(BaseModel):
    """개인화 엔진 튜닝 파라미터

    Attributes:
        significance_threshold: 개인화를 적용하기 위한 최소 상호작용 수
        interaction_reference_count: 상호작용 가중치가 포화되는 기준 횟수
        interaction_weight: 신뢰도 중 상호작용 항 가중치
        satisfaction_weight: 신뢰도 중 만족도 항 가중치
        engagement_weight: 신뢰도 중 참여율 항 가중치
        min_learning_rate: 이동 평균 스텝의 하한
        expand_is_positive: expand 액션을 긍정 신호로 볼지 여부
        recipe_keyword_bonus: 레시피 키워드 일치당 보너스
        faq_keyword_bonus: FAQ 키워드 일치당 보너스
        category_bonus: 선호 카테고리 일치 보너스
        max_bonus: 보너스 상한
        rich_directive_confidence: 풍부한 디렉티브를 보내기 위한 신뢰도 하한
    """

    model_config = ConfigDict(frozen=True)

    significance_threshold: int = Field(default=5, ge=1)
    interaction_reference_count: int = Field(default=20, ge=1)
    interaction_weight: float = Field(default=0.4, ge=0.0, le=1.0)
    satisfaction_weight: float = Field(default=0.4, ge=0.0, le=1.0)
    engagement_weight: float = Field(default=0.2, ge=0.0, le=1.0)
    min_learning_rate: float = Field(default=0.1, gt=0.0, le=1.0)
    expand_is_positive: bool = True
    recipe_keyword_bonus: float = Field(default=0.10, ge=0.0)
    faq_keyword_bonus: float = Field(default=0.15, ge=0.0)
    category_bonus: float = Field(default=0.20, ge=0.0)
    max_bonus: float = Field(default=0.30, ge=0.0, le=1.0)
    rich_directive_confidence: float = Field(default=0.3, ge=0.0, le=1.0)

    # 목록 상한
    max_preferred_keywords: int = 10
    max_preferred_categories: int = 5
    max_recent_search_terms: int = 20
    max_favorite_vendors: int = 10

    @model_validator(mode="after")
    def validate_weights(self) -> "PersonalizationConfig":
        """신뢰도 가중치 합이 1을 넘지 않는지 검증"""
        total = (
            self.interaction_weight
            + self.satisfaction_weight
            + self.engagement_weight
        )
        if total > 1.0 + 1e-9:
            raise ValueError(
                "confidence weights must sum to at most 1.0, "
                f"got {total:.3f}"
            )
        return self

    @classmethod
    def from_settings(cls, settings: Settings) -> "PersonalizationConfig":
        """애플리케이션 설정에서 튜닝 값을 읽어 생성"""
        return cls(
            significance_threshold=(
                settings.personalization_significance_threshold
            ),
            interaction_reference_count=(
                settings.personalization_interaction_reference_count
            ),
            interaction_weight=settings.personalization_interaction_weight,
            satisfaction_weight=settings.personalization_satisfaction_weight,
            engagement_weight=settings.personalization_engagement_weight,
            min_learning_rate=settings.personalization_min_learning_rate,
            expand_is_positive=settings.personalization_expand_is_positive,
            recipe_keyword_bonus=(
                settings.personalization_recipe_keyword_bonus
            ),
            faq_keyword_bonus=settings.personalization_faq_keyword_bonus,
            category_bonus=settings.personalization_category_bonus,
            max_bonus=settings.personalization_max_bonus,
            rich_directive_confidence=(
                settings.personalization_rich_directive_confidence
            ),
        )


DEFAULT_CONFIG = PersonalizationConfig()
