"""Personalization 도메인 모듈

사용자 피드백으로 관심사 레코드를 학습하고, 이를 이용해 생성형 백엔드 요청을
개인화하며 반환된 레시피/FAQ 후보를 재정렬하는 도메인입니다.

구조:
    - schemas.py: Pydantic 스키마 (UserInterests, FeedbackEvent, 후보/랭킹)
    - config.py: 튜닝 파라미터 (PersonalizationConfig)
    - confidence.py: 신뢰도/유의성 계산
    - updater.py: 피드백 반영 (관심사 갱신)
    - ranking.py: 후보 재정렬
    - directive.py: 생성형 백엔드용 개인화 디렉티브
    - cache.py: TTL + LRU 관심사 캐시
    - repository.py: 관심사 문서 저장소 (PostgreSQL)
    - events.py: 관심사 변경 알림 채널
    - service.py: 추천 오케스트레이터
    - router.py: API 엔드포인트 (API Key 인증 포함)
    - exceptions.py: 도메인 예외
"""

from app.domains.personalization.exceptions import (
    BackendUnavailableError,
    MalformedEventException,
    PersonalizationErrorCode,
    StoreUnavailableError,
)
from app.domains.personalization.models import UserInterestsDocument
from app.domains.personalization.schemas import (
    CandidateSuggestion,
    ContentType,
    FeedbackAction,
    FeedbackEvent,
    RankedSuggestion,
    UserInterests,
)

__all__ = [
    "UserInterestsDocument",
    "UserInterests",
    "FeedbackEvent",
    "FeedbackAction",
    "ContentType",
    "CandidateSuggestion",
    "RankedSuggestion",
    "PersonalizationErrorCode",
    "BackendUnavailableError",
    "StoreUnavailableError",
    "MalformedEventException",
]
