"""Personalization 도메인 의존성

오케스트레이터는 프로세스당 하나만 생성되어 캐시를 공유합니다.
테스트에서는 ``app.dependency_overrides[get_orchestrator]``로 교체합니다.
"""

from functools import lru_cache

from app.core.config import get_settings
from app.core.database import async_session_maker
from app.domains.personalization.cache import PersonalizationCache
from app.domains.personalization.config import PersonalizationConfig
from app.domains.personalization.events import InterestChangeBroadcaster
from app.domains.personalization.repository import SqlInterestStore
from app.domains.personalization.service import SuggestionOrchestrator
from app.domains.suggestions.backend import LLMSuggestionBackend


@lru_cache
def get_orchestrator() -> SuggestionOrchestrator:
    """프로세스 전역 SuggestionOrchestrator 반환 (캐싱됨)"""
    settings = get_settings()
    config = PersonalizationConfig.from_settings(settings)

    cache = PersonalizationCache(
        store=SqlInterestStore(async_session_maker, config),
        ttl_seconds=settings.interest_cache_ttl_seconds,
        max_entries=settings.interest_cache_max_entries,
        config=config,
    )
    backend = LLMSuggestionBackend(
        model=settings.suggestion_model,
        temperature=settings.suggestion_temperature,
        max_candidates=settings.suggestion_max_candidates,
    )
    return SuggestionOrchestrator(
        cache=cache,
        backend=backend,
        config=config,
        broadcaster=InterestChangeBroadcaster(),
        backend_timeout=settings.suggestion_backend_timeout_seconds,
        max_retries=settings.suggestion_backend_max_retries,
    )
