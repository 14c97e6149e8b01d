"""추천 오케스트레이터

추천 요청과 피드백 반영의 진입점입니다.

- 추천 요청: 캐시 → 디렉티브 → 생성형 백엔드 → 랭킹
- 피드백: 캐시 → 관심사 갱신 → 캐시 쓰기 → 저장소 쓰기 → 변경 알림

추천은 부가 기능이므로 백엔드/저장소 실패는 호출자에게 전파하지 않고
빈 결과나 비개인화 결과로 대체합니다. 호출자에게 보고되는 오류는
잘못된 피드백 이벤트(MalformedEventException)뿐입니다.
"""

import asyncio
import weakref
from datetime import datetime
from typing import Any, Callable, Mapping, Optional, Union

from app.core.logging import get_logger
from app.core.utils.datetime import now_utc
from app.domains.personalization.cache import PersonalizationCache
from app.domains.personalization.config import (
    DEFAULT_CONFIG,
    PersonalizationConfig,
)
from app.domains.personalization.confidence import (
    compute_confidence,
    engagement_rate,
)
from app.domains.personalization.directive import build_directive
from app.domains.personalization.events import InterestChangeBroadcaster
from app.domains.personalization.exceptions import (
    BackendUnavailableError,
    MalformedEventException,
    StoreUnavailableError,
)
from app.domains.personalization.ranking import rank_candidates
from app.domains.personalization.schemas import (
    CandidateSuggestion,
    FeedbackEvent,
    GenerationRequest,
    InterestAnalytics,
    MediaContext,
    PersonalizationDirective,
    RankedSuggestion,
    UserInterests,
)
from app.domains.personalization.updater import apply_feedback
from app.domains.suggestions.backend import GenerativeBackend

logger = get_logger(__name__)

ANALYTICS_TOP_KEYWORDS = 5
ANALYTICS_TOP_CATEGORIES = 3


class SuggestionOrchestrator:
    """추천 오케스트레이터

    프로세스당 한 번 생성되며 저장소, 백엔드, 시계, 설정을 주입받습니다.

    Args:
        cache: 관심사 캐시 (저장소는 ``cache.store``를 사용)
        backend: 생성형 추천 백엔드
        config: 튜닝 파라미터
        broadcaster: 관심사 변경 알림 채널
        backend_timeout: 백엔드 호출 1회당 타임아웃 (초)
        max_retries: 백엔드 재시도 횟수
        clock: 현재 시각 함수
    """

    def __init__(
        self,
        cache: PersonalizationCache,
        backend: GenerativeBackend,
        config: PersonalizationConfig = DEFAULT_CONFIG,
        broadcaster: Optional[InterestChangeBroadcaster] = None,
        backend_timeout: float = 3.0,
        max_retries: int = 1,
        clock: Callable[[], datetime] = now_utc,
    ):
        self.cache = cache
        self.store = cache.store
        self.backend = backend
        self.config = config
        self.broadcaster = broadcaster or InterestChangeBroadcaster()
        self.backend_timeout = backend_timeout
        self.max_retries = max_retries
        self.clock = clock
        self._tasks: set[asyncio.Task] = set()
        # 같은 사용자의 피드백은 수신 순서대로 반영
        self._user_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )
        # 계정 삭제 횟수. 삭제 전에 접수된 피드백은 반영하지 않는다
        self._purge_generations: dict[str, int] = {}

    # ------------------------------------------------------------------
    # 추천 요청
    # ------------------------------------------------------------------

    async def request_suggestions(
        self,
        user_id: str,
        context: MediaContext,
        timeout: Optional[float] = None,
    ) -> list[RankedSuggestion]:
        """개인화된 추천 목록 반환

        백엔드 실패, 타임아웃, 호출자 타임아웃 모두 빈 목록을 반환하며
        관심사와 캐시는 변경하지 않습니다.

        Args:
            user_id: 사용자 ID
            context: 게시물 컨텍스트
            timeout: 호출자 타임아웃 (초, None이면 무제한)

        Returns:
            list[RankedSuggestion]: 최종 점수 내림차순 추천 목록
        """
        try:
            if timeout is None:
                return await self._request_suggestions(user_id, context)
            return await asyncio.wait_for(
                self._request_suggestions(user_id, context), timeout=timeout
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Suggestion request timed out: user_id={user_id}, "
                f"timeout={timeout}s"
            )
        except BackendUnavailableError as e:
            logger.warning(
                f"Suggestion backend unavailable: user_id={user_id}, "
                f"{e.detail_info.get('info')}"
            )
        except Exception as e:
            logger.error(
                f"Suggestion request failed: user_id={user_id}", exc_info=e
            )
        return []

    async def _request_suggestions(
        self, user_id: str, context: MediaContext
    ) -> list[RankedSuggestion]:
        # 캐시 미스 결과는 백엔드 호출이 성공한 뒤에만 캐시
        generation = self.cache.generation(user_id)
        try:
            interests = await self.cache.get(user_id, populate=False)
            loaded = True
        except StoreUnavailableError as e:
            interests = self._unpersonalized(user_id, e)
            loaded = False
        directive = build_directive(interests, self.config)

        candidates = await self._generate(
            GenerationRequest(
                user_id=user_id, media_context=context, directive=directive
            )
        )
        ranked = rank_candidates(candidates, interests, self.config)
        if loaded:
            self.cache.fill(user_id, interests, generation)

        logger.info(
            f"Ranked {len(ranked)} suggestions: user_id={user_id}, "
            f"tier={directive.tier.value}, "
            f"confidence={directive.confidence:.2f}"
        )
        return ranked

    async def _generate(
        self, request: GenerationRequest
    ) -> list[CandidateSuggestion]:
        """백엔드 호출 (시도당 타임아웃, 최대 ``max_retries``회 재시도)"""
        attempts = self.max_retries + 1
        last_error = ""
        for attempt in range(1, attempts + 1):
            try:
                return await asyncio.wait_for(
                    self.backend.generate(request),
                    timeout=self.backend_timeout,
                )
            except asyncio.TimeoutError:
                last_error = f"timed out after {self.backend_timeout}s"
            except BackendUnavailableError as e:
                last_error = str(e.detail_info.get("info") or e.message)
            except Exception as e:
                last_error = f"{type(e).__name__}: {e}"

            logger.warning(
                f"Backend attempt {attempt}/{attempts} failed: "
                f"user_id={request.user_id}, {last_error}"
            )

        raise BackendUnavailableError(detail_msg=last_error)

    async def _load_interests(self, user_id: str) -> UserInterests:
        """읽기 경로용 관심사 조회

        저장소 실패 시 캐시하지 않은 빈 레코드(비개인화)를 반환합니다.
        """
        try:
            return await self.cache.get(user_id)
        except StoreUnavailableError as e:
            return self._unpersonalized(user_id, e)

    def _unpersonalized(
        self, user_id: str, error: StoreUnavailableError
    ) -> UserInterests:
        logger.warning(
            f"Interest store unavailable, serving unpersonalized: "
            f"user_id={user_id}, operation={error.operation}"
        )
        return UserInterests.empty(user_id, now=self.clock())

    # ------------------------------------------------------------------
    # 피드백
    # ------------------------------------------------------------------

    def _user_lock(self, user_id: str) -> asyncio.Lock:
        lock = self._user_locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._user_locks[user_id] = lock
        return lock

    def _purge_generation(self, user_id: str) -> int:
        return self._purge_generations.get(user_id, 0)

    async def record_feedback(
        self, event: FeedbackEvent, purge_generation: Optional[int] = None
    ) -> None:
        """피드백 반영 (예외를 발생시키지 않음)

        저장소 쓰기에 실패해도 캐시는 새 값을 유지하며,
        변경 알림은 저장소 쓰기가 성공한 경우에만 보냅니다.
        접수 이후 해당 사용자가 삭제되었다면 이벤트를 버립니다.

        Args:
            event: 검증된 피드백 이벤트
            purge_generation: 접수 시점의 삭제 세대 (기본값: 호출 시점)
        """
        if purge_generation is None:
            purge_generation = self._purge_generation(event.user_id)
        try:
            await self._record_feedback(event, purge_generation)
        except Exception as e:
            logger.error(
                f"Failed to record feedback: user_id={event.user_id}, "
                f"action={event.action.value}",
                exc_info=e,
            )

    async def _record_feedback(
        self, event: FeedbackEvent, purge_generation: int
    ) -> None:
        user_id = event.user_id
        async with self._user_lock(user_id):
            if self._purge_generation(user_id) != purge_generation:
                logger.info(
                    f"Dropping feedback received before purge: "
                    f"user_id={user_id}, action={event.action.value}"
                )
                return

            try:
                interests = await self.cache.get(user_id)
            except StoreUnavailableError as e:
                # 빈 레코드로 덮어쓰면 저장된 이력이 사라지므로 이벤트를 버린다
                logger.warning(
                    f"Dropping feedback, interest store unavailable: "
                    f"user_id={user_id}, operation={e.operation}"
                )
                return

            updated = apply_feedback(
                interests, event, self.config, now=self.clock()
            )
            self.cache.put(user_id, updated)

            try:
                await self.store.put(user_id, updated)
            except StoreUnavailableError as e:
                logger.warning(
                    f"Interest store write failed, kept in cache: "
                    f"user_id={user_id}, operation={e.operation}"
                )
                return

        logger.debug(
            f"Recorded feedback: user_id={user_id}, "
            f"action={event.action.value}, "
            f"interactions={updated.total_interactions}, "
            f"confidence={updated.personalization_confidence:.2f}"
        )
        await self.broadcaster.publish(updated)

    def submit_feedback(
        self, payload: Union[FeedbackEvent, Mapping[str, Any]]
    ) -> FeedbackEvent:
        """피드백 이벤트를 검증하고 백그라운드로 반영

        Raises:
            MalformedEventException: 이벤트 형식 오류 (반영하지 않음)

        Returns:
            FeedbackEvent: 검증된 이벤트
        """
        if isinstance(payload, FeedbackEvent):
            event = payload
        else:
            try:
                event = FeedbackEvent.parse(payload)
            except MalformedEventException as e:
                logger.warning(
                    f"Rejected malformed feedback event: {e.detail_info}"
                )
                raise

        task = asyncio.create_task(
            self.record_feedback(
                event, purge_generation=self._purge_generation(event.user_id)
            )
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return event

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """진행 중인 피드백 작업이 모두 끝날 때까지 대기"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # 계정 삭제 / 조회 / 관리
    # ------------------------------------------------------------------

    async def purge_user(self, user_id: str) -> None:
        """사용자 관심사 삭제 (계정 삭제)

        캐시 엔트리는 즉시 제거되고, 저장소 실패는 재시도를 위해 전파됩니다.
        삭제 전에 접수되어 아직 반영되지 않은 피드백은 버려지며, 진행 중인
        관심사 조회 결과도 캐시되지 않습니다.

        Raises:
            StoreUnavailableError: 저장소 삭제 실패
        """
        self._purge_generations[user_id] = self._purge_generation(user_id) + 1
        self.cache.evict(user_id)

        # 진행 중인 피드백 쓰기가 끝난 뒤 삭제
        async with self._user_lock(user_id):
            self.cache.evict(user_id)
            await self.store.delete(user_id)
        logger.info(f"Purged user interests: user_id={user_id}")

    async def get_personalization_context(
        self, user_id: str
    ) -> PersonalizationDirective:
        """사용자 개인화 디렉티브 조회"""
        interests = await self._load_interests(user_id)
        return build_directive(interests, self.config)

    async def get_interest_analytics(self, user_id: str) -> InterestAnalytics:
        """사용자 관심사 분석 조회"""
        interests = await self._load_interests(user_id)
        result = compute_confidence(interests, self.config)

        return InterestAnalytics(
            user_id=user_id,
            total_interactions=interests.total_interactions,
            total_positive_feedback=interests.total_positive_feedback,
            total_negative_feedback=interests.total_negative_feedback,
            total_impressions=interests.total_impressions,
            engagement_rate=engagement_rate(interests),
            satisfaction_score=interests.satisfaction_score,
            personalization_confidence=result.confidence,
            has_significant_data=result.significant,
            preferred_keywords_count=len(interests.preferred_keywords),
            preferred_categories_count=len(interests.preferred_categories),
            recent_search_terms_count=len(interests.recent_search_terms),
            favorite_vendors_count=len(interests.favorite_vendors),
            top_keywords=interests.preferred_keywords[:ANALYTICS_TOP_KEYWORDS],
            top_categories=interests.preferred_categories[
                :ANALYTICS_TOP_CATEGORIES
            ],
            preferred_content_type=interests.preferred_content_type,
            created_at=interests.created_at,
            updated_at=interests.updated_at,
        )

    def clear_cache(self, user_id: Optional[str] = None) -> int:
        """캐시 비우기

        Returns:
            제거된 엔트리 수
        """
        if user_id is not None:
            removed = int(self.cache.evict(user_id))
        else:
            removed = self.cache.clear()
        logger.info(f"Cleared interest cache: user_id={user_id}, removed={removed}")
        return removed
