"""관심사 캐시 (TTL + LRU)

사용자별 ``(interests, fetched_at)`` 엔트리를 보관합니다. 피드백 반영 결과는
``put``으로 즉시 덮어쓰므로, 같은 사용자의 다음 요청은 TTL이나 저장소 쓰기
성공 여부와 무관하게 최신 관심사를 봅니다.
"""

from collections import OrderedDict
from datetime import datetime
from typing import Callable, NamedTuple, Optional

from app.core.logging import get_logger
from app.core.utils.datetime import now_utc, seconds_between
from app.domains.personalization.config import (
    DEFAULT_CONFIG,
    PersonalizationConfig,
)
from app.domains.personalization.confidence import refresh_confidence
from app.domains.personalization.exceptions import StoreUnavailableError
from app.domains.personalization.repository import InterestStore
from app.domains.personalization.schemas import UserInterests

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 2 * 60 * 60
DEFAULT_MAX_ENTRIES = 10_000


class CacheEntry(NamedTuple):
    interests: UserInterests
    fetched_at: datetime


class PersonalizationCache:
    """사용자 관심사 read-through / write-through 캐시

    Args:
        store: 관심사 저장소
        ttl_seconds: 엔트리 유효 시간
        max_entries: LRU 상한 (초과 시 가장 오래 사용되지 않은 엔트리 제거)
        clock: 현재 시각 함수 (테스트에서 교체)
        config: 신뢰도 재계산용 튜닝 파라미터
    """

    def __init__(
        self,
        store: InterestStore,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], datetime] = now_utc,
        config: PersonalizationConfig = DEFAULT_CONFIG,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self.clock = clock
        self.config = config
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._epoch = 0
        self._generations: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._entries

    def _is_fresh(self, entry: CacheEntry) -> bool:
        return seconds_between(entry.fetched_at, self.clock()) < self.ttl_seconds

    def peek(self, user_id: str) -> Optional[UserInterests]:
        """저장소 접근 없이 유효한 캐시 엔트리만 조회"""
        entry = self._entries.get(user_id)
        if entry is None or not self._is_fresh(entry):
            return None
        return entry.interests

    def generation(self, user_id: str) -> tuple[int, int]:
        """사용자 엔트리의 무효화 세대 (evict/clear 시 증가)"""
        return self._epoch, self._generations.get(user_id, 0)

    async def get(self, user_id: str, populate: bool = True) -> UserInterests:
        """관심사 조회 (캐시 우선)

        저장소에 문서가 없으면 빈 관심사 레코드를 반환합니다. ``populate``가
        False이면 캐시 미스 결과를 캐시에 넣지 않으며, 호출 측이 나중에
        ``fill``로 채울 수 있습니다.

        Raises:
            StoreUnavailableError: 저장소 조회 실패 (아무것도 캐시하지 않음)
        """
        entry = self._entries.get(user_id)
        if entry is not None:
            if self._is_fresh(entry):
                self._entries.move_to_end(user_id)
                return entry.interests
            self._entries.pop(user_id, None)

        generation = self.generation(user_id)
        try:
            loaded = await self.store.get(user_id)
        except StoreUnavailableError:
            raise
        except Exception as e:
            logger.error(f"Interest store read failed: user_id={user_id}, {e}")
            raise StoreUnavailableError("get", user_id, str(e))

        # 조회 중 같은 사용자의 피드백이 반영되었다면 그 값을 우선한다
        newer = self.peek(user_id)
        if newer is not None:
            return newer

        if loaded is None:
            interests = UserInterests.empty(user_id, now=self.clock())
            logger.debug(f"No stored interests, using empty: user_id={user_id}")
        else:
            interests = refresh_confidence(loaded, self.config)

        if populate:
            self.fill(user_id, interests, generation)
        return interests

    def fill(
        self,
        user_id: str,
        interests: UserInterests,
        generation: tuple[int, int],
    ) -> bool:
        """조회 결과를 캐시에 채우기

        ``generation`` 이후 엔트리가 제거되었거나 더 새로운 값이 들어왔다면
        채우지 않습니다. 삭제된 사용자의 관심사가 다시 캐시되는 것을 막습니다.

        Returns:
            캐시에 채웠는지 여부
        """
        if self.generation(user_id) != generation:
            logger.debug(
                f"Interest cache entry invalidated during load, "
                f"not caching: user_id={user_id}"
            )
            return False
        if self.peek(user_id) is not None:
            return False
        self._set(user_id, interests)
        return True

    def put(self, user_id: str, interests: UserInterests) -> None:
        """관심사 덮어쓰기 (fetched_at 초기화)"""
        self._set(user_id, interests)

    def evict(self, user_id: str) -> bool:
        """엔트리 제거 (진행 중인 조회 결과도 캐시되지 않음)

        Returns:
            제거된 엔트리가 있었는지 여부
        """
        self._generations[user_id] = self._generations.get(user_id, 0) + 1
        return self._entries.pop(user_id, None) is not None

    def clear(self) -> int:
        """전체 엔트리 제거

        Returns:
            제거된 엔트리 수
        """
        count = len(self._entries)
        self._entries.clear()
        self._epoch += 1
        self._generations.clear()
        return count

    def _set(self, user_id: str, interests: UserInterests) -> None:
        self._entries[user_id] = CacheEntry(interests, self.clock())
        self._entries.move_to_end(user_id)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Interest cache full, evicted: user_id={evicted}")
