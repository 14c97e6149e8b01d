"""관심사 변경 알림 채널

피드백이 저장소에 성공적으로 기록된 뒤 오케스트레이터가 publish하며,
구독자(예: 실시간 UI 갱신)는 폴링 없이 변경을 전달받습니다.
"""

import inspect
from typing import Awaitable, Callable, Union

from app.core.logging import get_logger
from app.domains.personalization.schemas import UserInterests

logger = get_logger(__name__)

InterestListener = Callable[
    [UserInterests], Union[None, Awaitable[None]]
]


class InterestChangeBroadcaster:
    """관심사 변경 publish/subscribe 채널

    구독자 예외는 로그만 남기고 다른 구독자와 호출자에게 전파하지 않습니다.
    """

    def __init__(self):
        self._listeners: list[InterestListener] = []

    def __len__(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: InterestListener) -> Callable[[], None]:
        """구독자 등록

        Returns:
            구독 해제 함수
        """
        self._listeners.append(listener)
        return lambda: self.unsubscribe(listener)

    def unsubscribe(self, listener: InterestListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def publish(self, interests: UserInterests) -> int:
        """변경된 관심사를 모든 구독자에게 전달

        Returns:
            정상 처리한 구독자 수
        """
        delivered = 0
        for listener in list(self._listeners):
            try:
                result = listener(interests)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception as e:
                logger.error(
                    f"Interest listener failed: user_id={interests.user_id}, "
                    f"{type(e).__name__}: {e}"
                )
        return delivered
