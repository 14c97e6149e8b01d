"""관심사 문서 저장소

InterestStore는 오케스트레이터와 캐시가 의존하는 저장소 인터페이스이며,
SqlInterestStore는 PostgreSQL ``user_interests`` 테이블 구현입니다.
"""

from typing import Any, Optional, Protocol

from pydantic import ValidationError
from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.logging import get_logger
from app.domains.personalization.config import (
    DEFAULT_CONFIG,
    PersonalizationConfig,
)
from app.domains.personalization.confidence import refresh_confidence
from app.domains.personalization.exceptions import StoreUnavailableError
from app.domains.personalization.models import UserInterestsDocument
from app.domains.personalization.schemas import UserInterests

logger = get_logger(__name__)


class InterestStore(Protocol):
    """관심사 문서 저장소 인터페이스

    구현체는 실패 시 StoreUnavailableError를 발생시켜야 합니다.
    """

    async def get(self, user_id: str) -> Optional[UserInterests]:
        """관심사 조회 (없으면 None)"""
        ...

    async def put(self, user_id: str, interests: UserInterests) -> None:
        """관심사 저장 (덮어쓰기)"""
        ...

    async def delete(self, user_id: str) -> None:
        """관심사 삭제 (계정 삭제 시)"""
        ...


class SqlInterestStore:
    """PostgreSQL 관심사 저장소

    호출마다 세션을 새로 열고 커밋합니다. 드라이버 오류와 손상된 문서는
    StoreUnavailableError로 변환됩니다.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        config: PersonalizationConfig = DEFAULT_CONFIG,
    ):
        self.session_maker = session_maker
        self.config = config

    async def get(self, user_id: str) -> Optional[UserInterests]:
        """관심사 조회

        저장된 신뢰도는 신뢰하지 않고 카운터로부터 다시 계산합니다.

        Args:
            user_id: 사용자 ID

        Returns:
            UserInterests 또는 None (저장된 문서 없음)

        Raises:
            StoreUnavailableError: DB 오류 또는 문서 복원 실패
        """
        try:
            async with self.session_maker() as session:
                result = await session.execute(
                    select(UserInterestsDocument.document).where(
                        UserInterestsDocument.user_id == user_id
                    )
                )
                document: Optional[dict[str, Any]] = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Failed to load interests: user_id={user_id}, {e}")
            raise StoreUnavailableError("get", user_id, str(e))

        if document is None:
            return None

        try:
            interests = UserInterests.from_document(
                user_id, document, self.config
            )
        except (ValidationError, TypeError, ValueError) as e:
            logger.error(
                f"Corrupted interests document: user_id={user_id}, {e}"
            )
            raise StoreUnavailableError("decode", user_id, str(e))

        return refresh_confidence(interests, self.config)

    async def put(self, user_id: str, interests: UserInterests) -> None:
        """관심사 저장

        ON CONFLICT DO UPDATE를 사용하여 원자적으로 덮어씁니다.

        Raises:
            StoreUnavailableError: DB 오류
        """
        document = interests.to_document()
        stmt = insert(UserInterestsDocument).values(
            user_id=user_id,
            document=document,
            created_at=interests.created_at,
            updated_at=interests.updated_at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id"],
            set_={
                "document": stmt.excluded.document,
                "updated_at": stmt.excluded.updated_at,
            },
        )

        try:
            async with self.session_maker() as session:
                await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to save interests: user_id={user_id}, {e}")
            raise StoreUnavailableError("put", user_id, str(e))

        logger.debug(
            f"Saved interests: user_id={user_id}, "
            f"interactions={interests.total_interactions}"
        )

    async def delete(self, user_id: str) -> None:
        """관심사 삭제 (없는 사용자는 무시)

        Raises:
            StoreUnavailableError: DB 오류
        """
        try:
            async with self.session_maker() as session:
                await session.execute(
                    delete(UserInterestsDocument).where(
                        UserInterestsDocument.user_id == user_id
                    )
                )
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(
                f"Failed to delete interests: user_id={user_id}, {e}"
            )
            raise StoreUnavailableError("delete", user_id, str(e))

        logger.info(f"Deleted interests: user_id={user_id}")
