"""Personalization 도메인 모델 정의

사용자 관심사 레코드는 camelCase JSON 문서 하나로 저장됩니다.
문서의 구조는 UserInterests 스키마가 소유하며, 테이블은 키와 시각만 관리합니다.
"""

from datetime import datetime

from sqlalchemy import DateTime, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class UserInterestsDocument(Base):
    """사용자 관심사 문서"""

    __tablename__ = "user_interests"

    user_id: Mapped[str] = mapped_column(
        String(128), primary_key=True, comment="앱 백엔드 사용자 ID"
    )
    document: Mapped[dict] = mapped_column(
        JSONB, nullable=False, comment="관심사 레코드 (camelCase JSON)"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        comment="생성 일시",
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
        comment="수정 일시",
    )

    def __repr__(self) -> str:
        return f"<UserInterestsDocument(user_id={self.user_id})>"
