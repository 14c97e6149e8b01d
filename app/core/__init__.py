"""Core 모듈"""

from app.core.config import settings
from app.core.database import Base, async_session_maker
from app.core.exceptions import (
    BadRequestException,
    BaseAPIException,
    ErrorCode,
    InternalServerException,
    UnauthorizedException,
)
from app.core.logging import get_logger, setup_logging

__all__ = [
    "settings",
    "Base",
    "async_session_maker",
    "ErrorCode",
    "BaseAPIException",
    "BadRequestException",
    "UnauthorizedException",
    "InternalServerException",
    "get_logger",
    "setup_logging",
]
