"""마이그레이션 자동 실행 유틸리티

서버 시작 시 Alembic 마이그레이션을 자동으로 확인하고 업데이트합니다.
"""

from pathlib import Path
from typing import Optional

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy import create_engine

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[2]


def sync_database_url(database_url: Optional[str] = None) -> str:
    """async URL을 sync URL로 변환 (alembic은 sync 연결 사용)"""
    url = database_url or settings.database_url
    return url.replace("+asyncpg", "+psycopg2")


def get_alembic_config(database_url: Optional[str] = None) -> Config:
    """Alembic 설정 객체 반환

    Args:
        database_url: 대상 DB URL (기본값: 설정의 database_url)
    """
    config = Config(str(PROJECT_ROOT / "alembic.ini"))
    config.set_main_option("script_location", str(PROJECT_ROOT / "migrations"))
    config.set_main_option("sqlalchemy.url", sync_database_url(database_url))
    config.attributes["configure_logger"] = False
    return config


def get_current_revision(database_url: Optional[str] = None) -> Optional[str]:
    """현재 데이터베이스의 마이그레이션 버전 조회"""
    try:
        engine = create_engine(sync_database_url(database_url))
        try:
            with engine.connect() as conn:
                context = MigrationContext.configure(conn)
                rev = context.get_current_revision()
                return str(rev) if rev else None
        finally:
            engine.dispose()
    except Exception as e:
        logger.warning(f"Failed to read current migration revision: {e}")
        return None


def get_head_revision() -> Optional[str]:
    """최신 마이그레이션 버전 조회"""
    script = ScriptDirectory.from_config(get_alembic_config())
    head = script.get_current_head()
    return str(head) if head else None


def check_migration_status(database_url: Optional[str] = None) -> dict:
    """마이그레이션 상태 확인

    Returns:
        dict: current (현재 버전), head (최신 버전), is_up_to_date (최신 여부)
    """
    current = get_current_revision(database_url)
    head = get_head_revision()

    return {
        "current": current,
        "head": head,
        "is_up_to_date": current == head,
    }


def run_migrations(database_url: Optional[str] = None) -> bool:
    """마이그레이션 실행 (head까지)

    Returns:
        bool: 성공 여부
    """
    try:
        status = check_migration_status(database_url)

        if status["is_up_to_date"]:
            logger.info(
                f"✅ Migrations up to date (revision: {status['current']})"
            )
            return True

        logger.info(
            f"🔄 Upgrading migrations ({status['current']} → {status['head']})"
        )
        command.upgrade(get_alembic_config(database_url), "head")

        logger.info(f"✅ Migrations applied (revision: {status['head']})")
        return True

    except Exception as e:
        logger.error(f"❌ Migration failed: {e}")
        return False


def run_migrations_on_startup(auto_migrate: bool = True) -> None:
    """서버 시작 시 마이그레이션 확인 및 실행

    Args:
        auto_migrate: True면 자동 마이그레이션, False면 상태만 확인

    Raises:
        RuntimeError: 프로덕션 환경에서 마이그레이션 확인 실패
    """
    try:
        status = check_migration_status()

        if status["is_up_to_date"]:
            logger.info(
                f"✅ Migration status: up to date "
                f"(revision: {status['current']})"
            )
            return

        if status["current"] is None:
            logger.warning("⚠️ No migration history found in database")
        else:
            logger.warning(
                f"⚠️ Migrations behind "
                f"(current: {status['current']}, head: {status['head']})"
            )

        if auto_migrate and not run_migrations():
            raise RuntimeError("Alembic upgrade failed")

    except Exception as e:
        logger.error(f"❌ Migration check failed: {e}")
        # 마이그레이션 실패해도 서버는 시작 (개발 환경 등을 위해)
        if settings.is_production:
            raise RuntimeError(
                "Migration check failed in production"
            ) from e
        logger.warning("⚠️ Continuing startup outside production")
