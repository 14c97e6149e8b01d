"""테스트 설정"""

import asyncio
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Generator, Optional

import pytest
import pytest_asyncio
from docker import from_env
from docker.errors import DockerException
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from testcontainers.postgres import PostgresContainer

from app.core.config import settings
from app.core.database import Base
from app.domains.personalization.cache import PersonalizationCache
from app.domains.personalization.dependencies import get_orchestrator
from app.domains.personalization.exceptions import (
    BackendUnavailableError,
    StoreUnavailableError,
)
from app.domains.personalization.schemas import (
    CandidateSuggestion,
    FeedbackEvent,
    GenerationRequest,
    UserInterests,
)
from app.domains.personalization.service import SuggestionOrchestrator
from app.main import app

T0 = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)


def _is_docker_available() -> bool:
    """로컬 환경에서 Docker 접근 가능 여부 확인"""
    if os.getenv("FORCE_DOCKER_TESTS", "").lower() in {"1", "true"}:
        return True
    if os.getenv("SKIP_DOCKER_TESTS", "").lower() in {"1", "true"}:
        return False

    try:
        client = from_env()
        client.ping()
        return True
    except DockerException:
        return False
    except Exception:
        return False


DOCKER_AVAILABLE = _is_docker_available()


# ----------------------------------------------------------------------
# Fakes
# ----------------------------------------------------------------------


class FakeClock:
    """수동으로 진행시키는 시계"""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class InMemoryInterestStore:
    """메모리 관심사 저장소 (문서 형태로 보관)"""

    def __init__(self):
        self.documents: dict[str, dict[str, Any]] = {}
        self.fail_get = False
        self.fail_put = False
        self.fail_delete = False
        self.get_calls = 0
        self.put_calls = 0
        self.delete_calls = 0

    async def get(self, user_id: str) -> Optional[UserInterests]:
        self.get_calls += 1
        if self.fail_get:
            raise StoreUnavailableError("get", user_id, "simulated outage")
        document = self.documents.get(user_id)
        if document is None:
            return None
        return UserInterests.from_document(user_id, document)

    async def put(self, user_id: str, interests: UserInterests) -> None:
        self.put_calls += 1
        if self.fail_put:
            raise StoreUnavailableError("put", user_id, "simulated outage")
        self.documents[user_id] = interests.to_document()

    async def delete(self, user_id: str) -> None:
        self.delete_calls += 1
        if self.fail_delete:
            raise StoreUnavailableError("delete", user_id, "simulated outage")
        self.documents.pop(user_id, None)


class FakeBackend:
    """고정된 후보를 돌려주는 생성형 백엔드"""

    def __init__(self, candidates: Optional[list[CandidateSuggestion]] = None):
        self.candidates = list(candidates or [])
        self.error: Optional[Exception] = None
        self.delay = 0.0
        self.failures_before_success = 0
        self.requests: list[GenerationRequest] = []

    async def generate(
        self, request: GenerationRequest
    ) -> list[CandidateSuggestion]:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.failures_before_success > 0:
            self.failures_before_success -= 1
            raise BackendUnavailableError("simulated failure")
        if self.error is not None:
            raise self.error
        return list(self.candidates)


def make_event(**overrides: Any) -> FeedbackEvent:
    """피드백 이벤트 생성 헬퍼"""
    data: dict[str, Any] = {
        "user_id": "user-1",
        "content_type": "recipe",
        "action": "upvote",
        "keywords": ["tomato"],
        "category": "produce",
        "timestamp": T0,
    }
    data.update(overrides)
    return FeedbackEvent.model_validate(data)


def make_candidate(**overrides: Any) -> CandidateSuggestion:
    """후보 추천 생성 헬퍼"""
    data: dict[str, Any] = {
        "id": "c1",
        "content_type": "recipe",
        "base_relevance_score": 0.5,
        "keywords": [],
        "category": None,
        "payload": {"title": "Tomato salad"},
    }
    data.update(overrides)
    return CandidateSuggestion.model_validate(data)


# ----------------------------------------------------------------------
# Domain fixtures
# ----------------------------------------------------------------------


@pytest.fixture
def event_factory():
    """피드백 이벤트 팩토리"""
    return make_event


@pytest.fixture
def candidate_factory():
    """후보 추천 팩토리"""
    return make_candidate


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def interest_store() -> InMemoryInterestStore:
    return InMemoryInterestStore()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend(
        [
            make_candidate(
                id="recipe-1",
                base_relevance_score=0.7,
                keywords=["basil"],
                category="herbs",
            ),
            make_candidate(
                id="recipe-2",
                base_relevance_score=0.6,
                keywords=["tomato"],
                category="produce",
            ),
        ]
    )


@pytest.fixture
def cache(interest_store, clock) -> PersonalizationCache:
    return PersonalizationCache(interest_store, ttl_seconds=7200, clock=clock)


@pytest.fixture
def orchestrator(cache, backend, clock) -> SuggestionOrchestrator:
    return SuggestionOrchestrator(
        cache=cache,
        backend=backend,
        backend_timeout=1.0,
        max_retries=1,
        clock=clock,
    )


# ----------------------------------------------------------------------
# API fixtures
# ----------------------------------------------------------------------


@pytest_asyncio.fixture
async def client(orchestrator):
    """비동기 테스트 클라이언트 (메모리 저장소/백엔드 사용)"""
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport, base_url="http://test"
    ) as client:
        yield client

    await orchestrator.drain()
    app.dependency_overrides.clear()


@pytest.fixture
def api_key_header():
    """Internal API Key 헤더"""
    return {"X-Internal-Api-Key": settings.internal_api_key}


# ----------------------------------------------------------------------
# Database fixtures
# ----------------------------------------------------------------------


@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """PostgreSQL 테스트 컨테이너"""
    if not DOCKER_AVAILABLE:
        pytest.skip("Docker is not available; skipping container-based tests.")

    with PostgresContainer("postgres:16-alpine") as postgres:
        yield postgres


@pytest.fixture(scope="session")
def test_database_url(postgres_container: PostgresContainer) -> str:
    """테스트 데이터베이스 URL"""
    # asyncpg를 위한 URL 생성
    return str(
        postgres_container.get_connection_url().replace(
            "postgresql+psycopg2://", "postgresql+asyncpg://"
        )
    )


# NOTE:
# pytest-asyncio는 테스트마다 독립적인 event loop를 생성하므로
# async fixture는 모두 function 스코프로 유지
@pytest_asyncio.fixture
async def session_maker(test_database_url: str):
    """테스트 데이터베이스 세션 팩토리 (테스트마다 깨끗한 스키마)"""
    engine = create_async_engine(test_database_url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    maker: async_sessionmaker[AsyncSession] = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    yield maker

    await engine.dispose()
