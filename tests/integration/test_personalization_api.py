"""Personalization API 통합 테스트 - 엔드포인트, 인증, 오류 응답 검증"""

import pytest

from app.domains.personalization.exceptions import BackendUnavailableError

BASE = "/api/v1/personalization"

pytestmark = pytest.mark.integration


def _feedback(**overrides):
    payload = {
        "userId": "user-1",
        "contentType": "recipe",
        "action": "upvote",
        "keywords": ["Tomato"],
        "category": "produce",
    }
    payload.update(overrides)
    return payload


class TestAuthenticationRequired:
    """API Key 인증 필수 테스트"""

    @pytest.mark.asyncio
    async def test_missing_api_key_returns_422(self, client):
        """API Key 없이 요청하면 422 반환"""
        response = await client.post(
            f"{BASE}/suggestions", json={"user_id": "user-1"}
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_invalid_api_key_returns_401(self, client):
        """잘못된 API Key로 요청하면 401 반환"""
        headers = {"X-Internal-Api-Key": "invalid-key"}
        response = await client.get(
            f"{BASE}/users/user-1/context", headers=headers
        )

        assert response.status_code == 401
        data = response.json()
        assert data["success"] is False
        assert data["error"]["code"] == "INVALID_API_KEY"


class TestSuggestionsAPI:
    """추천 요청 API 테스트"""

    @pytest.mark.asyncio
    async def test_cold_user_suggestions(self, client, api_key_header):
        response = await client.post(
            f"{BASE}/suggestions",
            json={
                "user_id": "user-1",
                "context": {"caption": "Fresh basil", "vendorId": "v1"},
            },
            headers=api_key_header,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["data"]["user_id"] == "user-1"
        assert data["data"]["personalized"] is False
        suggestions = data["data"]["suggestions"]
        assert [s["id"] for s in suggestions] == ["recipe-1", "recipe-2"]
        assert suggestions[0]["finalScore"] == 0.7
        assert suggestions[0]["payload"] == {"title": "Tomato salad"}

    @pytest.mark.asyncio
    async def test_backend_failure_returns_empty_list(
        self, client, api_key_header, backend
    ):
        """백엔드 실패도 200과 빈 목록"""
        backend.error = BackendUnavailableError("down")

        response = await client.post(
            f"{BASE}/suggestions",
            json={"user_id": "user-1"},
            headers=api_key_header,
        )

        assert response.status_code == 200
        assert response.json()["data"]["suggestions"] == []

    @pytest.mark.asyncio
    async def test_invalid_context_returns_422(self, client, api_key_header):
        response = await client.post(
            f"{BASE}/suggestions",
            json={"user_id": "user-1", "context": {"limit": 0}},
            headers=api_key_header,
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_request_id_header_propagated(self, client, api_key_header):
        response = await client.post(
            f"{BASE}/suggestions",
            json={"user_id": "user-1"},
            headers={**api_key_header, "X-Request-ID": "req-123"},
        )

        assert response.headers["X-Request-ID"] == "req-123"
        assert "X-Process-Time" in response.headers


class TestFeedbackAPI:
    """피드백 API 테스트"""

    @pytest.mark.asyncio
    async def test_feedback_accepted(
        self, client, api_key_header, orchestrator, interest_store
    ):
        response = await client.post(
            f"{BASE}/feedback", json=_feedback(), headers=api_key_header
        )

        assert response.status_code == 202
        data = response.json()["data"]
        assert data == {
            "user_id": "user-1",
            "action": "upvote",
            "content_type": "recipe",
            "accepted": True,
        }

        await orchestrator.drain()
        assert interest_store.documents["user-1"]["preferredKeywords"] == [
            "tomato"
        ]

    @pytest.mark.asyncio
    async def test_malformed_feedback_returns_400(
        self, client, api_key_header, orchestrator
    ):
        response = await client.post(
            f"{BASE}/feedback",
            json=_feedback(action="like"),
            headers=api_key_header,
        )

        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["error"]["code"] == "MALFORMED_FEEDBACK_EVENT"
        assert data["error"]["detail"]["errors"]
        assert orchestrator.pending_tasks == 0

    @pytest.mark.asyncio
    async def test_feedback_then_analytics(
        self, client, api_key_header, orchestrator
    ):
        for _ in range(5):
            await client.post(
                f"{BASE}/feedback", json=_feedback(), headers=api_key_header
            )
        await client.post(
            f"{BASE}/feedback",
            json=_feedback(action="view"),
            headers=api_key_header,
        )
        await orchestrator.drain()

        response = await client.get(
            f"{BASE}/users/user-1/analytics", headers=api_key_header
        )

        assert response.status_code == 200
        analytics = response.json()["data"]
        assert analytics["total_interactions"] == 5
        assert analytics["total_impressions"] == 1
        assert analytics["has_significant_data"] is True
        assert analytics["top_keywords"] == ["tomato"]
        assert analytics["top_categories"] == ["produce"]

    @pytest.mark.asyncio
    async def test_personalized_after_feedback(
        self, client, api_key_header, orchestrator
    ):
        for _ in range(10):
            await client.post(
                f"{BASE}/feedback", json=_feedback(), headers=api_key_header
            )
        await orchestrator.drain()

        response = await client.post(
            f"{BASE}/suggestions",
            json={"user_id": "user-1"},
            headers=api_key_header,
        )

        data = response.json()["data"]
        assert data["personalized"] is True
        assert data["suggestions"][0]["id"] == "recipe-2"


class TestUserAPI:
    """사용자별 컨텍스트/삭제 API 테스트"""

    @pytest.mark.asyncio
    async def test_context_for_new_user(self, client, api_key_header):
        response = await client.get(
            f"{BASE}/users/new-user/context", headers=api_key_header
        )

        assert response.status_code == 200
        directive = response.json()["data"]
        assert directive["tier"] == "minimal"
        assert directive["significant"] is False
        assert directive["preferred_keywords"] == []

    @pytest.mark.asyncio
    async def test_delete_user(
        self, client, api_key_header, orchestrator, interest_store
    ):
        await client.post(
            f"{BASE}/feedback", json=_feedback(), headers=api_key_header
        )
        await orchestrator.drain()

        response = await client.delete(
            f"{BASE}/users/user-1", headers=api_key_header
        )

        assert response.status_code == 204
        assert "user-1" not in interest_store.documents

    @pytest.mark.asyncio
    async def test_delete_store_failure_returns_500(
        self, client, api_key_header, interest_store
    ):
        interest_store.fail_delete = True

        response = await client.delete(
            f"{BASE}/users/user-1", headers=api_key_header
        )

        assert response.status_code == 500
        data = response.json()
        assert data["error"]["code"] == "INTEREST_STORE_UNAVAILABLE"
        assert data["error"]["detail"]["operation"] == "delete"


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "healthy"
        assert data["interest_cache_entries"] == 0
        assert data["pending_feedback_tasks"] == 0

    @pytest.mark.asyncio
    async def test_health_reports_cache_entries(
        self, client, api_key_header
    ):
        await client.get(
            f"{BASE}/users/user-1/context", headers=api_key_header
        )

        response = await client.get("/health")

        assert response.json()["data"]["interest_cache_entries"] == 1
