"""LLM 추천 백엔드 테스트"""

import json
from unittest.mock import AsyncMock, patch

import pytest

from app.core.llm import LLMProviderError, LLMResult
from app.domains.personalization.exceptions import BackendUnavailableError
from app.domains.personalization.schemas import (
    ContentType,
    DirectiveTier,
    GenerationRequest,
    MediaContext,
    PersonalizationDirective,
)
from app.domains.suggestions.backend import (
    LLMSuggestionBackend,
    build_messages,
    parse_candidates,
    render_personalization,
)

MINIMAL = PersonalizationDirective(
    tier=DirectiveTier.MINIMAL,
    significant=False,
    confidence=0.0,
    satisfaction_score=0.0,
    total_interactions=0,
)

RICH = PersonalizationDirective(
    tier=DirectiveTier.RICH,
    significant=True,
    confidence=0.8,
    satisfaction_score=1.0,
    total_interactions=10,
    preferred_keywords=["tomato", "basil"],
    preferred_categories=["produce"],
    recent_search_terms=["heirloom"],
    favorite_vendors=["v1"],
)


def _item(id_: str, content_type: str = "recipe", score: float = 0.6) -> dict:
    return {
        "id": id_,
        "contentType": content_type,
        "baseRelevanceScore": score,
        "keywords": ["Tomato"],
        "category": "produce",
        "payload": {"title": f"Item {id_}"},
    }


def _llm_result(content: str) -> LLMResult:
    return LLMResult(
        content=content,
        model="gpt-4.1-mini",
        input_tokens=120,
        output_tokens=80,
    )


def _request(directive=MINIMAL, **context) -> GenerationRequest:
    return GenerationRequest(
        user_id="user-1",
        media_context=MediaContext(caption="Heirloom tomatoes", **context),
        directive=directive,
    )


@pytest.fixture
def backend():
    return LLMSuggestionBackend(model="gpt-4.1-mini", max_candidates=5)


class TestPrompt:
    """프롬프트 구성 테스트"""

    def test_minimal_directive_has_no_preferences(self):
        text = render_personalization(MINIMAL)

        assert "little feedback" in text
        assert "Preferred keywords" not in text

    def test_rich_directive_lists_preferences(self):
        text = render_personalization(RICH)

        assert "confidence 0.80" in text
        assert "tomato, basil" in text
        assert "produce" in text
        assert "heirloom" in text

    def test_messages_include_context(self):
        messages = build_messages(
            _request(RICH, keywords=["Tomato"], content_types=["faq"]), limit=3
        )

        assert [m.role for m in messages] == ["system", "user"]
        user_prompt = messages[1].content
        assert "up to 3 items" in user_prompt
        assert '"Heirloom tomatoes"' in user_prompt
        assert "Requested content types: faq" in user_prompt
        assert "Preferred keywords: tomato, basil" in user_prompt


class TestParseCandidates:
    """응답 파싱 테스트"""

    def test_plain_array(self):
        assert parse_candidates(json.dumps([_item("a")])) == [_item("a")]

    def test_code_fence(self):
        raw = "```json\n" + json.dumps([_item("a")]) + "\n```"
        assert parse_candidates(raw) == [_item("a")]

    def test_wrapped_object(self):
        raw = json.dumps({"suggestions": [_item("a"), "junk"]})
        assert parse_candidates(raw) == [_item("a")]

    @pytest.mark.parametrize("raw", ["not json", '{"items": []}', "42"])
    def test_invalid(self, raw):
        with pytest.raises(ValueError):
            parse_candidates(raw)


class TestLLMSuggestionBackend:
    """생성 흐름 테스트"""

    @pytest.mark.asyncio
    async def test_generate_candidates(self, backend):
        content = json.dumps([_item("a", score=0.7), _item("b", "faq", 0.4)])
        with patch(
            "app.domains.suggestions.backend.acompletion_raw",
            new_callable=AsyncMock,
        ) as mock_completion:
            mock_completion.return_value = _llm_result(content)

            candidates = await backend.generate(_request())

        assert [c.id for c in candidates] == ["a", "b"]
        assert candidates[0].keywords == ("tomato",)
        assert candidates[1].content_type == ContentType.FAQ
        assert candidates[0].payload == {"title": "Item a"}

        kwargs = mock_completion.call_args.kwargs
        assert kwargs["model"] == "gpt-4.1-mini"
        assert kwargs["max_tokens"] == 800

    @pytest.mark.asyncio
    async def test_malformed_items_dropped(self, backend):
        broken = _item("bad", score=1.7)
        missing = {"id": "x"}
        content = json.dumps([broken, missing, _item("ok")])
        with patch(
            "app.domains.suggestions.backend.acompletion_raw",
            new_callable=AsyncMock,
            return_value=_llm_result(content),
        ):
            candidates = await backend.generate(_request())

        assert [c.id for c in candidates] == ["ok"]

    @pytest.mark.asyncio
    async def test_unrequested_content_type_filtered(self, backend):
        content = json.dumps([_item("r"), _item("f", "faq")])
        with patch(
            "app.domains.suggestions.backend.acompletion_raw",
            new_callable=AsyncMock,
            return_value=_llm_result(content),
        ):
            candidates = await backend.generate(
                _request(content_types=["faq"])
            )

        assert [c.id for c in candidates] == ["f"]

    @pytest.mark.asyncio
    async def test_limit_applied(self):
        backend = LLMSuggestionBackend(model="gpt-4.1-mini", max_candidates=2)
        content = json.dumps([_item(str(i)) for i in range(6)])
        with patch(
            "app.domains.suggestions.backend.acompletion_raw",
            new_callable=AsyncMock,
            return_value=_llm_result(content),
        ):
            candidates = await backend.generate(_request(limit=4))

        assert [c.id for c in candidates] == ["0", "1"]

    @pytest.mark.asyncio
    async def test_provider_error_becomes_backend_unavailable(self, backend):
        with patch(
            "app.domains.suggestions.backend.acompletion_raw",
            new_callable=AsyncMock,
            side_effect=LLMProviderError(
                provider="gpt-4.1-mini", original_error="rate limited"
            ),
        ):
            with pytest.raises(BackendUnavailableError) as exc_info:
                await backend.generate(_request())

        assert exc_info.value.detail_info["backend"] == "gpt-4.1-mini"
        assert "rate limited" in exc_info.value.detail_info["info"]

    @pytest.mark.asyncio
    async def test_unparseable_response(self, backend):
        with patch(
            "app.domains.suggestions.backend.acompletion_raw",
            new_callable=AsyncMock,
            return_value=_llm_result("Sorry, I cannot help with that."),
        ):
            with pytest.raises(BackendUnavailableError) as exc_info:
                await backend.generate(_request())

        assert "invalid response" in exc_info.value.detail_info["info"]
