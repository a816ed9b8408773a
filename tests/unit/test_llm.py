"""
Unit Tests for the Gemini Client

Tests for mock mode, message construction and the response cache. No test
here talks to the Gemini API.
"""
import pytest
from langchain_core.messages import HumanMessage, SystemMessage

from oncovector.core.llm import GeminiClient, GeminiConfig, GeminiModel, GeminiResponse


@pytest.fixture
def gemini_config() -> GeminiConfig:
    """Test Gemini config without credentials (mock mode)."""
    return GeminiConfig(
        api_key=None,
        model=GeminiModel.FLASH_2_5,
        temperature=0.1,
    )


class TestGeminiClient:

    def test_init_without_api_key(self, gemini_config):
        client = GeminiClient(gemini_config)
        assert not client.is_available

    @pytest.mark.asyncio
    async def test_mock_response_generation(self, gemini_config):
        client = GeminiClient(gemini_config)
        response = await client.generate_async("Identify the anatomy.")

        assert isinstance(response, GeminiResponse)
        assert response.is_mock
        assert response.error == "Gemini unavailable"
        assert "MOCK" in response.text

    def test_model_name_from_enum_or_string(self):
        assert GeminiClient(GeminiConfig(api_key=None))._model_name == "gemini-2.5-flash"
        assert GeminiClient(GeminiConfig(api_key=None, model="gemini-custom"))._model_name == "gemini-custom"

    def test_stats(self, gemini_config):
        stats = GeminiClient(gemini_config).get_stats()
        assert stats["is_available"] is False
        assert stats["request_count"] == 0
        assert stats["last_request"] is None

    def test_response_to_dict(self):
        response = GeminiResponse(text="Lung", model="gemini-2.5-flash", latency_ms=12.3456)
        data = response.to_dict()
        assert data["latency_ms"] == 12.35
        assert data["error"] is None


class TestMessageBuilding:

    def test_text_only(self):
        messages = GeminiClient._build_messages("prompt", "system", ())

        assert isinstance(messages[0], SystemMessage)
        assert isinstance(messages[1], HumanMessage)
        assert messages[1].content == "prompt"

    def test_images_become_data_uris(self):
        messages = GeminiClient._build_messages("prompt", None, [(b"abc", "image/png")])

        assert len(messages) == 1
        content = messages[0].content
        assert content[0] == {"type": "text", "text": "prompt"}
        assert content[1]["image_url"]["url"] == "data:image/png;base64,YWJj"


class TestResponseCache:

    def test_cache_key_ignores_whitespace(self, gemini_config):
        client = GeminiClient(gemini_config)
        assert client._get_cache_key("a  b\n c", None) == client._get_cache_key("a b c", None)

    def test_cache_key_includes_images(self, gemini_config):
        client = GeminiClient(gemini_config)
        plain = client._get_cache_key("prompt", None)
        with_image = client._get_cache_key("prompt", None, [(b"img", "image/png")])
        assert plain != with_image

    def test_cache_roundtrip(self, gemini_config):
        client = GeminiClient(gemini_config)
        client._add_to_cache("key", "Skin")
        assert client._get_from_cache("key") == "Skin"
        assert client._get_from_cache("missing") is None
