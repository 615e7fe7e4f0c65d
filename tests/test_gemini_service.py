"""
Tests for the Gemini-backed sources. The Gemini model is always mocked.
"""

import os
import sys
from unittest.mock import Mock, patch

import pytest

# Add parent directory to path for imports
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from gemini_service import (
    KEYWORD_RESPONSE_SCHEMA,
    GeminiClient,
    GeminiKeywordExtractor,
    GeminiTextExtractor,
    classify_error,
    create_gemini_sources,
    load_api_key,
)
from models import Word


def gemini_response(text: str):
    """Mock of a generate_content response carrying text."""
    return Mock(parts=[Mock()], text=text)


class BlockedResponse:
    """A response whose prompt was blocked: no candidates, and .parts raises."""

    candidates = []

    @property
    def parts(self):
        raise ValueError("The `response.parts` quick accessor requires a single candidate")

    @property
    def text(self):
        raise ValueError("The `response.text` quick accessor requires a single candidate")


def blocked_response():
    return BlockedResponse()


@pytest.fixture
def model():
    return Mock()


@pytest.fixture
def sleep():
    return Mock()


@pytest.fixture
def client(model, sleep):
    return GeminiClient(model=model, sleep=sleep)


@pytest.mark.unit
class TestLoadApiKey:
    """API key lookup order."""

    def test_environment_variable_wins(self, monkeypatch, tmp_path):
        key_file = tmp_path / "gemini.api"
        key_file.write_text("file-key")
        monkeypatch.setenv("GEMINI_API_KEY", "env-key")
        assert load_api_key(str(key_file)) == "env-key"

    def test_falls_back_to_api_key_variable(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.setenv("API_KEY", "legacy-key")
        assert load_api_key("does-not-exist.api") == "legacy-key"

    def test_reads_key_file(self, monkeypatch, tmp_path):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.delenv("API_KEY", raising=False)
        key_file = tmp_path / "gemini.api"
        key_file.write_text("  file-key\n")
        assert load_api_key(str(key_file)) == "file-key"

    def test_missing_key_raises(self, monkeypatch, tmp_path):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.delenv("API_KEY", raising=False)
        with pytest.raises(FileNotFoundError, match="No Gemini API key"):
            load_api_key(str(tmp_path / "missing.api"))

    def test_empty_key_file_raises(self, monkeypatch, tmp_path):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.delenv("API_KEY", raising=False)
        key_file = tmp_path / "gemini.api"
        key_file.write_text("   ")
        with pytest.raises(ValueError, match="empty"):
            load_api_key(str(key_file))


@pytest.mark.unit
class TestClassifyError:
    @pytest.mark.parametrize(
        "message, category",
        [
            ("API key not valid. Please pass a valid API key.", "api_key_errors"),
            ("429 Resource has been exhausted (e.g. check quota).", "rate_limit_errors"),
            ("Connection reset by peer", "network_errors"),
            ("Deadline exceeded: timeout", "network_errors"),
            ("boom", "other_errors"),
        ],
    )
    def test_categories(self, message, category):
        assert classify_error(Exception(message)) == category


@pytest.mark.unit
class TestGeminiClientRetries:
    """Retry behaviour of GeminiClient.generate."""

    def test_success_on_first_attempt(self, client, model, sleep):
        model.generate_content.return_value = gemini_response("ok")
        assert client.generate("prompt").text == "ok"
        sleep.assert_not_called()

    def test_rate_limit_is_retried(self, client, model, sleep):
        model.generate_content.side_effect = [
            Exception("429 quota exceeded"),
            gemini_response("ok"),
        ]
        assert client.generate("prompt").text == "ok"
        assert model.generate_content.call_count == 2
        assert sleep.call_count == 1
        assert client.error_stats["rate_limit_errors"] == 1
        assert client.error_stats["total_retries"] == 1

    def test_other_errors_are_not_retried(self, client, model, sleep):
        model.generate_content.side_effect = Exception("boom")
        with pytest.raises(Exception, match="boom"):
            client.generate("prompt")
        assert model.generate_content.call_count == 1
        sleep.assert_not_called()

    def test_gives_up_after_retry_attempts(self, model, sleep):
        client = GeminiClient(model=model, sleep=sleep, retry_attempts=3)
        model.generate_content.side_effect = Exception("connection refused")
        with pytest.raises(Exception, match="connection refused"):
            client.generate("prompt")
        assert model.generate_content.call_count == 3
        assert sleep.call_count == 2
        assert client.total_errors() == 3

    def test_backoff_grows(self, model, sleep):
        client = GeminiClient(model=model, sleep=sleep, retry_attempts=3, base_retry_delay=1.0)
        model.generate_content.side_effect = Exception("network unreachable")
        with patch("gemini_service.random.uniform", return_value=0.0):
            with pytest.raises(Exception):
                client.generate("prompt")
        assert [c.args[0] for c in sleep.call_args_list] == [1.0, 2.0]

    def test_response_without_parts_has_empty_text(self):
        assert GeminiClient.response_text(Mock(parts=[])) == ""

    def test_blocked_response_has_empty_text(self):
        assert GeminiClient.response_text(blocked_response()) == ""

    def test_model_is_configured_from_api_key(self):
        with patch("gemini_service.genai") as genai:
            client = GeminiClient(api_key="secret", model_name="gemini-test")
        genai.configure.assert_called_once_with(api_key="secret")
        genai.GenerativeModel.assert_called_once_with("gemini-test")
        assert client.model is genai.GenerativeModel.return_value


@pytest.mark.unit
class TestGeminiTextExtractor:
    def test_sends_image_and_prompt(self, client, model, worksheet_image):
        model.generate_content.return_value = gemini_response("Chapter 3: Cells")
        extractor = GeminiTextExtractor(client)

        assert extractor.extract_text(worksheet_image) == "Chapter 3: Cells"

        contents = model.generate_content.call_args.args[0]
        assert contents[0] == {"mime_type": "image/png", "data": worksheet_image.data}
        assert "Extract all text" in contents[1]

    def test_empty_response_is_empty_text(self, client, model, worksheet_image):
        model.generate_content.return_value = Mock(parts=[])
        assert GeminiTextExtractor(client).extract_text(worksheet_image) == ""

    def test_blocked_prompt_is_empty_text(self, client, model, worksheet_image):
        model.generate_content.return_value = blocked_response()
        assert GeminiTextExtractor(client).extract_text(worksheet_image) == ""


@pytest.mark.unit
class TestGeminiKeywordExtractor:
    def test_requests_json_with_schema(self, client, model):
        model.generate_content.return_value = gemini_response(
            '[{"text": "cell", "value": 80}, {"text": "nucleus", "value": 40}]'
        )
        extractor = GeminiKeywordExtractor(client)

        words = extractor.extract_keywords("The nucleus controls the cell.")

        assert words == [Word("cell", 80.0), Word("nucleus", 40.0)]
        prompt = model.generate_content.call_args.args[0]
        assert "top 30" in prompt
        assert "The nucleus controls the cell." in prompt
        generation_config = model.generate_content.call_args.kwargs["generation_config"]
        assert generation_config["response_mime_type"] == "application/json"
        assert generation_config["response_schema"] is KEYWORD_RESPONSE_SCHEMA

    def test_malformed_response_gives_no_words(self, client, model):
        model.generate_content.return_value = gemini_response('[{"text": "cell"}]')
        assert GeminiKeywordExtractor(client).extract_keywords("text") == []

    def test_schema_requires_both_fields(self):
        assert KEYWORD_RESPONSE_SCHEMA["items"]["required"] == ["text", "value"]


@pytest.mark.unit
def test_create_gemini_sources_share_one_client(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "secret")
    with patch("gemini_service.genai"):
        text_source, keyword_source = create_gemini_sources()
    assert isinstance(text_source, GeminiTextExtractor)
    assert isinstance(keyword_source, GeminiKeywordExtractor)
    assert text_source.client is keyword_source.client
