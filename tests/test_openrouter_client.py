"""Tests for OpenRouter client."""

from unittest.mock import MagicMock, Mock, patch

import httpx
import pytest

from costsheet.llm.openrouter_client import OpenRouterClient


class TestOpenRouterClient:
    """Tests for OpenRouterClient."""

    def test_convert_messages_adds_system_prompt(self):
        """Test the system prompt becomes the first message."""
        client = OpenRouterClient(api_key="test-key")

        result = client._convert_messages(
            [{"role": "user", "content": "Classify these rows"}], "You classify rows."
        )

        assert result == [
            {"role": "system", "content": "You classify rows."},
            {"role": "user", "content": "Classify these rows"},
        ]

    def test_convert_messages_flattens_text_blocks(self):
        """Test Anthropic-style content blocks are joined into plain text."""
        client = OpenRouterClient(api_key="test-key")

        messages = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": "Part one."},
                    {"type": "image", "source": {}},
                    {"type": "text", "text": "Part two."},
                ],
            }
        ]
        result = client._convert_messages(messages, "")

        assert result == [{"role": "user", "content": "Part one. Part two."}]

    def test_convert_response(self):
        """Test a chat completion is converted to an LLMResponse."""
        client = OpenRouterClient(api_key="test-key")

        data = {
            "choices": [
                {"message": {"content": '{"lineItems": []}'}, "finish_reason": "length"}
            ],
            "usage": {"prompt_tokens": 900, "completion_tokens": 12, "native_tokens_cost": 0.01},
        }
        response = client._convert_response(data)

        assert response.text == '{"lineItems": []}'
        assert response.stop_reason == "max_tokens"
        assert response.usage == {
            "input_tokens": 900,
            "output_tokens": 12,
            "native_tokens_cost": 0.01,
        }

    def test_convert_response_without_content(self):
        client = OpenRouterClient(api_key="test-key")

        response = client._convert_response({"choices": [{"message": {"content": None}}]})

        assert response.content == []
        assert response.text == ""
        assert response.stop_reason == "end_turn"
        assert response.usage is None

    def test_convert_response_missing_choices(self):
        """Test an unexpected payload raises a lookup error."""
        client = OpenRouterClient(api_key="test-key")

        with pytest.raises(KeyError):
            client._convert_response({"error": "overloaded"})

    def test_create_message_posts_json_mode(self):
        """Test the request payload and headers."""
        client = OpenRouterClient(api_key="test-key", base_url="https://example.test/v1")

        http_response = Mock()
        http_response.json.return_value = {
            "choices": [{"message": {"content": "{}"}, "finish_reason": "stop"}]
        }
        http_client = MagicMock()
        http_client.__enter__.return_value.post.return_value = http_response

        with patch("costsheet.llm.openrouter_client.httpx.Client", return_value=http_client):
            client.create_message(
                messages=[{"role": "user", "content": "rows"}],
                system="system",
                max_tokens=100,
                model="anthropic/claude-3.5-sonnet",
                json_mode=True,
            )

        post = http_client.__enter__.return_value.post
        url = post.call_args.args[0]
        kwargs = post.call_args.kwargs
        assert url == "https://example.test/v1/chat/completions"
        assert kwargs["headers"]["Authorization"] == "Bearer test-key"
        assert kwargs["json"]["response_format"] == {"type": "json_object"}
        assert kwargs["json"]["max_tokens"] == 100
        http_response.raise_for_status.assert_called_once()

    def test_create_message_raises_http_errors(self):
        """Test HTTP errors propagate for the oracle to classify."""
        client = OpenRouterClient(api_key="test-key")

        request = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")
        http_response = Mock()
        http_response.raise_for_status.side_effect = httpx.HTTPStatusError(
            "402", request=request, response=httpx.Response(402, request=request)
        )
        http_client = MagicMock()
        http_client.__enter__.return_value.post.return_value = http_response

        with patch("costsheet.llm.openrouter_client.httpx.Client", return_value=http_client):
            with pytest.raises(httpx.HTTPStatusError):
                client.create_message(
                    messages=[{"role": "user", "content": "rows"}],
                    system="",
                    max_tokens=100,
                    model="m",
                )
