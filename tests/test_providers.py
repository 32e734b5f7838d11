"""Tests for the HTTP provider adapters against a mocked transport."""

import json

import httpx
import pytest

from glassvoice.config import ProviderConfig
from glassvoice.exceptions import ProviderError, ProviderUnavailable
from glassvoice.providers import (
    AnthropicProvider,
    DeepgramProvider,
    OpenAICompatibleProvider,
    build_providers,
    create_provider,
)
from glassvoice.providers.base import extract_json_object, intent_result_from_payload


def make_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def chat_response(content: str) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})


def make_openai(handler, api_key: str = "sk-test") -> OpenAICompatibleProvider:
    return OpenAICompatibleProvider(
        "groq", api_key, "https://llm.test/v1", "test-model", client=make_client(handler)
    )


class TestJsonParsing:
    def test_plain_object(self):
        assert extract_json_object('{"intent": "greeting"}', "groq") == {"intent": "greeting"}

    def test_wrapped_in_prose_and_fences(self):
        text = 'Sure!\n```json\n{"intent": "search_orders", "confidence": 0.9}\n```'
        assert extract_json_object(text, "groq")["intent"] == "search_orders"

    def test_no_object(self):
        with pytest.raises(ProviderError, match="no JSON object"):
            extract_json_object("I think it's a greeting", "groq")

    def test_malformed(self):
        with pytest.raises(ProviderError, match="malformed JSON"):
            extract_json_object('{"intent": greeting}', "groq")


class TestIntentPayload:
    def test_full_payload(self):
        result = intent_result_from_payload(
            {
                "intent": "CREATE_ORDER",
                "confidence": 0.93,
                "parameters": {"glassType": "tempered", "quantity": None},
                "emotion": "excited",
                "context": {"conversationPhase": "processing"},
                "requiresUserInput": True,
                "naturalResponse": "Let's get that started.",
            },
            "groq",
        )
        assert result.intent_name == "CREATE_ORDER"
        assert result.confidence == 0.93
        assert result.entities == {"glassType": "tempered"}
        assert result.phase == "processing"
        assert result.requires_input is True
        assert result.reply == "Let's get that started."

    def test_confidence_clamped(self):
        result = intent_result_from_payload({"intent": "greeting", "confidence": 1.7}, "groq")
        assert result.confidence == 1.0

    def test_missing_confidence_defaults(self):
        result = intent_result_from_payload({"intent": "greeting"}, "groq")
        assert result.confidence == 0.5

    def test_missing_intent(self):
        with pytest.raises(ProviderError, match="no intent name"):
            intent_result_from_payload({"confidence": 0.9}, "groq")

    def test_non_numeric_confidence(self):
        with pytest.raises(ProviderError, match="non-numeric confidence"):
            intent_result_from_payload({"intent": "greeting", "confidence": "high"}, "groq")


class TestHttpErrorMapping:
    @pytest.mark.asyncio
    async def test_no_api_key_is_unavailable(self):
        provider = make_openai(lambda request: chat_response("{}"), api_key="")
        with pytest.raises(ProviderUnavailable, match="no API key"):
            await provider.classify_intent("hi", [])

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [401, 403])
    async def test_auth_rejected(self, status):
        provider = make_openai(lambda request: httpx.Response(status))
        with pytest.raises(ProviderUnavailable, match="authentication rejected"):
            await provider.classify_intent("hi", [])

    @pytest.mark.asyncio
    async def test_rate_limited(self):
        provider = make_openai(lambda request: httpx.Response(429))
        with pytest.raises(ProviderUnavailable, match="rate limited"):
            await provider.classify_intent("hi", [])

    @pytest.mark.asyncio
    async def test_server_error(self):
        provider = make_openai(lambda request: httpx.Response(500, text="oops"))
        with pytest.raises(ProviderError, match="HTTP 500") as exc_info:
            await provider.classify_intent("hi", [])
        assert not isinstance(exc_info.value, ProviderUnavailable)

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("too slow", request=request)

        provider = make_openai(handler)
        with pytest.raises(ProviderUnavailable, match="timed out"):
            await provider.classify_intent("hi", [])

    @pytest.mark.asyncio
    async def test_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        provider = make_openai(handler)
        with pytest.raises(ProviderUnavailable, match="unreachable"):
            await provider.classify_intent("hi", [])

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        provider = make_openai(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(ProviderError, match="not JSON"):
            await provider.classify_intent("hi", [])


class TestOpenAICompatible:
    @pytest.mark.asyncio
    async def test_classify_intent(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
            return chat_response('{"intent": "search_orders", "confidence": 0.88}')

        provider = make_openai(handler)
        result = await provider.classify_intent("show pending orders", ["User: hi"])
        assert result.intent_name == "search_orders"
        assert result.confidence == 0.88
        assert result.provider_id == "groq"
        assert seen["url"] == "https://llm.test/v1/chat/completions"
        assert seen["auth"] == "Bearer sk-test"
        assert seen["body"]["response_format"] == {"type": "json_object"}
        assert "show pending orders" in seen["body"]["messages"][1]["content"]

    @pytest.mark.asyncio
    async def test_generate_reply_extracts_marker(self):
        provider = make_openai(
            lambda request: chat_response("Here they are! [ACTION:search_orders]")
        )
        reply = await provider.generate_reply("show orders", "search_orders", [])
        assert reply.text == "Here they are!"
        assert reply.suggested_action == "search_orders"
        assert reply.confidence == 0.9

    @pytest.mark.asyncio
    async def test_empty_reply_is_error(self):
        provider = make_openai(lambda request: chat_response("[ACTION:end_conversation]"))
        with pytest.raises(ProviderError, match="empty reply"):
            await provider.generate_reply("bye", "goodbye", [])

    @pytest.mark.asyncio
    async def test_unexpected_shape(self):
        provider = make_openai(lambda request: httpx.Response(200, json={"choices": []}))
        with pytest.raises(ProviderError, match="unexpected chat completion shape"):
            await provider.generate_reply("hi", "greeting", [])

    @pytest.mark.asyncio
    async def test_transcribe(self):
        def handler(request):
            assert request.url.path == "/v1/audio/transcriptions"
            return httpx.Response(200, json={"text": " create a new order "})

        provider = make_openai(handler)
        result = await provider.transcribe(b"RIFF....")
        assert result.text == "create a new order"

    @pytest.mark.asyncio
    async def test_transcribe_empty_audio(self):
        provider = make_openai(lambda request: httpx.Response(200, json={"text": "x"}))
        with pytest.raises(ProviderError, match="empty audio"):
            await provider.transcribe(b"")


class TestAnthropic:
    def make_provider(self, handler) -> AnthropicProvider:
        return AnthropicProvider(
            "ak-test", "https://anthropic.test", "test-model", client=make_client(handler)
        )

    @pytest.mark.asyncio
    async def test_classify_uses_messages_api(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["key"] = request.headers["x-api-key"]
            seen["version"] = request.headers["anthropic-version"]
            return httpx.Response(
                200,
                json={"content": [{"type": "text", "text": '{"intent": "get_quote", "confidence": 0.7}'}]},
            )

        result = await self.make_provider(handler).classify_intent("how much", [])
        assert result.intent_name == "get_quote"
        assert result.provider_id == "anthropic"
        assert seen == {"path": "/v1/messages", "key": "ak-test", "version": "2023-06-01"}

    @pytest.mark.asyncio
    async def test_transcribe_not_supported(self):
        provider = self.make_provider(lambda request: httpx.Response(200))
        with pytest.raises(ProviderUnavailable, match="not supported"):
            await provider.transcribe(b"RIFF")


class TestDeepgram:
    def make_provider(self, handler) -> DeepgramProvider:
        return DeepgramProvider("dg-test", "https://deepgram.test", client=make_client(handler))

    @pytest.mark.asyncio
    async def test_transcribe(self):
        def handler(request):
            assert request.headers["authorization"] == "Token dg-test"
            assert request.url.params["model"] == "nova-2"
            return httpx.Response(
                200,
                json={
                    "results": {
                        "channels": [
                            {"alternatives": [{"transcript": "check order 3", "confidence": 0.97}]}
                        ]
                    }
                },
            )

        result = await self.make_provider(handler).transcribe(b"RIFF....")
        assert result.text == "check order 3"
        assert result.confidence == 0.97
        assert result.provider_id == "deepgram"

    @pytest.mark.asyncio
    async def test_unexpected_shape(self):
        provider = self.make_provider(lambda request: httpx.Response(200, json={"results": {}}))
        with pytest.raises(ProviderError, match="unexpected transcription shape"):
            await provider.transcribe(b"RIFF")

    @pytest.mark.asyncio
    async def test_classify_not_supported(self):
        provider = self.make_provider(lambda request: httpx.Response(200))
        with pytest.raises(ProviderUnavailable):
            await provider.classify_intent("hi", [])


class TestRegistry:
    def test_providers_without_keys_are_skipped(self):
        config = ProviderConfig(
            enabled=("groq", "anthropic", "openai"),
            groq_api_key="",
            anthropic_api_key="ak",
            openai_api_key="sk",
        )
        providers = build_providers(config)
        assert [p.provider_id for p in providers] == ["anthropic", "openai"]

    def test_priority_follows_enabled_order(self):
        config = ProviderConfig(
            enabled=("openai", "groq"), groq_api_key="gk", openai_api_key="sk"
        )
        assert [p.provider_id for p in build_providers(config)] == ["openai", "groq"]

    def test_unknown_provider(self):
        with pytest.raises(KeyError, match="not registered"):
            create_provider("watson", ProviderConfig())

    @pytest.mark.asyncio
    async def test_shared_client_not_closed(self):
        client = make_client(lambda request: chat_response("{}"))
        provider = OpenAICompatibleProvider("groq", "k", "https://llm.test/v1", "m", client=client)
        await provider.aclose()
        assert not client.is_closed
        await client.aclose()
