"""Tests for the Gemini client: request building, citation extraction, retries and truncation."""

import asyncio
from unittest.mock import AsyncMock, Mock, patch

import pytest
from google.genai import errors, types

from paws4life.clients.gemini import GeminiClient, GeminiConfig
from paws4life.models.llm import GenerationRequest, LLMMessage
from paws4life.models.messages import GeoPoint, LocationCitation, WebCitation


def make_response(text: str | None = "Answer", chunks: list[types.GroundingChunk] | None = None):
    parts = [types.Part(text=text)] if text is not None else []
    return types.GenerateContentResponse(
        candidates=[
            types.Candidate(
                content=types.Content(role="model", parts=parts),
                grounding_metadata=types.GroundingMetadata(grounding_chunks=chunks) if chunks is not None else None,
            )
        ],
        usage_metadata=types.GenerateContentResponseUsageMetadata(
            prompt_token_count=10, candidates_token_count=5, total_token_count=15
        ),
        model_version="gemini-test",
    )


def make_client(config: GeminiConfig | None = None) -> GeminiClient:
    with (
        patch.dict("os.environ", {"GEMINI_API_KEY": "test-key"}),
        patch("paws4life.clients.gemini.tiktoken.get_encoding", return_value=Mock()),
    ):
        client = GeminiClient(config=config or GeminiConfig(search_model="search-model", location_model="maps-model"))
    client.client = Mock()
    client.rate_limiter = Mock(check_rate_limit=AsyncMock())
    return client


@pytest.fixture
def gemini_client():
    """Create GeminiClient with the SDK and rate limiter mocked out."""
    client = make_client()
    client.tokenizer.encode.return_value = ["token"] * 10
    return client


@pytest.fixture
def request_messages():
    """A short conversation ending in a user turn."""
    return [
        LLMMessage(role="user", content="Hi"),
        LLMMessage(role="assistant", content="Hello! How is your dog?"),
        LLMMessage(role="user", content="Limping a bit."),
    ]


class TestClientSetup:
    """Tests for client construction."""

    def test_missing_api_key_raises(self):
        """Test that the client refuses to start without an API key."""
        with patch.dict("os.environ", {}, clear=True), pytest.raises(ValueError, match="GEMINI_API_KEY"):
            GeminiClient()

    def test_google_api_key_fallback(self):
        """Test that GOOGLE_API_KEY is accepted when GEMINI_API_KEY is unset."""
        with (
            patch.dict("os.environ", {"GOOGLE_API_KEY": "google-key"}, clear=True),
            patch("paws4life.clients.gemini.tiktoken.get_encoding", return_value=Mock()),
        ):
            client = GeminiClient()
        assert client.api_key == "google-key"


class TestRequestBuilding:
    """Tests for translating requests into SDK types."""

    def test_roles_translated_in_order(self, gemini_client, request_messages):
        """Test that assistant turns become model turns, order preserved."""
        contents = gemini_client.build_contents(request_messages)

        assert [c.role for c in contents] == ["user", "model", "user"]
        assert [c.parts[0].text for c in contents] == ["Hi", "Hello! How is your dog?", "Limping a bit."]

    def test_config_without_location(self, gemini_client, request_messages):
        """Test that no location means search only and no lat/lng."""
        config = gemini_client.build_config(GenerationRequest(messages=request_messages, system_instruction="sys"))

        assert config.tool_config is None
        assert len(config.tools) == 1
        assert config.tools[0].google_search is not None
        assert config.system_instruction == "sys"
        assert config.temperature == 0.2

    def test_config_with_location(self, gemini_client, request_messages):
        """Test that a location adds maps grounding and exactly that lat/lng."""
        request = GenerationRequest(
            messages=request_messages,
            use_maps=True,
            location=GeoPoint(latitude=37.7749, longitude=-122.4194),
        )
        config = gemini_client.build_config(request)

        lat_lng = config.tool_config.retrieval_config.lat_lng
        assert lat_lng.latitude == 37.7749
        assert lat_lng.longitude == -122.4194
        assert any(tool.google_maps is not None for tool in config.tools)
        assert any(tool.google_search is not None for tool in config.tools)

    def test_model_selection(self, gemini_client, request_messages):
        """Test that the model follows the presence of a location."""
        without_location = GenerationRequest(messages=request_messages)
        with_location = GenerationRequest(messages=request_messages, location=GeoPoint(latitude=1, longitude=2))
        explicit = GenerationRequest(messages=request_messages, model="custom-model")

        assert gemini_client.select_model(without_location) == "search-model"
        assert gemini_client.select_model(with_location) == "maps-model"
        assert gemini_client.select_model(explicit) == "custom-model"


class TestCitationExtraction:
    """Tests for grounding chunk conversion."""

    def test_web_and_maps_chunks(self, gemini_client):
        """Test that each chunk becomes the matching tagged citation."""
        response = make_response(
            chunks=[
                types.GroundingChunk(web=types.GroundingChunkWeb(title="AKC", uri="https://akc.org")),
                types.GroundingChunk(maps=types.GroundingChunkMaps(title="Central Vet", uri="https://maps.app/1")),
                types.GroundingChunk(),
            ]
        )

        citations = gemini_client.extract_citations(response)

        assert citations == [
            WebCitation(title="AKC", uri="https://akc.org"),
            LocationCitation(title="Central Vet", uri="https://maps.app/1"),
        ]

    def test_no_grounding_metadata(self, gemini_client):
        """Test that a response without grounding has no citations."""
        assert gemini_client.extract_citations(make_response()) == []

    def test_no_candidates(self, gemini_client):
        """Test that an empty response has no citations."""
        assert gemini_client.extract_citations(types.GenerateContentResponse()) == []


class TestGenerate:
    """Tests for the full generate call."""

    @pytest.mark.asyncio
    async def test_generate_returns_text_citations_and_usage(self, gemini_client, request_messages):
        """Test a successful call end to end."""
        response = make_response(
            text="Rest and ice.",
            chunks=[types.GroundingChunk(web=types.GroundingChunkWeb(title="VCA", uri="https://vca.com"))],
        )
        gemini_client.client.aio.models.generate_content = AsyncMock(return_value=response)

        result = await gemini_client.generate(GenerationRequest(messages=request_messages, system_instruction="sys"))

        assert result.text == "Rest and ice."
        assert result.citations == [WebCitation(title="VCA", uri="https://vca.com")]
        assert result.model == "gemini-test"
        assert result.usage.total_tokens == 15

        kwargs = gemini_client.client.aio.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "search-model"
        assert len(kwargs["contents"]) == 3
        gemini_client.rate_limiter.check_rate_limit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_empty_answer_text_is_none(self, gemini_client, request_messages):
        """Test that a response without text parts yields no text."""
        gemini_client.client.aio.models.generate_content = AsyncMock(return_value=make_response(text=None))
        result = await gemini_client.generate(GenerationRequest(messages=request_messages))
        assert not result.text

    @pytest.mark.asyncio
    async def test_server_error_is_retried(self, request_messages):
        """Test that a 5xx error is retried before succeeding."""
        client = make_client(GeminiConfig(retry_delay=0))
        client.tokenizer.encode.return_value = ["token"]
        server_error = errors.ServerError(503, {"error": {"code": 503, "message": "unavailable"}})
        client.client.aio.models.generate_content = AsyncMock(side_effect=[server_error, make_response("ok")])

        result = await client.generate(GenerationRequest(messages=request_messages))

        assert result.text == "ok"
        assert client.client.aio.models.generate_content.await_count == 2

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self, request_messages):
        """Test that a 4xx error other than 429 propagates immediately."""
        client = make_client(GeminiConfig(retry_delay=0))
        client.tokenizer.encode.return_value = ["token"]
        client_error = errors.ClientError(401, {"error": {"code": 401, "message": "bad key"}})
        client.client.aio.models.generate_content = AsyncMock(side_effect=client_error)

        with pytest.raises(errors.ClientError):
            await client.generate(GenerationRequest(messages=request_messages))

        assert client.client.aio.models.generate_content.await_count == 1

    @pytest.mark.asyncio
    async def test_timeout_propagates(self, request_messages):
        """Test that a call exceeding the timeout raises TimeoutError."""
        client = make_client(GeminiConfig(timeout_seconds=0.01, retry_delay=0))
        client.tokenizer.encode.return_value = ["token"]

        async def never_returns(**kwargs):
            await asyncio.sleep(10)

        client.client.aio.models.generate_content = never_returns

        with pytest.raises(TimeoutError):
            await client.generate(GenerationRequest(messages=request_messages))


class TestConversationTruncation:
    """Tests for conversation truncation functionality."""

    @pytest.fixture
    def small_client(self):
        """Client with a small context window."""
        return make_client(GeminiConfig(max_conversation_tokens=10000, token_headroom=1000))

    def test_truncate_conversation_within_limit(self, small_client, request_messages):
        """Test that conversations within limits are not truncated."""
        small_client.tokenizer.encode.return_value = ["token"] * 100

        result = small_client.truncate_conversation(request_messages, "System prompt")

        assert result == request_messages

    def test_truncate_conversation_exceeds_limit(self, small_client):
        """Test that conversations exceeding limits are truncated from the beginning."""

        def mock_encode(text):
            if "System prompt" in text:
                return ["token"] * 500
            return ["token"] * 3000

        small_client.tokenizer.encode.side_effect = mock_encode

        messages = [
            LLMMessage(role="user", content="Message 1"),
            LLMMessage(role="assistant", content="Response 1"),
            LLMMessage(role="user", content="Message 2"),
            LLMMessage(role="assistant", content="Response 2"),
            LLMMessage(role="user", content="Message 3"),
        ]

        result = small_client.truncate_conversation(messages, "System prompt")

        assert len(result) < len(messages)
        assert result[-1].content == "Message 3"

    def test_truncate_keeps_oversized_final_turn(self, small_client):
        """Test that the newest turn survives even when it alone is over the limit."""

        def mock_encode(text):
            return ["token"] * (20000 if text == "Huge question" else 10)

        small_client.tokenizer.encode.side_effect = mock_encode

        messages = [
            LLMMessage(role="user", content="Message 1"),
            LLMMessage(role="assistant", content="Response 1"),
            LLMMessage(role="user", content="Huge question"),
        ]

        result = small_client.truncate_conversation(messages, "System prompt")

        assert [message.content for message in result] == ["Huge question"]

    def test_truncate_conversation_empty_messages(self, small_client):
        """Test truncation with empty message list."""
        assert small_client.truncate_conversation([], "System prompt") == []

    def test_estimate_falls_back_without_tokenizer(self, small_client):
        """Test the four-characters-per-token fallback."""
        small_client.tokenizer = None
        assert small_client.estimate_message_tokens("a" * 400) == 100
