"""Gemini API client with rate limiting and error handling."""

import asyncio
import os
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

import tiktoken
from google import genai
from google.genai import errors, types
from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter

from paws4life.models.llm import GenerationRequest, GenerationResult, LLMMessage, LLMUsage
from paws4life.models.messages import Citation, LocationCitation, WebCitation
from paws4life.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# Gemini names the assistant side of a conversation "model"
ROLE_MAP: dict[str, str] = {"user": "user", "assistant": "model"}


@dataclass
class GeminiConfig:
    """Configuration for Gemini API client."""

    search_model: str = field(default_factory=lambda: os.getenv("GEMINI_SEARCH_MODEL", "gemini-3-pro-preview"))
    location_model: str = field(default_factory=lambda: os.getenv("GEMINI_LOCATION_MODEL", "gemini-2.5-flash"))
    temperature: float = 0.2
    max_retries: int = 3
    retry_delay: float = 1.0
    timeout_seconds: float = field(default_factory=lambda: float(os.getenv("GEMINI_TIMEOUT_SECONDS", "60")))

    # Token limits for truncation
    max_conversation_tokens: int = 1_000_000
    token_headroom: int = 8000


class GeminiRateLimiter:
    """Moving-window rate limiter for outbound Gemini calls."""

    def __init__(self, requests_per_minute: int = 60, tokens_per_minute: int = 250_000):
        """Initialize rate limiter.

        Args:
            requests_per_minute: Maximum requests per minute
            tokens_per_minute: Maximum tokens per minute
        """
        self.storage = MemoryStorage()
        self.limiter = MovingWindowRateLimiter(self.storage)

        self.request_limit = parse(f"{requests_per_minute}/minute")
        self.token_limit = parse(f"{tokens_per_minute}/minute")

    async def check_rate_limit(self, estimated_tokens: int, identifier: str = "gemini") -> None:
        """Wait until the request fits within the configured limits."""
        logger.debug(f"Checking rate limit for {estimated_tokens} tokens, identifier: {identifier}")

        if not self.limiter.hit(self.request_limit, identifier):
            await self._wait_for_reset(self.request_limit, identifier, "Request")

        token_identifier = f"{identifier}_tokens"
        if not self.limiter.hit(self.token_limit, token_identifier, cost=estimated_tokens):
            await self._wait_for_reset(self.token_limit, token_identifier, "Token")

    async def _wait_for_reset(self, limit, identifier: str, label: str) -> None:
        window_stats = self.limiter.get_window_stats(limit, identifier)
        if window_stats:
            wait_time = max(0, window_stats.reset_time - time.time())
            if wait_time > 0:
                logger.warning(f"{label} rate limit exceeded, waiting {wait_time:.2f}s")
                await asyncio.sleep(wait_time)


class GeminiClient:
    """Low-level Gemini API client with grounding, rate limiting and retries."""

    tokenizer: tiktoken.Encoding | None = None
    api_key: str
    client: genai.Client
    config: GeminiConfig
    rate_limiter: GeminiRateLimiter = GeminiRateLimiter()

    def __init__(self, api_key: str | None = None, config: GeminiConfig | None = None):
        """Initialize Gemini client.

        Args:
            api_key: Gemini API key (defaults to GEMINI_API_KEY, then GOOGLE_API_KEY)
            config: Client configuration
        """
        gemini_api_key = api_key or os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
        if not gemini_api_key:
            raise ValueError("GEMINI_API_KEY environment variable is required")

        self.api_key = gemini_api_key

        self.client = genai.Client(api_key=self.api_key)
        self.config = config or GeminiConfig()

        # Close enough for budgeting Gemini tokens
        try:
            self.tokenizer = tiktoken.get_encoding("cl100k_base")
        except Exception:
            self.tokenizer = None

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """Send one generation request and return text plus grounding citations.

        Args:
            request: Provider-agnostic generation request

        Returns:
            Structured generation result
        """
        messages = self.truncate_conversation(request.messages, request.system_instruction or "")

        estimated_tokens = self._estimate_tokens(messages, request.system_instruction or "")
        logger.debug(f"Estimated tokens: {estimated_tokens}")
        await self.rate_limiter.check_rate_limit(estimated_tokens)

        model = self.select_model(request)
        contents = self.build_contents(messages)
        config = self.build_config(request)

        logger.debug(
            f"Making Gemini API call with model: {model}, {len(contents)} turns, "
            f"location bias: {request.location is not None}"
        )
        response: types.GenerateContentResponse = await self._request_with_retries(
            lambda: self.client.aio.models.generate_content(model=model, contents=contents, config=config)
        )

        usage = None
        if response.usage_metadata:
            usage = LLMUsage(
                input_tokens=response.usage_metadata.prompt_token_count or 0,
                output_tokens=response.usage_metadata.candidates_token_count or 0,
                total_tokens=response.usage_metadata.total_token_count or 0,
            )

        return GenerationResult(
            text=response.text,
            citations=self.extract_citations(response),
            model=response.model_version or model,
            usage=usage,
        )

    def select_model(self, request: GenerationRequest) -> str:
        """Pick the model: explicit, else location-aware when a location is supplied."""
        if request.model:
            return request.model
        return self.config.location_model if request.location is not None else self.config.search_model

    def build_contents(self, messages: list[LLMMessage]) -> list[types.Content]:
        """Translate messages into Gemini contents, preserving order."""
        return [
            types.Content(role=ROLE_MAP[message.role], parts=[types.Part(text=message.content)])
            for message in messages
        ]

    def build_config(self, request: GenerationRequest) -> types.GenerateContentConfig:
        """Build the generation config, attaching lat/lng only when a location is present."""
        tools: list[types.Tool] = []
        if request.use_search:
            tools.append(types.Tool(google_search=types.GoogleSearch()))
        if request.use_maps:
            tools.append(types.Tool(google_maps=types.GoogleMaps()))

        tool_config = None
        if request.location is not None:
            tool_config = types.ToolConfig(
                retrieval_config=types.RetrievalConfig(
                    lat_lng=types.LatLng(
                        latitude=request.location.latitude,
                        longitude=request.location.longitude,
                    )
                )
            )

        return types.GenerateContentConfig(
            system_instruction=request.system_instruction,
            tools=tools or None,
            tool_config=tool_config,
            temperature=request.temperature if request.temperature is not None else self.config.temperature,
        )

    def extract_citations(self, response: types.GenerateContentResponse) -> list[Citation]:
        """Convert grounding chunks of the first candidate into tagged citations."""
        citations: list[Citation] = []
        if not response.candidates:
            return citations

        metadata = response.candidates[0].grounding_metadata
        if not metadata or not metadata.grounding_chunks:
            return citations

        for chunk in metadata.grounding_chunks:
            if chunk.web:
                citations.append(WebCitation(title=chunk.web.title or "", uri=chunk.web.uri or ""))
            elif chunk.maps:
                citations.append(LocationCitation(title=chunk.maps.title or "", uri=chunk.maps.uri or ""))
            else:
                logger.debug(f"Skipping grounding chunk without web or maps result: {chunk}")

        return citations

    async def _request_with_retries(self, call: Callable[[], Awaitable[T]]) -> T:
        """Execute Gemini API request with timeout and retry logic."""
        for attempt in range(self.config.max_retries):
            try:
                return await asyncio.wait_for(call(), timeout=self.config.timeout_seconds)

            except errors.APIError as e:
                retryable = e.code == 429 or (e.code is not None and e.code >= 500)
                if retryable and attempt < self.config.max_retries - 1:
                    delay = self.config.retry_delay * (2**attempt)
                    logger.warning(f"Gemini API error {e.code}, retrying in {delay:.1f}s")
                    await asyncio.sleep(delay)
                    continue

                raise

            except TimeoutError:
                logger.warning(f"Gemini request timed out after {self.config.timeout_seconds}s")
                raise

            except Exception:
                if attempt < self.config.max_retries - 1:
                    await asyncio.sleep(self.config.retry_delay * (2**attempt))
                    continue
                raise

        raise Exception(f"Failed to complete request after {self.config.max_retries} attempts")

    def _estimate_tokens(self, messages: list[LLMMessage], system_instruction: str) -> int:
        """Estimate token count for rate limiting."""
        text_content = system_instruction + "".join(message.content for message in messages)
        return self.estimate_message_tokens(text_content)

    def estimate_message_tokens(self, message: str) -> int:
        """Estimate token count for a single message.

        Args:
            message: Message content

        Returns:
            Estimated token count
        """
        try:
            return len(self.tokenizer.encode(message)) if self.tokenizer else len(message) // 4
        except Exception:
            # Fallback: roughly 4 characters per token
            return len(message) // 4

    def truncate_conversation(self, messages: list[LLMMessage], system_instruction: str) -> list[LLMMessage]:
        """Drop the oldest messages until the conversation fits the context window.

        Args:
            messages: Conversation messages
            system_instruction: System instruction sent alongside

        Returns:
            Truncated message list that fits within limits
        """
        if not messages:
            return messages

        available_tokens = self.config.max_conversation_tokens - self.config.token_headroom
        available_tokens -= self.estimate_message_tokens(system_instruction)

        # The newest turn is always sent, even when it alone exceeds the budget
        truncated_messages: list[LLMMessage] = [messages[-1]]
        current_tokens = self.estimate_message_tokens(messages[-1].content)

        for message in reversed(messages[:-1]):
            message_tokens = self.estimate_message_tokens(message.content)
            if current_tokens + message_tokens > available_tokens:
                break
            truncated_messages.insert(0, message)
            current_tokens += message_tokens

        if len(truncated_messages) < len(messages):
            logger.warning(
                f"Truncated conversation from {len(messages)} to {len(truncated_messages)} messages "
                f"to fit within {available_tokens} token limit"
            )

        return truncated_messages


_gemini_client: GeminiClient | None = None


def get_gemini_client() -> GeminiClient:
    """Get or create Gemini client instance."""
    global _gemini_client
    if _gemini_client is None:
        _gemini_client = GeminiClient()
    return _gemini_client
