"""LLM-related data models and types (provider-agnostic)."""

from dataclasses import dataclass, field
from typing import Literal

from pydantic import BaseModel

from paws4life.models.messages import Citation, GeoPoint


class LLMMessage(BaseModel):
    """A message for LLM conversation."""

    role: Literal["user", "assistant"]
    content: str


@dataclass
class GenerationRequest:
    """Everything the advice-generation service needs for one call.

    ``location`` is the location-bias parameter. When it is set the client
    also requests maps grounding and picks the location-aware model, unless
    ``model`` names one explicitly.
    """

    messages: list[LLMMessage]
    system_instruction: str | None = None
    use_search: bool = True
    use_maps: bool = False
    location: GeoPoint | None = None
    model: str | None = None
    temperature: float | None = None


@dataclass
class LLMUsage:
    """Token usage information from the LLM provider."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0


@dataclass
class GenerationResult:
    """Provider-agnostic response from the advice-generation service."""

    text: str | None
    citations: list[Citation] = field(default_factory=list)
    model: str = ""
    usage: LLMUsage | None = None
    provider: str = "gemini"
