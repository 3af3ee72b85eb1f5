"""Message, citation and conversation turn models."""

from datetime import UTC, datetime
from typing import Annotated, Literal

from pydantic import BaseModel, Field


class Source(BaseModel):
    """A title and URI attributing part of an answer to an external reference."""

    title: str
    uri: str


class WebCitation(BaseModel):
    """Grounding citation from a web search result."""

    kind: Literal["web"] = "web"
    title: str = ""
    uri: str = ""


class LocationCitation(BaseModel):
    """Grounding citation from a maps/location result."""

    kind: Literal["location"] = "location"
    title: str = ""
    uri: str = ""


Citation = Annotated[WebCitation | LocationCitation, Field(discriminator="kind")]


class ConversationTurn(BaseModel):
    """One message in a conversation."""

    role: Literal["user", "assistant"]
    text: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    sources: list[Source] | None = None


class GeoPoint(BaseModel):
    """A latitude/longitude pair from the platform location API."""

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
