"""API request and response models."""

from datetime import datetime

from pydantic import BaseModel, Field

from paws4life.models.ads import Advertisement
from paws4life.models.messages import ConversationTurn, GeoPoint, Source
from paws4life.models.places import MapPlace
from paws4life.models.profile import OwnerProfile, Profile


class ConversationRequest(BaseModel):
    """Request model for conversation endpoint."""

    message: str
    session_id: str | None = None
    location: GeoPoint | None = None


class ConversationResponse(BaseModel):
    """Response model for conversation endpoint."""

    response: str
    session_id: str
    sources: list[Source] = Field(default_factory=list)
    is_verified: bool = False


class SessionRequest(BaseModel):
    """Request model for session creation; an existing ID restores its stored household."""

    session_id: str | None = None


class SessionResponse(BaseModel):
    """Response model for session creation."""

    session_id: str


class HistoryResponse(BaseModel):
    """Response model for a session's conversation history."""

    session_id: str
    turns: list[ConversationTurn]


class ProfileResponse(BaseModel):
    """Profile with its advisory validation results."""

    session_id: str
    profile: Profile
    age_error: str | None = None
    weight_error: str | None = None
    is_valid: bool = True


class DogsResponse(BaseModel):
    """All dog profiles of a session's household."""

    session_id: str
    dogs: list[Profile]
    active_id: str | None = None


class OwnerResponse(BaseModel):
    """The owner's contact details."""

    session_id: str
    owner: OwnerProfile


class AdsResponse(BaseModel):
    """Catalog ranked for the session's profile."""

    session_id: str
    ads: list[Advertisement]


class NearbyPlacesResponse(BaseModel):
    """Points of interest around a location."""

    available: bool
    places: list[MapPlace] = Field(default_factory=list)


class PlaceSearchRequest(BaseModel):
    """Request model for a maps-grounded place search."""

    query: str
    location: GeoPoint | None = None


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    timestamp: datetime
    version: str
