"""API endpoints for the dog-care advice service."""

from datetime import UTC, datetime

from fastapi import APIRouter, HTTPException, Query

from paws4life import __version__
from paws4life.models.conversation import (
    AdsResponse,
    ConversationRequest,
    ConversationResponse,
    DogsResponse,
    HealthResponse,
    HistoryResponse,
    NearbyPlacesResponse,
    OwnerResponse,
    PlaceSearchRequest,
    ProfileResponse,
    SessionRequest,
    SessionResponse,
)
from paws4life.models.messages import GeoPoint
from paws4life.models.profile import OwnerProfile, Profile
from paws4life.models.session import Session, SessionBusyError
from paws4life.services.ads import AD_CATALOG, rank
from paws4life.services.conversation import conversation_service
from paws4life.services.household import (
    DogNotFoundError,
    add_dog,
    delete_dog,
    save_active_dog,
    select_dog,
    update_dog,
    update_owner,
)
from paws4life.services.places import nearby_places, place_search_service
from paws4life.services.profile_validation import validate_profile
from paws4life.services.session_manager import session_manager
from paws4life.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


def _require_session(session_id: str) -> Session:
    session = session_manager.get_session(session_id)
    if not session:
        logger.warning(f"Invalid session ID provided: {session_id}")
        raise HTTPException(status_code=400, detail=f"Invalid session ID: {session_id}")
    return session


def _profile_response(session: Session, profile: Profile) -> ProfileResponse:
    validation = validate_profile(profile)
    return ProfileResponse(
        session_id=session.session_id,
        profile=profile,
        age_error=validation.age_error,
        weight_error=validation.weight_error,
        is_valid=validation.is_valid,
    )


def _dogs_response(session: Session) -> DogsResponse:
    household = session.household
    return DogsResponse(session_id=session.session_id, dogs=list(household.dogs), active_id=household.active_id)


@router.post("/conversation", response_model=ConversationResponse, tags=["Conversation"])
async def handle_conversation(request: ConversationRequest) -> ConversationResponse:
    """Answer a dog-care question within a session.

    Advice-service failures come back as a normal response carrying an apology;
    a second message while one is still in flight is refused with 409.
    """
    try:
        if request.session_id:
            logger.info(f"Validating existing session: {request.session_id}")
            session = _require_session(request.session_id)
        else:
            logger.info("Creating new session")
            session = session_manager.get_or_create_session()

        session_id = session.session_id
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Session management error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to manage session") from e

    try:
        logger.info(f"Processing message for session {session_id}: {request.message[:50]}...")
        advice = await conversation_service.process_message(request.message, session, location=request.location)
        logger.info(f"Generated response for session {session_id}: {advice.text[:50]}...")
        return ConversationResponse(
            response=advice.text,
            session_id=session_id,
            sources=advice.sources,
            is_verified=advice.is_verified,
        )
    except SessionBusyError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except ValueError as e:
        logger.warning(f"Message validation error for session {session_id}: {e}")
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.post("/sessions", response_model=SessionResponse, tags=["Conversation"])
async def create_session(request: SessionRequest | None = None) -> SessionResponse:
    """Start a session; passing a previous session ID restores its stored household."""
    session_id = request.session_id if request else None
    session = session_manager.get_or_create_session(session_id)
    return SessionResponse(session_id=session.session_id)


@router.get("/sessions/{session_id}/history", response_model=HistoryResponse, tags=["Conversation"])
async def get_history(session_id: str) -> HistoryResponse:
    """Return the session's conversation turns, oldest first."""
    session = _require_session(session_id)
    return HistoryResponse(session_id=session.session_id, turns=list(session.history))


@router.get("/profile/{session_id}", response_model=ProfileResponse, tags=["Profile"])
async def get_profile(session_id: str) -> ProfileResponse:
    """Return the active dog's profile with advisory format checks."""
    session = _require_session(session_id)
    return _profile_response(session, session.profile)


@router.put("/profile/{session_id}", response_model=ProfileResponse, tags=["Profile"])
async def update_profile(session_id: str, profile: Profile) -> ProfileResponse:
    """Store the active dog's profile, adding a dog when none is selected.

    Malformed age/weight are flagged, not rejected.
    """
    session = _require_session(session_id)
    try:
        dog = save_active_dog(session.household, profile)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    session_manager.save_household(session)
    return _profile_response(session, dog)


@router.get("/dogs/{session_id}", response_model=DogsResponse, tags=["Profile"])
async def list_dogs(session_id: str) -> DogsResponse:
    """List every dog in the household and which one is active."""
    return _dogs_response(_require_session(session_id))


@router.post("/dogs/{session_id}", response_model=ProfileResponse, tags=["Profile"])
async def create_dog(session_id: str, profile: Profile) -> ProfileResponse:
    """Add a dog; the first dog becomes active."""
    session = _require_session(session_id)
    try:
        dog = add_dog(session.household, profile)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    session_manager.save_household(session)
    return _profile_response(session, dog)


@router.put("/dogs/{session_id}/{dog_id}", response_model=ProfileResponse, tags=["Profile"])
async def edit_dog(session_id: str, dog_id: str, profile: Profile) -> ProfileResponse:
    """Replace one dog's details."""
    session = _require_session(session_id)
    try:
        dog = update_dog(session.household, dog_id, profile)
    except DogNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    session_manager.save_household(session)
    return _profile_response(session, dog)


@router.delete("/dogs/{session_id}/{dog_id}", response_model=DogsResponse, tags=["Profile"])
async def remove_dog(session_id: str, dog_id: str) -> DogsResponse:
    """Remove a dog; removing the active dog leaves none selected."""
    session = _require_session(session_id)
    try:
        delete_dog(session.household, dog_id)
    except DogNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    session_manager.save_household(session)
    return _dogs_response(session)


@router.post("/dogs/{session_id}/{dog_id}/select", response_model=DogsResponse, tags=["Profile"])
async def choose_dog(session_id: str, dog_id: str) -> DogsResponse:
    """Make a dog the subject of advice and ads."""
    session = _require_session(session_id)
    try:
        select_dog(session.household, dog_id)
    except DogNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    session_manager.save_household(session)
    return _dogs_response(session)


@router.get("/owner/{session_id}", response_model=OwnerResponse, tags=["Profile"])
async def get_owner(session_id: str) -> OwnerResponse:
    """Return the owner's contact details."""
    session = _require_session(session_id)
    return OwnerResponse(session_id=session.session_id, owner=session.household.owner)


@router.put("/owner/{session_id}", response_model=OwnerResponse, tags=["Profile"])
async def edit_owner(session_id: str, owner: OwnerProfile) -> OwnerResponse:
    """Store the owner's contact details; the name is used to address them."""
    session = _require_session(session_id)
    update_owner(session.household, owner)
    session_manager.save_household(session)
    return OwnerResponse(session_id=session.session_id, owner=owner)


@router.get("/ads/{session_id}", response_model=AdsResponse, tags=["Ads"])
async def get_ads(session_id: str) -> AdsResponse:
    """Return the sponsored catalog ranked for the active dog."""
    session = _require_session(session_id)
    return AdsResponse(session_id=session.session_id, ads=rank(AD_CATALOG, session.profile))


@router.get("/places/nearby", response_model=NearbyPlacesResponse, tags=["Places"])
async def get_nearby_places(
    latitude: float | None = Query(default=None, ge=-90, le=90),
    longitude: float | None = Query(default=None, ge=-180, le=180),
) -> NearbyPlacesResponse:
    """Return points of interest around a location, or mark the map unavailable."""
    if latitude is None or longitude is None:
        return NearbyPlacesResponse(available=False)
    location = GeoPoint(latitude=latitude, longitude=longitude)
    return NearbyPlacesResponse(available=True, places=nearby_places(location))


@router.post("/places/search", response_model=NearbyPlacesResponse, tags=["Places"])
async def search_places(request: PlaceSearchRequest) -> NearbyPlacesResponse:
    """Search for nearby pet services with maps grounding."""
    if request.location is None:
        return NearbyPlacesResponse(available=False)
    places = await place_search_service.search(request.query, request.location)
    return NearbyPlacesResponse(available=True, places=places)


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        version=__version__,
    )
