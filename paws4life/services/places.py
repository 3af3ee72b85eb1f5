"""Map overlay points of interest and maps-grounded place search."""

import re
from dataclasses import dataclass

from paws4life.clients.gemini import get_gemini_client
from paws4life.models.llm import GenerationRequest, LLMMessage
from paws4life.models.messages import Citation, GeoPoint
from paws4life.models.places import MapPlace, PlaceCategory
from paws4life.services.advice import AdviceClient
from paws4life.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class NearbyPlace:
    """A point of interest placed at a fixed offset from the user."""

    name: str
    type: str
    offset: tuple[float, float]
    rating: str
    hours: str | None = None


NEARBY_PLACES: tuple[NearbyPlace, ...] = (
    NearbyPlace(name="Happy Paws Dog Park", type="park", offset=(0.005, 0.008), rating="4.8"),
    NearbyPlace(name="Canine Creek Reserve", type="park", offset=(-0.003, -0.01), rating="4.5"),
    NearbyPlace(name="Central Vet Hospital", type="vet", offset=(0.01, -0.005), rating="4.9", hours="Open 24/7"),
    NearbyPlace(name="PetCare Urgent Clinic", type="vet", offset=(-0.008, 0.004), rating="4.2", hours="9am - 6pm"),
)

PLACE_COLORS = {"park": "green", "vet": "blue"}

CATEGORIES: tuple[PlaceCategory, ...] = (
    PlaceCategory(id="Vet", label="Vets", color="orange"),
    PlaceCategory(id="Dog Park", label="Dog Parks", color="green"),
    PlaceCategory(id="Dog Grooming", label="Grooming", color="blue"),
    PlaceCategory(id="Dog Hospital", label="Hospitals", color="red"),
)

PLACE_SEARCH_PROMPT = (
    "Find real local business services near me for: {query}. For each result found, strictly provide its "
    "details in the text as: [Name: Name, Lat: Latitude, Lng: Longitude]."
)

COORD_PATTERN = re.compile(r"\[Name:\s*([^,]+),\s*Lat:\s*(-?\d+\.\d+),\s*Lng:\s*(-?\d+\.\d+)\]", re.IGNORECASE)
AT_COORD_PATTERN = re.compile(r"@(-?\d+\.\d+),(-?\d+\.\d+)")
DATA_COORD_PATTERN = re.compile(r"!3d(-?\d+\.\d+)!4d(-?\d+\.\d+)")

MIN_PARSED_PLACES = 3


def nearby_places(location: GeoPoint | None) -> list[MapPlace]:
    """Fixed-offset points of interest around a location; empty without one."""
    if location is None:
        return []

    return [
        MapPlace(
            id=f"nearby-{index}",
            name=place.name,
            latitude=location.latitude + place.offset[0],
            longitude=location.longitude + place.offset[1],
            type=place.type,
            category_color=PLACE_COLORS.get(place.type, "orange"),
            rating=place.rating,
            hours=place.hours,
        )
        for index, place in enumerate(NEARBY_PLACES)
    ]


def match_category(name: str, query: str) -> PlaceCategory:
    """Category whose id appears in the place name or query; Vet otherwise."""
    name_lower, query_lower = name.lower(), query.lower()
    for category in CATEGORIES:
        category_id = category.id.lower()
        if category_id in name_lower or category_id in query_lower:
            return category
    return CATEGORIES[0]


def coordinates_from_uri(uri: str) -> tuple[float, float] | None:
    """Pull a lat/lng pair out of a maps URI."""
    match = AT_COORD_PATTERN.search(uri) or DATA_COORD_PATTERN.search(uri)
    if not match:
        return None
    latitude, longitude = float(match.group(1)), float(match.group(2))
    if latitude == 0 or longitude == 0:
        return None
    return latitude, longitude


def parse_places(text: str, citations: list[Citation], query: str) -> list[MapPlace]:
    """Extract places from the answer text, then from maps citations if too few were found."""
    location_citations = [citation for citation in citations if citation.kind == "location"]
    places: list[MapPlace] = []

    for index, match in enumerate(COORD_PATTERN.finditer(text)):
        name = match.group(1).strip()
        category = match_category(name, query)
        matching = next((c for c in location_citations if name.lower() in c.title.lower()), None)
        places.append(
            MapPlace(
                id=f"txt-{index}",
                name=name,
                latitude=float(match.group(2)),
                longitude=float(match.group(3)),
                type=category.label,
                uri=matching.uri if matching else None,
                category_color=category.color,
            )
        )

    if len(places) < MIN_PARSED_PLACES:
        for index, citation in enumerate(location_citations):
            title = citation.title or "Pet Service"
            if any(place.name == title for place in places):
                continue
            coordinates = coordinates_from_uri(citation.uri)
            if coordinates is None:
                continue
            category = match_category(title, query)
            places.append(
                MapPlace(
                    id=f"uri-{index}",
                    name=title,
                    latitude=coordinates[0],
                    longitude=coordinates[1],
                    type=category.label,
                    uri=citation.uri,
                    category_color=category.color,
                )
            )

    return places


class PlaceSearchService:
    """Searches for nearby pet services using maps grounding."""

    def __init__(self, client: AdviceClient | None = None):
        self._client = client

    @property
    def client(self) -> AdviceClient:
        if self._client is None:
            self._client = get_gemini_client()
        return self._client

    async def search(self, query: str, location: GeoPoint | None) -> list[MapPlace]:
        """Find places matching the query around the location.

        Returns an empty list when the query is blank, the location is unknown,
        or the service call fails.
        """
        if location is None or not query.strip():
            return []

        request = GenerationRequest(
            messages=[LLMMessage(role="user", content=PLACE_SEARCH_PROMPT.format(query=query))],
            use_search=False,
            use_maps=True,
            location=location,
        )

        try:
            result = await self.client.generate(request)
        except Exception as e:
            logger.error(f"Place search failed for '{query}': {e}", exc_info=True)
            return []

        places = parse_places(result.text or "", result.citations, query)
        logger.info(f"Place search for '{query}' found {len(places)} places")
        return places


place_search_service = PlaceSearchService()
