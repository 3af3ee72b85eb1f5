"""Map overlay data models."""

from dataclasses import dataclass

from pydantic import BaseModel


class MapPlace(BaseModel):
    """A point of interest rendered on the map."""

    id: str
    name: str
    latitude: float
    longitude: float
    type: str
    uri: str | None = None
    category_color: str = "orange"
    rating: str | None = None
    hours: str | None = None


@dataclass(frozen=True)
class PlaceCategory:
    """A searchable category of pet service."""

    id: str
    label: str
    color: str
