"""Sponsored catalog data models."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class Advertisement(BaseModel):
    """A sponsored entry shown in the sidebar."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str
    image_url: str = ""
    link: str = ""
    type: Literal["vet", "food", "breeder", "accessory"]
    target_breeds: tuple[str, ...] = Field(default_factory=tuple)
    target_conditions: tuple[str, ...] = Field(default_factory=tuple)
    promoted: bool = False
