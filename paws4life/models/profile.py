"""Dog, owner and household profile data models."""

from pydantic import BaseModel, ConfigDict, Field


class Profile(BaseModel):
    """Description of one dog, used to personalize advice and ads."""

    model_config = ConfigDict(extra="ignore")

    id: str = ""
    name: str = ""
    breed: str = ""
    age: str = ""
    weight: str = ""
    allergies: str = ""
    conditions: str = ""
    home_location: str | None = None


class OwnerProfile(BaseModel):
    """Contact details of the person asking for advice."""

    model_config = ConfigDict(extra="ignore")

    name: str = ""
    email: str = ""
    phone: str = ""


class Household(BaseModel):
    """An owner, their dogs, and which dog advice and ads are about."""

    model_config = ConfigDict(extra="ignore")

    owner: OwnerProfile = Field(default_factory=OwnerProfile)
    dogs: list[Profile] = Field(default_factory=list)
    active_id: str | None = None

    def find_dog(self, dog_id: str) -> Profile | None:
        return next((dog for dog in self.dogs if dog.id == dog_id), None)

    @property
    def active_dog(self) -> Profile | None:
        """The selected dog, or None when nothing is selected."""
        return self.find_dog(self.active_id) if self.active_id else None


class ProfileValidation(BaseModel):
    """Advisory format check results for a profile."""

    age_error: str | None = None
    weight_error: str | None = None

    @property
    def is_valid(self) -> bool:
        """Whether every checked field passed its format check."""
        return self.age_error is None and self.weight_error is None
