"""Operations on an owner's dogs and contact details."""

from cuid2 import cuid_wrapper

from paws4life.models.profile import Household, OwnerProfile, Profile
from paws4life.utils.logging import get_logger

logger = get_logger(__name__)

cuid = cuid_wrapper()


class DogNotFoundError(LookupError):
    """Raised when a dog ID is not part of the household."""

    def __init__(self, dog_id: str):
        super().__init__(f"No dog profile with ID {dog_id}")
        self.dog_id = dog_id


def _require_name(profile: Profile) -> None:
    if not profile.name.strip():
        raise ValueError("A dog profile needs a name.")


def _index_of(household: Household, dog_id: str) -> int:
    for index, dog in enumerate(household.dogs):
        if dog.id == dog_id:
            return index
    raise DogNotFoundError(dog_id)


def add_dog(household: Household, profile: Profile) -> Profile:
    """Add a dog under a fresh ID; the first dog added becomes active.

    Args:
        household: Household to modify in place
        profile: Dog details; any ID on it is replaced

    Returns:
        The stored dog profile

    Raises:
        ValueError: If the dog has no name
    """
    _require_name(profile)
    dog = profile.model_copy(update={"id": cuid()})
    household.dogs.append(dog)
    if household.active_id is None:
        household.active_id = dog.id
    logger.info(f"Added dog {dog.id} ({dog.name}), household now has {len(household.dogs)}")
    return dog


def update_dog(household: Household, dog_id: str, profile: Profile) -> Profile:
    """Replace a dog's details, keeping its ID and position.

    Raises:
        ValueError: If the dog has no name
        DogNotFoundError: If no dog has that ID
    """
    _require_name(profile)
    index = _index_of(household, dog_id)
    dog = profile.model_copy(update={"id": dog_id})
    household.dogs[index] = dog
    return dog


def delete_dog(household: Household, dog_id: str) -> None:
    """Remove a dog; removing the active dog leaves nothing selected."""
    del household.dogs[_index_of(household, dog_id)]
    if household.active_id == dog_id:
        household.active_id = None
    logger.info(f"Removed dog {dog_id}")


def select_dog(household: Household, dog_id: str) -> Profile:
    """Make a dog the subject of advice and ads."""
    index = _index_of(household, dog_id)
    household.active_id = dog_id
    return household.dogs[index]


def save_active_dog(household: Household, profile: Profile) -> Profile:
    """Update the active dog, or add one when nothing is selected."""
    if household.active_id is None:
        return add_dog(household, profile)
    return update_dog(household, household.active_id, profile)


def update_owner(household: Household, owner: OwnerProfile) -> OwnerProfile:
    household.owner = owner
    return owner
