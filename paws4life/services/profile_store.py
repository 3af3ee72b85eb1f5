"""Household profile persistence interface and implementations."""

import json
import os
from pathlib import Path
from threading import Lock
from typing import Any, Protocol

from pydantic import ValidationError

from paws4life.models.profile import Household
from paws4life.utils.logging import get_logger

logger = get_logger(__name__)

PROFILE_KEY_PREFIX = "paws_profile"


def profile_key(owner_id: str) -> str:
    """Storage key for an owner's household."""
    return f"{PROFILE_KEY_PREFIX}:{owner_id}"


def decode_household(raw: Any) -> Household:
    """Decode stored household data, falling back to an empty household."""
    if raw is None:
        return Household()
    try:
        if isinstance(raw, str | bytes):
            raw = json.loads(raw)
        household = Household.model_validate(raw)
    except (ValueError, ValidationError) as e:
        logger.warning(f"Ignoring malformed stored profile: {e}")
        return Household()

    if household.active_id and household.active_dog is None:
        logger.warning(f"Stored active dog {household.active_id} no longer exists, clearing selection")
        household.active_id = None
    return household


class ProfileStore(Protocol):
    """Interface for household persistence."""

    def load(self, owner_id: str) -> Household:
        """Load an owner's household, or an empty one if none is stored."""
        ...

    def save(self, owner_id: str, household: Household) -> None:
        """Persist an owner's household."""
        ...

    def contains(self, owner_id: str) -> bool:
        """Whether anything is stored for the owner."""
        ...


class InMemoryProfileStore:
    """Profile store kept in process memory."""

    def __init__(self):
        self.items: dict[str, Any] = {}

    def load(self, owner_id: str) -> Household:
        return decode_household(self.items.get(profile_key(owner_id)))

    def save(self, owner_id: str, household: Household) -> None:
        self.items[profile_key(owner_id)] = household.model_dump()

    def contains(self, owner_id: str) -> bool:
        return profile_key(owner_id) in self.items


class JsonFileProfileStore:
    """Profile store backed by a single JSON document on disk."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = Lock()

    def load(self, owner_id: str) -> Household:
        with self._lock:
            return decode_household(self._read_all().get(profile_key(owner_id)))

    def save(self, owner_id: str, household: Household) -> None:
        with self._lock:
            items = self._read_all()
            items[profile_key(owner_id)] = household.model_dump()
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp_path.write_text(json.dumps(items, indent=2), encoding="utf-8")
            tmp_path.replace(self.path)

    def contains(self, owner_id: str) -> bool:
        with self._lock:
            return profile_key(owner_id) in self._read_all()

    def _read_all(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Profile store {self.path} is unreadable, starting empty: {e}")
            return {}
        return data if isinstance(data, dict) else {}


def create_profile_store() -> ProfileStore:
    """Build the store named by PROFILE_STORE_PATH, or an in-memory one."""
    path = os.getenv("PROFILE_STORE_PATH")
    if path:
        logger.info(f"Using JSON profile store at {path}")
        return JsonFileProfileStore(path)
    return InMemoryProfileStore()


profile_store = create_profile_store()
