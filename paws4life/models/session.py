"""Session and state management models."""

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from paws4life.models.messages import ConversationTurn, GeoPoint
from paws4life.models.profile import Household, Profile
from paws4life.utils.logging import get_logger

logger = get_logger(__name__)


class SessionBusyError(Exception):
    """Raised when a session already has an advice request in flight."""

    def __init__(self, session_id: str):
        super().__init__(f"Session {session_id} already has a request in progress")
        self.session_id = session_id


@dataclass
class Session:
    """Session state for one owner and their dogs."""

    session_id: str
    household: Household = field(default_factory=Household)
    history: list[ConversationTurn] = field(default_factory=list)
    location: GeoPoint | None = None
    busy: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    last_activity: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def profile(self) -> Profile:
        """The active dog's profile, or an empty one when no dog is selected."""
        return self.household.active_dog or Profile()

    @property
    def owner_name(self) -> str:
        return self.household.owner.name

    def as_dict(self) -> dict[str, Any]:
        """Return the session as a dictionary."""
        return {
            "session_id": self.session_id,
            "profile_name": self.profile.name,
            "dogs": len(self.household.dogs),
            "turns": len(self.history),
            "has_location": self.location is not None,
            "busy": self.busy,
            "created_at": self.created_at.isoformat(),
            "last_activity": self.last_activity.isoformat(),
        }

    def update_activity(self) -> None:
        """Update the last activity timestamp."""
        self.last_activity = datetime.now(UTC)

    def update_location(self, location: GeoPoint | None) -> None:
        """Record the latest known location; None leaves it unchanged."""
        if location is not None:
            self.location = location
            self.update_activity()

    def append_turn(self, turn: ConversationTurn) -> None:
        """Append a turn to the history."""
        self.history.append(turn)
        self.update_activity()

    @contextmanager
    def request_slot(self) -> Iterator[None]:
        """Hold the session's single in-flight request slot.

        Raises:
            SessionBusyError: If another request is already in flight
        """
        if self.busy:
            logger.warning(f"Rejecting submission for busy session {self.session_id}")
            raise SessionBusyError(self.session_id)

        self.busy = True
        self.update_activity()
        try:
            yield
        finally:
            self.busy = False
            self.update_activity()
