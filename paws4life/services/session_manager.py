"""Session management for in-memory storage."""

import os
from datetime import UTC, datetime, timedelta

from cuid2 import cuid_wrapper

from paws4life.models.session import Session
from paws4life.services.profile_store import ProfileStore, profile_store
from paws4life.utils.logging import get_logger

logger = get_logger(__name__)

cuid = cuid_wrapper()


class InMemorySessionManager:
    """In-memory session manager; households are persisted through a profile store."""

    def __init__(self, store: ProfileStore | None = None, session_timeout_minutes: int = 60):
        """Initialize session manager.

        Args:
            store: Profile store (defaults to the global instance)
            session_timeout_minutes: Minutes of inactivity before a session expires
        """
        self.sessions: dict[str, Session] = {}
        self.store = store if store is not None else profile_store
        self.session_timeout = timedelta(minutes=session_timeout_minutes)

    def get_or_create_session(self, session_id: str | None = None) -> Session:
        """Get existing session or create new one.

        A session ID that is no longer in memory is recreated with the
        household stored under it.

        Args:
            session_id: Optional existing session ID

        Returns:
            Session object (existing or newly created)
        """
        self._cleanup_expired_sessions()

        if session_id and session_id in self.sessions:
            session = self.sessions[session_id]
            session.update_activity()
            return session

        new_session_id = session_id or self._generate_session_id()
        session = Session(session_id=new_session_id, household=self.store.load(new_session_id))
        self.sessions[new_session_id] = session
        logger.info(f"Created session {new_session_id} with {len(session.household.dogs)} stored dogs")
        return session

    def get_session(self, session_id: str) -> Session | None:
        """Get existing session by ID.

        Args:
            session_id: Session identifier

        Returns:
            Session if active or restorable from the profile store, None otherwise
        """
        self._cleanup_expired_sessions()

        session = self.sessions.get(session_id)
        if session:
            session.update_activity()
            return session

        if self.store.contains(session_id):
            logger.info(f"Restoring session {session_id} from profile store")
            return self.get_or_create_session(session_id)
        return None

    def save_household(self, session: Session) -> None:
        """Persist the session's owner and dogs."""
        session.update_activity()
        self.store.save(session.session_id, session.household)
        logger.info(f"Saved household for session {session.session_id}")

    def delete_session(self, session_id: str) -> bool:
        """Delete a session.

        Args:
            session_id: Session identifier

        Returns:
            True if session was deleted, False if not found
        """
        if session_id in self.sessions:
            del self.sessions[session_id]
            return True
        return False

    def _generate_session_id(self) -> str:
        """Generate a new CUID-based session ID."""
        return cuid()

    def _cleanup_expired_sessions(self) -> None:
        """Remove idle sessions; busy ones are kept until their request settles."""
        current_time = datetime.now(UTC)
        expired_sessions = [
            session_id
            for session_id, session in self.sessions.items()
            if not session.busy and current_time - session.last_activity > self.session_timeout
        ]

        for session_id in expired_sessions:
            del self.sessions[session_id]

    def get_session_count(self) -> int:
        """Get current number of active sessions."""
        self._cleanup_expired_sessions()
        return len(self.sessions)


session_manager = InMemorySessionManager(session_timeout_minutes=int(os.getenv("SESSION_TIMEOUT_MINUTES", "60")))
