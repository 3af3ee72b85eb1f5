"""Tests for sessions, the session manager and the conversation service."""

import asyncio
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, Mock

import pytest

from paws4life.models.messages import GeoPoint, Source
from paws4life.models.profile import Household, Profile
from paws4life.models.session import Session, SessionBusyError
from paws4life.services.advice import AdviceResult
from paws4life.services.conversation import ConversationService
from paws4life.services.household import add_dog
from paws4life.services.profile_store import InMemoryProfileStore
from paws4life.services.session_manager import InMemorySessionManager


def household_with(*dogs: Profile) -> Household:
    """Household whose first dog is active."""
    household = Household()
    for dog in dogs:
        add_dog(household, dog)
    return household


class TestSession:
    """Tests for the session state object."""

    def test_request_slot_sets_and_clears_busy(self):
        """Test that the busy flag is held only inside the slot."""
        session = Session(session_id="s1")

        with session.request_slot():
            assert session.busy is True

        assert session.busy is False

    def test_request_slot_rejects_second_request(self):
        """Test that a busy session refuses another request."""
        session = Session(session_id="s1")

        with session.request_slot(), pytest.raises(SessionBusyError), session.request_slot():
            pass

        assert session.busy is False

    def test_request_slot_clears_on_error(self):
        """Test that a failure inside the slot still frees it."""
        session = Session(session_id="s1")

        with pytest.raises(RuntimeError), session.request_slot():
            raise RuntimeError("boom")

        assert session.busy is False

    def test_update_location_ignores_none(self):
        """Test that a missing location keeps the last known one."""
        session = Session(session_id="s1")
        location = GeoPoint(latitude=1.0, longitude=2.0)

        session.update_location(location)
        session.update_location(None)

        assert session.location == location


class TestSessionManager:
    """Tests for the in-memory session manager."""

    def test_new_session_loads_stored_household(self):
        """Test that a stored household is loaded for a known session ID."""
        store = InMemoryProfileStore()
        store.save("owner-1", household_with(Profile(name="Rex")))
        manager = InMemorySessionManager(store=store)

        session = manager.get_or_create_session("owner-1")

        assert session.profile.name == "Rex"

    def test_generated_session_ids_are_unique(self):
        """Test that new sessions get distinct IDs."""
        manager = InMemorySessionManager(store=InMemoryProfileStore())
        first = manager.get_or_create_session()
        second = manager.get_or_create_session()
        assert first.session_id != second.session_id

    def test_save_household_persists(self):
        """Test that saving writes the session's household to the store."""
        store = InMemoryProfileStore()
        manager = InMemorySessionManager(store=store)
        session = manager.get_or_create_session()
        session.household = household_with(Profile(name="Bella", weight="heavy"))

        manager.save_household(session)

        assert store.load(session.session_id).active_dog.weight == "heavy"

    def test_dropped_session_restored_from_store(self):
        """Test that a session gone from memory comes back with its saved dogs."""
        store = InMemoryProfileStore()
        manager = InMemorySessionManager(store=store)
        session = manager.get_or_create_session()
        session.household = household_with(Profile(name="Rex"))
        manager.save_household(session)
        manager.delete_session(session.session_id)

        restored = manager.get_session(session.session_id)

        assert restored is not session
        assert restored.profile.name == "Rex"

    def test_unknown_session_not_created(self):
        """Test that an ID with nothing stored is not turned into a session."""
        manager = InMemorySessionManager(store=InMemoryProfileStore())
        assert manager.get_session("never-seen") is None
        assert manager.get_session_count() == 0

    def test_expired_sessions_removed_unless_busy(self):
        """Test idle expiry keeps sessions with a request in flight."""
        manager = InMemorySessionManager(store=InMemoryProfileStore(), session_timeout_minutes=1)
        idle = manager.get_or_create_session("idle")
        busy = manager.get_or_create_session("busy")
        stale = datetime.now(UTC) - timedelta(minutes=5)
        idle.last_activity = stale
        busy.last_activity = stale
        busy.busy = True

        assert manager.get_session("idle") is None
        assert manager.get_session("busy") is busy

    def test_delete_session(self):
        """Test deleting sessions."""
        manager = InMemorySessionManager(store=InMemoryProfileStore())
        session = manager.get_or_create_session()
        assert manager.delete_session(session.session_id) is True
        assert manager.delete_session(session.session_id) is False


class TestConversationService:
    """Tests for conversation flow within a session."""

    @pytest.fixture
    def composer(self):
        """Composer returning a fixed answer."""
        composer = Mock()
        composer.compose_and_interpret = AsyncMock(
            return_value=AdviceResult(text="Call your vet.", sources=[Source(title="VCA", uri="https://vca.com")])
        )
        return composer

    @pytest.mark.asyncio
    async def test_turns_recorded_after_answer(self, composer):
        """Test that the user turn and the answer are appended in order."""
        session = Session(session_id="s1", household=household_with(Profile(name="Rex")))
        service = ConversationService(composer=composer)

        advice = await service.process_message("He ate chocolate", session)

        assert advice.text == "Call your vet."
        assert [(turn.role, turn.text) for turn in session.history] == [
            ("user", "He ate chocolate"),
            ("assistant", "Call your vet."),
        ]
        assert session.history[1].sources == [Source(title="VCA", uri="https://vca.com")]
        assert session.busy is False

    @pytest.mark.asyncio
    async def test_composer_gets_prior_history_profile_and_location(self, composer):
        """Test what the composer is called with."""
        session = Session(session_id="s1", household=household_with(Profile(name="Rex")))
        service = ConversationService(composer=composer)
        location = GeoPoint(latitude=10.0, longitude=20.0)

        await service.process_message("First", session)
        await service.process_message("Second", session, location=location)

        args = composer.compose_and_interpret.call_args
        assert args.args[0] == "Second"
        assert [turn.text for turn in args.args[1]] == ["First", "Call your vet."]
        assert args.kwargs["location"] == location
        assert args.kwargs["profile"].name == "Rex"

    @pytest.mark.asyncio
    async def test_concurrent_submission_rejected(self):
        """Test that a second message while one is in flight is refused."""
        release = asyncio.Event()

        async def slow_answer(*args, **kwargs):
            await release.wait()
            return AdviceResult(text="done")

        composer = Mock(compose_and_interpret=AsyncMock(side_effect=slow_answer))
        session = Session(session_id="s1")
        service = ConversationService(composer=composer)

        first = asyncio.create_task(service.process_message("one", session))
        await asyncio.sleep(0)
        assert session.busy is True

        with pytest.raises(SessionBusyError):
            await service.process_message("two", session)

        release.set()
        await first

        assert session.busy is False
        assert [turn.text for turn in session.history] == ["one", "done"]

    @pytest.mark.asyncio
    async def test_message_too_long(self, composer):
        """Test that overlong messages are refused before any call."""
        service = ConversationService(composer=composer)

        with pytest.raises(ValueError, match="Your message is too long"):
            await service.process_message("a" * 5000, Session(session_id="s1"))

        composer.compose_and_interpret.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("message", ["", "   ", "\n\t"])
    async def test_blank_message_rejected(self, composer, message):
        """Test that blank messages are refused before any call."""
        service = ConversationService(composer=composer)
        session = Session(session_id="s1")

        with pytest.raises(ValueError, match="Please enter a message"):
            await service.process_message(message, session)

        composer.compose_and_interpret.assert_not_awaited()
        assert session.history == []

    @pytest.mark.asyncio
    async def test_active_dog_and_owner_sent(self, composer):
        """Test that advice is about the selected dog and addresses the owner."""
        household = household_with(Profile(name="Rex"), Profile(name="Bella"))
        household.active_id = household.dogs[1].id
        household.owner.name = "Sam"
        service = ConversationService(composer=composer)

        await service.process_message("Is she ok?", Session(session_id="s1", household=household))

        kwargs = composer.compose_and_interpret.call_args.kwargs
        assert kwargs["profile"].name == "Bella"
        assert kwargs["owner_name"] == "Sam"
