"""Conversation service for managing the advice conversation flow."""

import json

from paws4life.models.messages import ConversationTurn, GeoPoint
from paws4life.models.session import Session
from paws4life.services.advice import AdviceComposer, AdviceResult, advice_composer
from paws4life.utils.logging import get_logger

logger = get_logger(__name__)

MAX_MESSAGE_CHARS = 4000  # Roughly 1000 tokens


class ConversationService:
    """Service for handling advice conversations within a session."""

    def __init__(self, composer: AdviceComposer | None = None):
        """Initialize conversation service.

        Args:
            composer: Advice composer (defaults to the global instance)
        """
        self.composer = composer or advice_composer

    async def process_message(self, message: str, session: Session, location: GeoPoint | None = None) -> AdviceResult:
        """Process a user message and record both turns in the session history.

        Args:
            message: User's message
            session: Current session state
            location: Live position reported with this message, if any

        Returns:
            Normalized advice

        Raises:
            ValueError: If message is blank or exceeds the length limit
            SessionBusyError: If the session already has a request in flight
        """
        self._validate_message(message)

        with session.request_slot():
            logger.info(f"Processing message for session {session.session_id} {json.dumps(session.as_dict())}")
            session.update_location(location)

            history = list(session.history)
            advice = await self.composer.compose_and_interpret(
                message,
                history,
                location=session.location,
                profile=session.profile,
                owner_name=session.owner_name,
            )

            session.append_turn(ConversationTurn(role="user", text=message))
            session.append_turn(ConversationTurn(role="assistant", text=advice.text, sources=advice.sources))

        return advice

    def _validate_message(self, message: str) -> None:
        """Validate message is non-blank and doesn't exceed the length limit.

        Raises:
            ValueError: If message is blank or exceeds the limit
        """
        if not message.strip():
            raise ValueError("Please enter a message.")
        if len(message) > MAX_MESSAGE_CHARS:
            max_message_tokens = MAX_MESSAGE_CHARS // 4
            raise ValueError(f"Your message is too long. Please keep messages under {max_message_tokens} tokens.")


conversation_service = ConversationService()
