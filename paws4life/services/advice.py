"""Advice request composition and response normalization."""

from dataclasses import dataclass, field
from typing import Protocol

from paws4life.clients.gemini import get_gemini_client
from paws4life.models.llm import GenerationRequest, GenerationResult, LLMMessage
from paws4life.models.messages import ConversationTurn, GeoPoint, Source
from paws4life.models.profile import Profile
from paws4life.utils.logging import get_logger

logger = get_logger(__name__)

EMPTY_ANSWER_TEXT = "I'm unable to process that request right now. Please try rephrasing your question."
SERVICE_ERROR_TEXT = "I apologize, but I'm having trouble connecting to the advice service. Please try again."

DEFAULT_OWNER_NAME = "Pet Owner"

VERIFIED_KEYWORDS = ("verified", "toxin", "vaccine")

REPUTABLE_FACTS = """\
1. Rabies vaccines are required by law in most regions; first dose at 12-16 weeks.
2. Chocolate, grapes, and xylitol are toxic; immediate vet intervention required.
3. Puppies require parvovirus boosters every 3-4 weeks until 16 weeks old.
4. Ticks can transmit Lyme disease within 24-48 hours of attachment.
5. Heartworm prevention must be administered year-round in humid climates.
6. Onions, garlic, and macadamia nuts can cause serious illness or red blood cell damage."""

PERSONA_PREAMBLE = f"""You are "paws4life.ai", an expert veterinary assistant for dog owners.

### SOURCE HIERARCHY:
1. MANDATORY: Reference the "REPUTABLE VETERINARY FACTS" below first.
2. SECONDARY: Use high-quality veterinary training.
3. TERTIARY: Use Google Search for local services or recent news.

### REPUTABLE VETERINARY FACTS:
{REPUTABLE_FACTS}

### BEHAVIOR:
- For toxins or vaccines, answer from the REPUTABLE VETERINARY FACTS and say they are verified.
- For any medical symptom, injury or suspected poisoning, tell the owner to contact a veterinarian; \
for emergencies, tell them to go to an emergency clinic immediately.
- Be concise and authoritative. Use short paragraphs and bullet points, and bold key warnings."""


class AdviceClient(Protocol):
    """Interface for the advice-generation service."""

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """Send one request and return the answer with its citations."""
        ...


@dataclass
class AdviceResult:
    """Normalized advice ready for display."""

    text: str
    sources: list[Source] = field(default_factory=list)
    is_verified: bool = False


def build_profile_block(profile: Profile) -> str:
    """Describe the dog profile for the system instruction."""
    return (
        f"### ACTIVE DOG PROFILE:\n"
        f"- Name: {profile.name}\n"
        f"- Breed: {profile.breed or 'Unknown'}\n"
        f"- Age: {profile.age or 'Unknown'}\n"
        f"- Weight: {profile.weight or 'Unknown'}\n"
        f"- Allergies: {profile.allergies or 'None listed'}\n"
        f"- Medical conditions: {profile.conditions or 'None listed'}\n"
        f"- Home location: {profile.home_location or 'Not specified'}\n"
        f"When the user asks about services near home, use the home location above "
        f"instead of their live GPS position."
    )


def build_system_instruction(profile: Profile | None = None, owner_name: str | None = None) -> str:
    """Persona preamble and owner line, then the profile block when the dog has a name."""
    instruction = PERSONA_PREAMBLE + f"\n- The owner is {owner_name or DEFAULT_OWNER_NAME}."
    if profile is not None and profile.name:
        instruction += "\n\n" + build_profile_block(profile)
    return instruction


def is_verified_answer(text: str) -> bool:
    """Heuristic check that an answer drew on the reputable facts."""
    lowered = text.lower()
    return any(keyword in lowered for keyword in VERIFIED_KEYWORDS)


class AdviceComposer:
    """Builds advice requests and turns responses into display-ready results."""

    def __init__(self, client: AdviceClient | None = None):
        """Initialize composer.

        Args:
            client: Advice-generation client (defaults to the global Gemini client,
                created on first use)
        """
        self._client = client

    @property
    def client(self) -> AdviceClient:
        if self._client is None:
            self._client = get_gemini_client()
        return self._client

    def build_request(
        self,
        prompt: str,
        history: list[ConversationTurn],
        location: GeoPoint | None = None,
        profile: Profile | None = None,
        owner_name: str | None = None,
    ) -> GenerationRequest:
        """Build the outbound request without touching the caller's history."""
        messages = [LLMMessage(role=turn.role, content=turn.text) for turn in history]
        messages.append(LLMMessage(role="user", content=prompt))

        return GenerationRequest(
            messages=messages,
            system_instruction=build_system_instruction(profile, owner_name),
            use_search=True,
            use_maps=location is not None,
            location=location,
        )

    def interpret(self, result: GenerationResult) -> AdviceResult:
        """Normalize a raw generation result."""
        text = result.text or EMPTY_ANSWER_TEXT
        sources = [Source(title=citation.title, uri=citation.uri) for citation in result.citations]
        return AdviceResult(text=text, sources=sources, is_verified=is_verified_answer(text))

    async def compose_and_interpret(
        self,
        prompt: str,
        history: list[ConversationTurn],
        location: GeoPoint | None = None,
        profile: Profile | None = None,
        owner_name: str | None = None,
    ) -> AdviceResult:
        """Ask the advice service and return a well-formed result; never raises.

        Args:
            prompt: The new user message
            history: Prior turns, oldest first
            location: Live position, if known
            profile: Active dog profile, if any
            owner_name: Owner name to address, if known

        Returns:
            Answer text with normalized sources, or the fixed error text on failure
        """
        request = self.build_request(prompt, history, location, profile, owner_name)
        logger.info(
            f"Requesting advice with {len(request.messages)} turns, "
            f"location: {location is not None}, profile: {bool(profile and profile.name)}"
        )

        try:
            result = await self.client.generate(request)
            advice = self.interpret(result)
        except Exception as e:
            logger.error(f"Advice service call failed: {e}", exc_info=True)
            return AdviceResult(text=SERVICE_ERROR_TEXT, sources=[], is_verified=False)

        logger.info(f"Advice received with {len(advice.sources)} sources, verified: {advice.is_verified}")
        return advice


advice_composer = AdviceComposer()
