"""Sponsored catalog and profile-based ad ranking."""

from collections.abc import Sequence

from paws4life.models.ads import Advertisement
from paws4life.models.profile import Profile

BREED_MATCH_SCORE = 2
CONDITION_MATCH_SCORE = 3

AD_CATALOG: tuple[Advertisement, ...] = (
    Advertisement(
        id="ad-vet-24h",
        title="Central Vet Hospital",
        description="24/7 emergency care with board-certified veterinarians.",
        image_url="https://images.paws4life.ai/ads/central-vet.jpg",
        link="https://centralvet.example.com",
        type="vet",
        promoted=True,
    ),
    Advertisement(
        id="ad-food-renal",
        title="RenalCare Prescription Diet",
        description="Low-phosphorus nutrition formulated for kidney support.",
        image_url="https://images.paws4life.ai/ads/renalcare.jpg",
        link="https://renalcare.example.com",
        type="food",
        target_conditions=("Kidney", "Renal"),
    ),
    Advertisement(
        id="ad-food-large-breed",
        title="Big Paws Large Breed Kibble",
        description="Joint-friendly recipe for retrievers and shepherds.",
        image_url="https://images.paws4life.ai/ads/big-paws.jpg",
        link="https://bigpaws.example.com",
        type="food",
        target_breeds=("Labrador", "Golden Retriever", "German Shepherd"),
    ),
    Advertisement(
        id="ad-food-glycemic",
        title="SteadyPaws Diabetic Formula",
        description="High-fibre, low-glycemic meals for diabetic dogs.",
        image_url="https://images.paws4life.ai/ads/steadypaws.jpg",
        link="https://steadypaws.example.com",
        type="food",
        target_conditions=("Diabetes",),
    ),
    Advertisement(
        id="ad-accessory-harness",
        title="Flat-Face Comfort Harness",
        description="Chest harness that keeps pressure off the airway.",
        image_url="https://images.paws4life.ai/ads/comfort-harness.jpg",
        link="https://comfortharness.example.com",
        type="accessory",
        target_breeds=("Bulldog", "Pug", "Boxer"),
        target_conditions=("Breathing", "Brachycephalic"),
    ),
    Advertisement(
        id="ad-food-hypoallergenic",
        title="PureHound Hypoallergenic Bites",
        description="Single-protein treats for sensitive skin and stomachs.",
        image_url="https://images.paws4life.ai/ads/purehound.jpg",
        link="https://purehound.example.com",
        type="food",
        target_conditions=("Allergy", "Dermatitis", "Itch"),
    ),
    Advertisement(
        id="ad-breeder-lab",
        title="Lakeside Labradors",
        description="Health-tested Labrador litters from a registered breeder.",
        image_url="https://images.paws4life.ai/ads/lakeside-labs.jpg",
        link="https://lakesidelabs.example.com",
        type="breeder",
        target_breeds=("Labrador",),
    ),
    Advertisement(
        id="ad-accessory-joint",
        title="FlexiJoint Orthopedic Bed",
        description="Memory-foam support for dogs with arthritis or hip dysplasia.",
        image_url="https://images.paws4life.ai/ads/flexijoint.jpg",
        link="https://flexijoint.example.com",
        type="accessory",
        target_conditions=("Arthritis", "Dysplasia", "Joint"),
    ),
)


def _matches_any(targets: Sequence[str], text: str) -> bool:
    """Whether any non-blank target is a case-insensitive substring of text."""
    haystack = text.lower()
    return any(target.strip() and target.lower() in haystack for target in targets)


def score(ad: Advertisement, profile: Profile) -> int:
    """Relevance of one ad to a profile."""
    total = 0
    if profile.breed and _matches_any(ad.target_breeds, profile.breed):
        total += BREED_MATCH_SCORE
    if profile.conditions and _matches_any(ad.target_conditions, profile.conditions):
        total += CONDITION_MATCH_SCORE
    return total


def rank(catalog: Sequence[Advertisement], profile: Profile) -> list[Advertisement]:
    """Order the catalog by descending relevance to the profile.

    Ties keep their catalog order.
    """
    return sorted(catalog, key=lambda ad: score(ad, profile), reverse=True)
