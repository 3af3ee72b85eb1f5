"""Advisory format checks for profile fields."""

import re

from paws4life.models.profile import Profile, ProfileValidation

AGE_PATTERN = re.compile(r"[0-9]+(\s*(yr|yrs|year|years|mo|mos|month|months))?", re.IGNORECASE)
WEIGHT_PATTERN = re.compile(r"[0-9]+(\s*(kg|lbs|lb))?", re.IGNORECASE)

AGE_ERROR = "Use a number with an optional unit, e.g. '5 years' or '8 months'."
WEIGHT_ERROR = "Use a number with an optional unit, e.g. '30kg' or '15 lbs'."


def is_valid_age(value: str) -> bool:
    """Check an age string; empty means no opinion."""
    return value == "" or AGE_PATTERN.fullmatch(value) is not None


def is_valid_weight(value: str) -> bool:
    """Check a weight string; empty means no opinion."""
    return value == "" or WEIGHT_PATTERN.fullmatch(value) is not None


def validate_profile(profile: Profile) -> ProfileValidation:
    """Flag malformed age/weight values without rejecting them."""
    return ProfileValidation(
        age_error=None if is_valid_age(profile.age) else AGE_ERROR,
        weight_error=None if is_valid_weight(profile.weight) else WEIGHT_ERROR,
    )
