"""Application-wide constants for the ActivityHub booking engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

BRAND_NAME = "ActivityHub"

API_TITLE = f"{BRAND_NAME} API"
API_DESCRIPTION = f"Booking and capacity allocation API for {BRAND_NAME} providers and customers"
API_VERSION = "1.0.0"

# Participant and duration constraints
MIN_PARTICIPANTS = 1
MAX_PARTICIPANTS_PER_BOOKING = 500
MIN_SCHEDULE_DURATION = 5  # minutes
MAX_SCHEDULE_DURATION = 24 * 60  # minutes

# Recurring generation guard rails
MAX_GENERATION_RANGE_DAYS = 366

# Text constraints
MAX_SPECIAL_REQUESTS_LENGTH = 2000
MAX_TITLE_LENGTH = 200


@dataclass(frozen=True)
class TierLimits:
    """
    Monthly booking ceilings keyed by subscription tier.

    A ceiling of ``None`` means the tier is unbounded.
    """

    ceilings: Mapping[str, Optional[int]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "ceilings",
            MappingProxyType({str(k).upper(): v for k, v in dict(self.ceilings).items()}),
        )

    def ceiling_for(self, tier: str) -> Optional[int]:
        """Return the ceiling for ``tier`` (None = unbounded)."""
        key = str(getattr(tier, "value", tier)).upper()
        if key not in self.ceilings:
            raise ValueError(f"No booking ceiling configured for tier {key}")
        return self.ceilings[key]


DEFAULT_TIER_LIMITS = TierLimits(
    ceilings={
        "BASIC": 50,
        "PROFESSIONAL": 200,
        "ENTERPRISE": None,
    }
)
