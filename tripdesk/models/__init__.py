"""Models package - re-exports for convenience."""

from tripdesk.models.common import (
    OPTION_LABELS,
    AccommodationTier,
    ActivityKind,
    ContextKind,
    Coordinates,
    ItineraryStatus,
    Location,
    MarkupType,
    MealKind,
    SlabBasis,
    TransportMode,
)
from tripdesk.models.itinerary import (
    Accommodation,
    Activity,
    Budget,
    CentralItinerary,
    Duration,
    ItineraryDay,
    Meal,
    Preferences,
    TransportSegment,
    Travelers,
)
from tripdesk.models.pricing import MarkupRule, MarkupSlab, PricingSummary
from tripdesk.models.proposal import (
    AccommodationLine,
    AccommodationPricingOption,
    ProposalDay,
    ProposalDayEdit,
    ProposalSummarySnapshot,
    ServiceCosts,
)

__all__ = [
    # Common
    "Coordinates",
    "Location",
    "ItineraryStatus",
    "ContextKind",
    "MarkupType",
    "SlabBasis",
    "AccommodationTier",
    "ActivityKind",
    "TransportMode",
    "MealKind",
    "OPTION_LABELS",
    # Itinerary
    "CentralItinerary",
    "ItineraryDay",
    "Accommodation",
    "Activity",
    "TransportSegment",
    "Meal",
    "Duration",
    "Travelers",
    "Budget",
    "Preferences",
    # Pricing
    "MarkupRule",
    "MarkupSlab",
    "PricingSummary",
    # Proposal
    "ProposalSummarySnapshot",
    "ProposalDay",
    "ProposalDayEdit",
    "ServiceCosts",
    "AccommodationLine",
    "AccommodationPricingOption",
]
