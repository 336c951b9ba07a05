"""Common types and enums shared across all models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Coordinates(BaseModel):
    """Geographic coordinates (WGS84)."""

    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)


class Location(BaseModel):
    """A named place. Immutable value object."""

    model_config = ConfigDict(frozen=True)

    id: str | None = None
    name: str
    country: str
    city: str
    coordinates: Coordinates | None = None


class ItineraryStatus(str, Enum):
    """Itinerary lifecycle status."""

    draft = "draft"
    generated = "generated"
    approved = "approved"
    booked = "booked"


class ContextKind(str, Enum):
    """Business object that owns an itinerary."""

    query = "query"
    proposal = "proposal"
    package = "package"


class MarkupType(str, Enum):
    """Markup scheme."""

    percentage = "percentage"
    fixed = "fixed"
    slab = "slab"


class SlabBasis(str, Enum):
    """Amount compared against slab ranges."""

    total = "total"
    per_person = "per_person"


class AccommodationTier(str, Enum):
    """Traveler's preferred lodging tier."""

    budget = "budget"
    mid_range = "mid-range"
    luxury = "luxury"


class ActivityKind(str, Enum):
    """Type of activity."""

    sightseeing = "sightseeing"
    adventure = "adventure"
    cultural = "cultural"
    leisure = "leisure"
    shopping = "shopping"


class TransportMode(str, Enum):
    """Transport mode."""

    flight = "flight"
    train = "train"
    bus = "bus"
    car = "car"
    ferry = "ferry"


class MealKind(str, Enum):
    """Meal of the day."""

    breakfast = "breakfast"
    lunch = "lunch"
    dinner = "dinner"


OPTION_LABELS: dict[int, str] = {1: "standard", 2: "optional", 3: "alternative"}
