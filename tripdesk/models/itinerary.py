"""Central itinerary models - the canonical editable trip document."""

import datetime as dt
import uuid

from pydantic import BaseModel, Field, ValidationInfo, field_validator, model_validator

from tripdesk.models.common import (
    AccommodationTier,
    ActivityKind,
    ContextKind,
    ItineraryStatus,
    Location,
    MealKind,
    TransportMode,
)
from tripdesk.models.pricing import PricingSummary


def new_id() -> str:
    return str(uuid.uuid4())


class Activity(BaseModel):
    """Priced activity on a day."""

    id: str = Field(default_factory=new_id)
    name: str
    kind: ActivityKind = ActivityKind.sightseeing
    start_time: str | None = None
    end_time: str | None = None
    price: float = Field(0.0, ge=0)
    description: str = ""


class TransportSegment(BaseModel):
    """Transport leg between two locations."""

    id: str = Field(default_factory=new_id)
    mode: TransportMode = TransportMode.car
    from_location: Location
    to_location: Location
    duration: str | None = None
    price: float = Field(0.0, ge=0)


class Meal(BaseModel):
    """Meal on a day. ``price=None`` means the meal is not itemized."""

    id: str = Field(default_factory=new_id)
    kind: MealKind
    restaurant: str = ""
    cuisine: str | None = None
    price: float | None = Field(None, ge=0)


class Accommodation(BaseModel):
    """Lodging choice, tagged with the comparison option it belongs to."""

    id: str = Field(default_factory=new_id)
    name: str
    room_type: str = "Standard Room"
    option: int = Field(1, ge=1, le=3)
    nights: int = Field(1, ge=1)
    price_per_night: float = Field(0.0, ge=0, description="Per room")
    rooms: int = Field(1, ge=1)
    check_in: dt.date | None = None
    check_out: dt.date | None = None
    number_of_children: int = Field(0, ge=0)
    extra_beds: int = Field(0, ge=0)
    star_rating: int | None = Field(None, ge=1, le=5)

    @field_validator("check_out")
    @classmethod
    def validate_check_out_after_check_in(
        cls, v: dt.date | None, info: ValidationInfo
    ) -> dt.date | None:
        """Ensure check_out > check_in when both are set."""
        check_in = info.data.get("check_in")
        if v is not None and check_in is not None and v <= check_in:
            raise ValueError("check_out must be after check_in")
        return v

    @property
    def room_total(self) -> float:
        return self.price_per_night * self.nights * self.rooms


class ItineraryDay(BaseModel):
    """One day of the trip. ``total_cost`` is derived by the pricing engine."""

    id: str = Field(default_factory=new_id)
    day: int = Field(..., ge=1)
    date: dt.date
    location: Location
    accommodation: Accommodation | None = None
    accommodation_options: list[Accommodation] = Field(default_factory=list, max_length=3)
    transport: list[TransportSegment] = Field(default_factory=list)
    activities: list[Activity] = Field(default_factory=list)
    meals: list[Meal] = Field(default_factory=list)
    notes: str = ""
    total_cost: float = 0.0

    @field_validator("accommodation_options")
    @classmethod
    def validate_distinct_options(cls, v: list[Accommodation]) -> list[Accommodation]:
        """At most one accommodation per option tag."""
        tags = [acc.option for acc in v]
        if len(tags) != len(set(tags)):
            raise ValueError("accommodation option tags must be distinct")
        return v

    def primary_accommodation(self) -> Accommodation | None:
        """The accommodation priced into the day: the single one, else option 1."""
        if self.accommodation is not None:
            return self.accommodation
        for acc in self.accommodation_options:
            if acc.option == 1:
                return acc
        return None

    def tagged_accommodations(self) -> list[Accommodation]:
        """Every accommodation on the day, across options."""
        result = list(self.accommodation_options)
        if self.accommodation is not None:
            result.append(self.accommodation)
        return result


class Duration(BaseModel):
    """Trip length; nights = days - 1 once the trip has a day."""

    days: int = Field(0, ge=0)
    nights: int = Field(0, ge=0)

    @model_validator(mode="after")
    def validate_nights(self) -> "Duration":
        """Ensure nights = max(days - 1, 0)."""
        if self.nights != max(self.days - 1, 0):
            raise ValueError("nights must equal days - 1")
        return self

    @classmethod
    def for_days(cls, days: int) -> "Duration":
        return cls(days=days, nights=max(days - 1, 0))


class Travelers(BaseModel):
    """Trip party composition."""

    adults: int = Field(2, ge=0)
    children: int = Field(0, ge=0)

    @property
    def total(self) -> int:
        return self.adults + self.children


class Budget(BaseModel):
    """Traveler budget range."""

    min: float = Field(0.0, ge=0)
    max: float = Field(0.0, ge=0)
    currency: str = "USD"


class Preferences(BaseModel):
    """Traveler preferences."""

    travelers: Travelers = Field(default_factory=Travelers)
    budget: Budget = Field(default_factory=Budget)
    interests: list[str] = Field(default_factory=list)
    accommodation_tier: AccommodationTier = AccommodationTier.mid_range
    transport_preference: str | None = None
    dietary_restrictions: list[str] = Field(default_factory=list)


class CentralItinerary(BaseModel):
    """Canonical multi-day trip document.

    Treated as immutable: every operation returns a new instance so callers
    can compare documents structurally.
    """

    id: str = Field(default_factory=new_id)
    title: str
    description: str = ""
    start_date: dt.date
    end_date: dt.date
    duration: Duration
    destinations: list[Location] = Field(default_factory=list)
    preferences: Preferences = Field(default_factory=Preferences)
    days: list[ItineraryDay] = Field(default_factory=list)
    pricing: PricingSummary = Field(default_factory=PricingSummary)
    status: ItineraryStatus = ItineraryStatus.draft
    context: ContextKind = ContextKind.query
    context_id: str
    created_at: dt.datetime
    updated_at: dt.datetime
    created_by: str = "system"

    @model_validator(mode="after")
    def validate_days(self) -> "CentralItinerary":
        """Enforce day count, contiguity, ordering and id uniqueness."""
        if len(self.days) != self.duration.days:
            raise ValueError("len(days) must equal duration.days")
        for index, day in enumerate(self.days):
            if day.day != index + 1:
                raise ValueError(
                    f"day numbers must be contiguous from 1 (got {day.day} at {index})"
                )
            if index and day.date < self.days[index - 1].date:
                raise ValueError("day dates must be non-decreasing")
        if len({day.id for day in self.days}) != len(self.days):
            raise ValueError("day ids must be unique")
        if self.end_date < self.start_date:
            raise ValueError("end_date must be >= start_date")
        return self

    def index_of(self, day_id: str) -> int | None:
        for index, day in enumerate(self.days):
            if day.id == day_id:
                return index
        return None
