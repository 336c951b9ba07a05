"""Proposal view models - derived presentation of a central itinerary."""

import datetime as dt
from typing import Any

from pydantic import BaseModel, Field

from tripdesk.models.common import Location
from tripdesk.models.itinerary import (
    Accommodation,
    Activity,
    Meal,
    TransportSegment,
    Travelers,
)


class ServiceCosts(BaseModel):
    """Trip cost subtotals by service category."""

    sightseeing: float
    transport: float
    dining: float
    accommodation: float
    total: float


class AccommodationLine(BaseModel):
    """One priced accommodation inside an option."""

    accommodation_id: str
    name: str
    day_ids: list[str]
    nights: int
    rooms: int
    price_per_night: float
    room_total: float
    child_surcharge: float
    total: float


class AccommodationPricingOption(BaseModel):
    """Price of the trip when the travelers pick one accommodation option.

    ``adult_price``/``child_price`` split the accommodation slice across the
    party; ``per_person_price`` splits the marked-up total.
    """

    option: int
    label: str
    accommodations: list[AccommodationLine]
    total_nights: int
    total_rooms: int
    accommodation_total: float
    child_surcharge: float
    adult_price: float
    child_price: float
    service_total: float
    base_total: float
    markup: float
    final_total: float
    per_person_price: float


class ProposalDay(BaseModel):
    """Day as the proposal UI renders it, keyed by day id."""

    day_id: str
    day: int
    date: dt.date
    location: Location
    accommodation: Accommodation | None
    accommodation_options: list[Accommodation]
    activities: list[Activity]
    transport: list[TransportSegment]
    meals: list[Meal]
    notes: str
    total_cost: float


class ProposalDayEdit(BaseModel):
    """Partial day edit coming from the proposal UI.

    Only fields explicitly set are applied, so ``accommodation=None`` clears
    the accommodation while an omitted field leaves it alone.
    """

    date: dt.date | None = None
    location: Location | None = None
    accommodation: Accommodation | None = None
    accommodation_options: list[Accommodation] | None = None
    activities: list[Activity] | None = None
    transport: list[TransportSegment] | None = None
    meals: list[Meal] | None = None
    notes: str | None = None

    def to_changes(self) -> dict[str, Any]:
        """Explicitly set fields as a day-level partial update."""
        return {name: getattr(self, name) for name in self.model_fields_set}


class ProposalSummarySnapshot(BaseModel):
    """Denormalized proposal projection. Always recomputed, never merged."""

    itinerary_id: str
    context_id: str
    title: str
    currency: str
    party: Travelers
    days: list[ProposalDay]
    service_costs: ServiceCosts
    options: list[AccommodationPricingOption]
    base_cost: float
    markup: float
    final_price: float
    warnings: list[str] = Field(default_factory=list)
    last_calculated: dt.datetime
