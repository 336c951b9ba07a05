"""Mapping between the central itinerary and the proposal view.

Forward: ``build_proposal_snapshot`` derives the proposal view from the
document. It is deterministic apart from ``last_calculated``.

Reverse: edits made in the proposal view are applied back to the document by
day id, never by position, since positions shift when days are removed.
"""

from datetime import datetime

from tripdesk.errors import DayNotFoundError
from tripdesk.itinerary.document import update_day
from tripdesk.models.itinerary import CentralItinerary, ItineraryDay, Travelers
from tripdesk.models.proposal import (
    ProposalDay,
    ProposalDayEdit,
    ProposalSummarySnapshot,
)
from tripdesk.pricing.accommodation import (
    EXTRA_BED_SURCHARGE_RATE,
    NIGHTLY_CHILD_SURCHARGE_RATE,
    price_accommodation_options,
    validate_accommodations,
)
from tripdesk.pricing.engine import apply_markup, service_costs, trip_base_cost

EDITABLE_FIELDS = (
    "date",
    "location",
    "accommodation",
    "accommodation_options",
    "activities",
    "transport",
    "meals",
    "notes",
)


def to_proposal_day(day: ItineraryDay) -> ProposalDay:
    return ProposalDay(
        day_id=day.id,
        day=day.day,
        date=day.date,
        location=day.location,
        accommodation=day.accommodation,
        accommodation_options=list(day.accommodation_options),
        activities=list(day.activities),
        transport=list(day.transport),
        meals=list(day.meals),
        notes=day.notes,
        total_cost=day.total_cost,
    )


def build_proposal_snapshot(
    itinerary: CentralItinerary,
    party: Travelers | None = None,
    *,
    now: datetime | None = None,
    extra_bed_rate: float = EXTRA_BED_SURCHARGE_RATE,
    nightly_rate: float = NIGHTLY_CHILD_SURCHARGE_RATE,
) -> ProposalSummarySnapshot:
    """Derive the proposal view of an itinerary.

    Args:
        itinerary: Source document
        party: Party to price for (defaults to the itinerary's travelers)
        now: Timestamp for last_calculated
        extra_bed_rate: Child surcharge share when extra beds are booked
        nightly_rate: Per-child nightly surcharge share

    Returns:
        Fresh snapshot; options without accommodations are omitted

    Raises:
        NoMatchingSlabError: slab markup has no slab for a computed total
    """
    party = party or itinerary.preferences.travelers
    rule = itinerary.pricing.markup_rule
    services = service_costs(itinerary.days)
    options = price_accommodation_options(
        itinerary.days,
        party,
        services,
        rule,
        extra_bed_rate=extra_bed_rate,
        nightly_rate=nightly_rate,
    )
    trip = apply_markup(trip_base_cost(itinerary.days), rule, party.total)

    return ProposalSummarySnapshot(
        itinerary_id=itinerary.id,
        context_id=itinerary.context_id,
        title=itinerary.title,
        currency=itinerary.pricing.currency,
        party=party,
        days=[to_proposal_day(day) for day in itinerary.days],
        service_costs=services,
        options=options,
        base_cost=trip.base_cost,
        markup=trip.markup,
        final_price=trip.final_price,
        warnings=validate_accommodations(itinerary.days),
        last_calculated=now or datetime.now(),
    )


def apply_proposal_day_edit(
    itinerary: CentralItinerary,
    day_id: str,
    edit: ProposalDayEdit,
    now: datetime | None = None,
) -> CentralItinerary:
    """Apply a proposal-view edit to the day with the given id.

    Raises:
        DayNotFoundError: no day with day_id in the itinerary
        InvalidStateError: edit does not validate against the day
    """
    index = itinerary.index_of(day_id)
    if index is None:
        raise DayNotFoundError(day_id)
    return update_day(itinerary, index, edit.to_changes(), now)


def edit_from_proposal_day(proposal_day: ProposalDay) -> ProposalDayEdit:
    """Full edit carrying every editable field of a proposal day."""
    return ProposalDayEdit(**{name: getattr(proposal_day, name) for name in EDITABLE_FIELDS})


def apply_snapshot(
    itinerary: CentralItinerary,
    snapshot: ProposalSummarySnapshot,
    now: datetime | None = None,
) -> CentralItinerary:
    """Write every day of a proposal snapshot back into the itinerary.

    Days whose content already matches are skipped, so applying an unchanged
    snapshot returns the itinerary itself.

    Raises:
        DayNotFoundError: snapshot refers to a day the itinerary no longer has
    """
    result = itinerary
    for proposal_day in snapshot.days:
        index = result.index_of(proposal_day.day_id)
        if index is None:
            raise DayNotFoundError(proposal_day.day_id)
        current = to_proposal_day(result.days[index])
        if current.model_dump(include=set(EDITABLE_FIELDS)) == proposal_day.model_dump(
            include=set(EDITABLE_FIELDS)
        ):
            continue
        result = apply_proposal_day_edit(
            result, proposal_day.day_id, edit_from_proposal_day(proposal_day), now
        )
    return result
