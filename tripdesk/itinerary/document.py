"""Pure day-level operations on a central itinerary.

Every function returns a new document and leaves its input untouched. Day
totals and trip pricing are recomputed on every change.
"""

from collections.abc import Mapping, Sequence
from datetime import date, datetime, timedelta
from typing import Any

from pydantic import ValidationError

from tripdesk.errors import IndexOutOfRangeError, InvalidStateError
from tripdesk.models.common import ContextKind, ItineraryStatus, Location, MarkupType
from tripdesk.models.itinerary import CentralItinerary, Duration, ItineraryDay, Preferences
from tripdesk.models.pricing import MarkupRule, PricingSummary
from tripdesk.pricing.engine import reprice

PROTECTED_DAY_FIELDS = frozenset({"id", "day", "total_cost"})


def new_itinerary(
    context_id: str,
    *,
    title: str,
    start_date: date,
    days: int = 0,
    destinations: Sequence[Location] = (),
    context: ContextKind = ContextKind.query,
    preferences: Preferences | None = None,
    markup_rule: MarkupRule | None = None,
    currency: str = "USD",
    created_by: str = "system",
    now: datetime | None = None,
) -> CentralItinerary:
    """Create a draft itinerary.

    Days are spread across destinations in order, e.g. 4 days over 2
    destinations gives 2 days each.

    Raises:
        InvalidStateError: days requested without any destination
    """
    if days and not destinations:
        raise InvalidStateError("cannot create days without destinations")

    now = now or datetime.now()
    rule = markup_rule or MarkupRule(type=MarkupType.percentage)
    itinerary_days = [
        ItineraryDay(
            day=offset + 1,
            date=start_date + timedelta(days=offset),
            location=destinations[offset * len(destinations) // days],
        )
        for offset in range(days)
    ]
    itinerary = CentralItinerary(
        title=title,
        start_date=start_date,
        end_date=itinerary_days[-1].date if itinerary_days else start_date,
        duration=Duration.for_days(days),
        destinations=list(destinations),
        preferences=preferences or Preferences(),
        days=itinerary_days,
        pricing=PricingSummary(markup_type=rule.type, markup_rule=rule, currency=currency),
        status=ItineraryStatus.draft,
        context=context,
        context_id=context_id,
        created_at=now,
        updated_at=now,
        created_by=created_by,
    )
    return reprice(itinerary)


def _with_days(
    itinerary: CentralItinerary, days: list[ItineraryDay], now: datetime | None
) -> CentralItinerary:
    updated = itinerary.model_copy(
        update={
            "days": days,
            "duration": Duration.for_days(len(days)),
            "end_date": days[-1].date if days else itinerary.start_date,
            "updated_at": now or datetime.now(),
        }
    )
    return reprice(updated)


def _check_index(itinerary: CentralItinerary, index: int) -> None:
    if not 0 <= index < len(itinerary.days):
        raise IndexOutOfRangeError(index, len(itinerary.days))


def add_day(itinerary: CentralItinerary, now: datetime | None = None) -> CentralItinerary:
    """Append a day after the last one, staying where the last day was.

    Raises:
        InvalidStateError: no prior day and no destination to place the day in
    """
    if itinerary.days:
        last = itinerary.days[-1]
        location = last.location
        day_date = last.date + timedelta(days=1)
    elif itinerary.destinations:
        location = itinerary.destinations[0]
        day_date = itinerary.start_date
    else:
        raise InvalidStateError("cannot add a day: no destinations and no prior day")

    new_day = ItineraryDay(day=len(itinerary.days) + 1, date=day_date, location=location)
    return _with_days(itinerary, [*itinerary.days, new_day], now)


def remove_day(
    itinerary: CentralItinerary, index: int, now: datetime | None = None
) -> CentralItinerary:
    """Remove the day at index and renumber the remaining days 1..N.

    Raises:
        IndexOutOfRangeError: index not in [0, len(days))
    """
    _check_index(itinerary, index)
    remaining = [day for position, day in enumerate(itinerary.days) if position != index]
    renumbered = [
        day if day.day == number else day.model_copy(update={"day": number})
        for number, day in enumerate(remaining, start=1)
    ]
    return _with_days(itinerary, renumbered, now)


def update_day(
    itinerary: CentralItinerary,
    index: int,
    changes: Mapping[str, Any],
    now: datetime | None = None,
) -> CentralItinerary:
    """Shallow-merge changes into the day at index.

    Raises:
        IndexOutOfRangeError: index not in [0, len(days))
        InvalidStateError: changes touch derived or identity fields, name
            unknown fields, fail validation, or break date ordering
    """
    _check_index(itinerary, index)

    protected = PROTECTED_DAY_FIELDS.intersection(changes)
    if protected:
        raise InvalidStateError(f"day fields cannot be edited: {sorted(protected)}")
    unknown = set(changes) - set(ItineraryDay.model_fields)
    if unknown:
        raise InvalidStateError(f"unknown day fields: {sorted(unknown)}")

    current = itinerary.days[index]
    try:
        merged = ItineraryDay.model_validate({**dict(current), **changes})
    except ValidationError as e:
        raise InvalidStateError(f"invalid day update: {e.error_count()} errors") from e

    days = list(itinerary.days)
    days[index] = merged
    if merged.date < itinerary.start_date:
        raise InvalidStateError("day date precedes the trip start date")
    if index > 0 and merged.date < days[index - 1].date:
        raise InvalidStateError("day date precedes the previous day")
    if index + 1 < len(days) and merged.date > days[index + 1].date:
        raise InvalidStateError("day date follows the next day")
    return _with_days(itinerary, days, now)


def set_markup_rule(
    itinerary: CentralItinerary, rule: MarkupRule, now: datetime | None = None
) -> CentralItinerary:
    """Switch the markup rule and reprice.

    Raises:
        NoMatchingSlabError: new slab rule has no slab for the trip's base cost
    """
    pricing = itinerary.pricing.model_copy(update={"markup_rule": rule, "markup_type": rule.type})
    updated = itinerary.model_copy(update={"pricing": pricing, "updated_at": now or datetime.now()})
    return reprice(updated)
