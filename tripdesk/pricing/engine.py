"""Pure cost and markup computation.

Nothing here performs I/O or mutates its inputs. Day totals are the single
source for trip totals: ``pricing.base_cost`` is always ``sum(day.total_cost)``.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from tripdesk.errors import NoMatchingSlabError
from tripdesk.models.common import MarkupType, SlabBasis
from tripdesk.models.itinerary import CentralItinerary, ItineraryDay
from tripdesk.models.pricing import MarkupRule, MarkupSlab, PricingSummary
from tripdesk.models.proposal import ServiceCosts


def round_money(value: float) -> float:
    """Round a monetary amount to cents."""
    return round(value, 2)


@dataclass(frozen=True)
class MarkupResult:
    """Outcome of applying a markup rule to a base cost."""

    base_cost: float
    markup: float
    final_price: float
    percentage: float | None
    slab: MarkupSlab | None = None


def activities_cost(day: ItineraryDay) -> float:
    return sum(activity.price for activity in day.activities)


def transport_cost(day: ItineraryDay) -> float:
    return sum(segment.price for segment in day.transport)


def dining_cost(day: ItineraryDay) -> float:
    """Itemized meal costs. Meals without a price count as 0."""
    return sum(meal.price for meal in day.meals if meal.price is not None)


def day_cost(day: ItineraryDay, include_accommodation: bool = True) -> float:
    """Cost of a single day.

    Args:
        day: Day to price
        include_accommodation: Whether the day's primary accommodation is
            charged on this day (a stay spanning several days is charged once)

    Returns:
        Day total rounded to cents
    """
    total = activities_cost(day) + transport_cost(day) + dining_cost(day)
    accommodation = day.primary_accommodation()
    if include_accommodation and accommodation is not None:
        total += accommodation.room_total
    return round_money(total)


def reprice_days(days: Sequence[ItineraryDay]) -> list[ItineraryDay]:
    """Recompute ``total_cost`` for every day.

    The primary accommodation of a multi-day stay is charged on the first day
    that references it.
    """
    charged: set[str] = set()
    result: list[ItineraryDay] = []
    for day in days:
        accommodation = day.primary_accommodation()
        include = accommodation is not None and accommodation.id not in charged
        if accommodation is not None:
            charged.add(accommodation.id)
        total = day_cost(day, include_accommodation=include)
        if day.total_cost != total:
            day = day.model_copy(update={"total_cost": total})
        result.append(day)
    return result


def trip_base_cost(days: Sequence[ItineraryDay]) -> float:
    """Sum of day totals."""
    return sum(day.total_cost for day in days)


def match_slab(amount: float, slabs: Sequence[MarkupSlab]) -> MarkupSlab:
    """Find the active slab whose inclusive range contains amount.

    Slabs are checked in ascending ``min_amount`` order; the first match wins.

    Raises:
        NoMatchingSlabError: amount falls into a gap or outside all slabs
    """
    for slab in sorted(slabs, key=lambda s: s.min_amount):
        if slab.is_active and slab.contains(amount):
            return slab
    raise NoMatchingSlabError(amount)


def apply_markup(base_cost: float, rule: MarkupRule, pax: int = 1) -> MarkupResult:
    """Apply a markup rule to a base cost.

    Args:
        base_cost: Cost before markup
        rule: Markup configuration
        pax: Party size, used by per-person slab matching and fixed slabs

    Returns:
        MarkupResult with rounded markup and final price

    Raises:
        NoMatchingSlabError: slab rule has no slab for the compared amount
    """
    pax = max(pax, 1)
    slab: MarkupSlab | None = None
    percentage: float | None = None

    if rule.type == MarkupType.percentage:
        percentage = rule.percentage
        markup = base_cost * percentage / 100
    elif rule.type == MarkupType.fixed:
        markup = rule.fixed_amount
    else:
        compared = base_cost / pax if rule.slab_basis == SlabBasis.per_person else base_cost
        slab = match_slab(compared, rule.slabs)
        if slab.markup_kind == "fixed":
            markup = slab.fixed_amount * pax
        else:
            percentage = slab.percentage
            markup = base_cost * percentage / 100

    markup = round_money(markup)
    return MarkupResult(
        base_cost=base_cost,
        markup=markup,
        final_price=round_money(base_cost + markup),
        percentage=percentage,
        slab=slab,
    )


def price_itinerary(itinerary: CentralItinerary) -> PricingSummary:
    """Trip pricing summary from the current day totals and markup rule."""
    rule = itinerary.pricing.markup_rule
    base_cost = trip_base_cost(itinerary.days)
    result = apply_markup(base_cost, rule, itinerary.preferences.travelers.total)
    return PricingSummary(
        base_cost=base_cost,
        markup=result.markup,
        markup_type=rule.type,
        final_price=result.final_price,
        currency=itinerary.pricing.currency,
        markup_rule=rule,
    )


def reprice(itinerary: CentralItinerary) -> CentralItinerary:
    """Return the itinerary with day totals and trip pricing recomputed."""
    days = reprice_days(itinerary.days)
    repriced = itinerary.model_copy(update={"days": days})
    return repriced.model_copy(update={"pricing": price_itinerary(repriced)})


def service_costs(days: Sequence[ItineraryDay]) -> ServiceCosts:
    """Subtotals per service category; accommodation uses the primary stays."""
    sightseeing = sum(activities_cost(day) for day in days)
    transport = sum(transport_cost(day) for day in days)
    dining = sum(dining_cost(day) for day in days)

    charged: set[str] = set()
    accommodation = 0.0
    for day in days:
        primary = day.primary_accommodation()
        if primary is not None and primary.id not in charged:
            charged.add(primary.id)
            accommodation += primary.room_total

    return ServiceCosts(
        sightseeing=round_money(sightseeing),
        transport=round_money(transport),
        dining=round_money(dining),
        accommodation=round_money(accommodation),
        total=round_money(sightseeing + transport + dining + accommodation),
    )
