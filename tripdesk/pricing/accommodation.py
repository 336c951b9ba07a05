"""Per-option accommodation pricing.

Each day may offer up to three competing accommodations tagged 1/2/3. An
option's price is the trip's service costs plus every accommodation carrying
that tag. A stay referenced by several days is priced once.

Child surcharges are approximations kept as observed in the booking desk's
spreadsheets, not discounts:

- accommodation records children and extra beds: 30% of its room total
- otherwise: 25% of price_per_night x nights x children
"""

from collections.abc import Sequence
from dataclasses import dataclass, field

from tripdesk.models.common import OPTION_LABELS
from tripdesk.models.itinerary import Accommodation, ItineraryDay, Travelers
from tripdesk.models.pricing import MarkupRule
from tripdesk.models.proposal import AccommodationLine, AccommodationPricingOption, ServiceCosts
from tripdesk.pricing.engine import apply_markup, round_money

EXTRA_BED_SURCHARGE_RATE = 0.30
NIGHTLY_CHILD_SURCHARGE_RATE = 0.25


def child_surcharge(
    accommodation: Accommodation,
    party_children: int,
    *,
    extra_bed_rate: float = EXTRA_BED_SURCHARGE_RATE,
    nightly_rate: float = NIGHTLY_CHILD_SURCHARGE_RATE,
) -> float:
    """Child surcharge for one accommodation.

    Args:
        accommodation: Accommodation being priced
        party_children: Children in the party, used when the accommodation
            does not record its own child count
        extra_bed_rate: Share of the room total charged when extra beds are booked
        nightly_rate: Share of the nightly room price charged per child per night

    Returns:
        Surcharge amount (0 when there are no children)
    """
    if accommodation.number_of_children > 0 and accommodation.extra_beds > 0:
        return accommodation.room_total * extra_bed_rate
    children = accommodation.number_of_children or party_children
    return accommodation.price_per_night * accommodation.nights * children * nightly_rate


@dataclass
class _OptionStay:
    accommodation: Accommodation
    day_ids: list[str] = field(default_factory=list)


def collect_option(days: Sequence[ItineraryDay], option: int) -> list[_OptionStay]:
    """Accommodations tagged with option, deduplicated by id in day order."""
    stays: dict[str, _OptionStay] = {}
    for day in days:
        for accommodation in day.tagged_accommodations():
            if accommodation.option != option:
                continue
            stay = stays.setdefault(accommodation.id, _OptionStay(accommodation))
            if day.id not in stay.day_ids:
                stay.day_ids.append(day.id)
    return list(stays.values())


def price_option(
    days: Sequence[ItineraryDay],
    option: int,
    party: Travelers,
    services: ServiceCosts,
    rule: MarkupRule,
    *,
    extra_bed_rate: float = EXTRA_BED_SURCHARGE_RATE,
    nightly_rate: float = NIGHTLY_CHILD_SURCHARGE_RATE,
) -> AccommodationPricingOption:
    """Price the trip for one accommodation option.

    Raises:
        NoMatchingSlabError: rule is slab-based and the option total has no slab
    """
    lines: list[AccommodationLine] = []
    for stay in collect_option(days, option):
        acc = stay.accommodation
        surcharge = round_money(
            child_surcharge(
                acc,
                party.children,
                extra_bed_rate=extra_bed_rate,
                nightly_rate=nightly_rate,
            )
        )
        room_total = round_money(acc.room_total)
        lines.append(
            AccommodationLine(
                accommodation_id=acc.id,
                name=acc.name,
                day_ids=stay.day_ids,
                nights=acc.nights,
                rooms=acc.rooms,
                price_per_night=acc.price_per_night,
                room_total=room_total,
                child_surcharge=surcharge,
                total=round_money(room_total + surcharge),
            )
        )

    accommodation_total = round_money(sum(line.total for line in lines))
    surcharge_total = round_money(sum(line.child_surcharge for line in lines))
    service_total = round_money(services.sightseeing + services.transport + services.dining)
    base_total = round_money(service_total + accommodation_total)

    pax = party.total
    adult_price = round_money(accommodation_total / pax) if pax else 0.0
    child_price = adult_price if party.children else 0.0

    markup = apply_markup(base_total, rule, pax)
    return AccommodationPricingOption(
        option=option,
        label=OPTION_LABELS[option],
        accommodations=lines,
        total_nights=sum(line.nights for line in lines),
        total_rooms=sum(line.rooms for line in lines),
        accommodation_total=accommodation_total,
        child_surcharge=surcharge_total,
        adult_price=adult_price,
        child_price=child_price,
        service_total=service_total,
        base_total=base_total,
        markup=markup.markup,
        final_total=markup.final_price,
        per_person_price=round_money(markup.final_price / pax) if pax else 0.0,
    )


def price_accommodation_options(
    days: Sequence[ItineraryDay],
    party: Travelers,
    services: ServiceCosts,
    rule: MarkupRule,
    *,
    extra_bed_rate: float = EXTRA_BED_SURCHARGE_RATE,
    nightly_rate: float = NIGHTLY_CHILD_SURCHARGE_RATE,
) -> list[AccommodationPricingOption]:
    """Price options 1-3, dropping options with no accommodations and no cost.

    The cost tested is the option's accommodation total. Its ``base_total``
    also carries the shared service costs, so it is non-zero for an empty
    option on any trip with activities or transport.
    """
    options: list[AccommodationPricingOption] = []
    for option in sorted(OPTION_LABELS):
        priced = price_option(
            days,
            option,
            party,
            services,
            rule,
            extra_bed_rate=extra_bed_rate,
            nightly_rate=nightly_rate,
        )
        if not priced.accommodations and priced.accommodation_total == 0:
            continue
        options.append(priced)
    return options


def validate_accommodations(days: Sequence[ItineraryDay]) -> list[str]:
    """Human-readable problems with accommodations that still price.

    Structural problems are rejected by the models; this reports data that
    validates but is probably wrong (blank names, zero prices).
    """
    issues: list[str] = []
    seen: set[str] = set()
    day_dates = {day.date for day in days}
    for day in days:
        for acc in day.tagged_accommodations():
            if acc.id in seen:
                continue
            seen.add(acc.id)
            label = acc.name.strip() or "Unknown hotel"
            problems: list[str] = []
            if not acc.name.strip():
                problems.append("missing hotel name")
            if acc.price_per_night == 0:
                problems.append("no price per night")
            if acc.check_in is not None and acc.check_in not in day_dates:
                problems.append(f"check-in {acc.check_in} does not match any day")
            if problems:
                issues.append(f"Day {day.day} option {acc.option} {label}: {', '.join(problems)}")
    return issues
