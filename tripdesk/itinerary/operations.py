"""Mutation operations accepted by the synchronization controller."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Protocol

from tripdesk.itinerary.document import add_day, remove_day, set_markup_rule, update_day
from tripdesk.models.itinerary import CentralItinerary
from tripdesk.models.pricing import MarkupRule
from tripdesk.models.proposal import ProposalDayEdit
from tripdesk.proposal.transform import apply_proposal_day_edit

# Free-text fields; edits to these wait for the long debounce window
LONG_FORM_FIELDS = frozenset({"notes"})


class SaveTier(str, Enum):
    """Debounce window used for the save triggered by an edit."""

    short = "short"
    long = "long"


class Operation(Protocol):
    """A day-level mutation."""

    @property
    def save_tier(self) -> SaveTier: ...

    def apply(self, itinerary: CentralItinerary, now: datetime) -> CentralItinerary: ...


@dataclass(frozen=True)
class AddDay:
    """Append a day."""

    save_tier: SaveTier = SaveTier.short

    def apply(self, itinerary: CentralItinerary, now: datetime) -> CentralItinerary:
        return add_day(itinerary, now)


@dataclass(frozen=True)
class RemoveDay:
    """Remove the day at index."""

    index: int
    save_tier: SaveTier = SaveTier.short

    def apply(self, itinerary: CentralItinerary, now: datetime) -> CentralItinerary:
        return remove_day(itinerary, self.index, now)


@dataclass(frozen=True)
class UpdateDay:
    """Merge changes into the day at index."""

    index: int
    changes: Mapping[str, Any] = field(default_factory=dict)

    @property
    def save_tier(self) -> SaveTier:
        return SaveTier.long if LONG_FORM_FIELDS.intersection(self.changes) else SaveTier.short

    def apply(self, itinerary: CentralItinerary, now: datetime) -> CentralItinerary:
        return update_day(itinerary, self.index, self.changes, now)


@dataclass(frozen=True)
class EditProposalDay:
    """Edit a day from the proposal view, located by day id."""

    day_id: str
    edit: ProposalDayEdit

    @property
    def save_tier(self) -> SaveTier:
        fields = self.edit.model_fields_set
        return SaveTier.long if LONG_FORM_FIELDS.intersection(fields) else SaveTier.short

    def apply(self, itinerary: CentralItinerary, now: datetime) -> CentralItinerary:
        return apply_proposal_day_edit(itinerary, self.day_id, self.edit, now)


@dataclass(frozen=True)
class SetMarkupRule:
    """Replace the markup rule."""

    rule: MarkupRule
    save_tier: SaveTier = SaveTier.short

    def apply(self, itinerary: CentralItinerary, now: datetime) -> CentralItinerary:
        return set_markup_rule(itinerary, self.rule, now)
