"""Error taxonomy for the itinerary core."""

from typing import Any


class ItineraryError(Exception):
    """Base class for all itinerary core errors."""

    pass


class LoadFailedError(ItineraryError):
    """Document store read failed. Retriable by calling load again."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"load failed: {reason}")
        self.reason = reason


class MalformedDocumentError(LoadFailedError):
    """Stored payload did not validate as an itinerary."""

    def __init__(self, context_id: str, errors: list[dict[str, Any]]) -> None:
        super().__init__(f"malformed document for {context_id} ({len(errors)} errors)")
        self.context_id = context_id
        self.errors = errors


class IndexOutOfRangeError(ItineraryError):
    """Day index is outside the current document."""

    def __init__(self, index: int, size: int) -> None:
        super().__init__(f"day index {index} out of range [0, {size})")
        self.index = index
        self.size = size


class DayNotFoundError(ItineraryError):
    """No day with the given id exists in the current document."""

    def __init__(self, day_id: str) -> None:
        super().__init__(f"day {day_id!r} not found")
        self.day_id = day_id


class InvalidStateError(ItineraryError):
    """Preconditions of an operation are not met."""

    pass


class NoMatchingSlabError(ItineraryError):
    """Base cost falls into a gap between configured markup slabs."""

    def __init__(self, amount: float) -> None:
        super().__init__(f"no markup slab matches amount {amount}")
        self.amount = amount


class StoreError(ItineraryError):
    """A store backend failed."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class RemoteWriteFailedError(ItineraryError):
    """Remote document write failed; the fallback path takes over."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"remote write failed: {reason}")
        self.reason = reason
