"""One controller per context id."""

import logging
from collections.abc import Callable

from tripdesk.sync.controller import ControllerState, ItineraryController

logger = logging.getLogger(__name__)


class ControllerRegistry:
    """Registry of per-context controllers.

    Views of the same context share one controller, and through it one
    in-memory document.
    """

    def __init__(self, factory: Callable[[], ItineraryController]) -> None:
        self._factory = factory
        self._by_context: dict[str, ItineraryController] = {}

    def get_or_create(self, context_id: str) -> ItineraryController:
        """Get existing controller for a context or create an unloaded one."""
        controller = self._by_context.get(context_id)
        if controller is None or controller.state == ControllerState.cleared:
            controller = self._factory()
            self._by_context[context_id] = controller
        return controller

    async def open(self, context_id: str) -> ItineraryController:
        """Get the context's controller, loading it if needed.

        Raises:
            LoadFailedError: document store read failed (retry by calling open again)
        """
        controller = self.get_or_create(context_id)
        if controller.state == ControllerState.uninitialized:
            await controller.load(context_id)
        return controller

    def release(self, context_id: str) -> None:
        """Clear and forget the context's controller."""
        controller = self._by_context.pop(context_id, None)
        if controller is not None:
            controller.clear()

    def clear(self) -> None:
        """Release every controller."""
        for context_id in list(self._by_context):
            self.release(context_id)
        logger.debug("Released all itinerary controllers")
