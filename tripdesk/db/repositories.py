"""Store protocol interfaces consumed by the synchronization core."""

from typing import Any, Protocol

# Stores exchange JSON-compatible documents; validation happens on load.
Document = dict[str, Any]


class DocumentStore(Protocol):
    """Remote, authoritative store of itinerary documents."""

    async def get(self, context_id: str) -> Document | None:
        """Get the document for a context.

        Args:
            context_id: Id of the owning business object

        Returns:
            Document or None if not found

        Raises:
            StoreError: backend failure
        """
        ...

    async def put(self, context_id: str, document: Document) -> None:
        """Write the document for a context. A single put is atomic.

        Args:
            context_id: Id of the owning business object
            document: JSON-compatible itinerary document

        Raises:
            StoreError: backend failure
        """
        ...


class FallbackStore(Protocol):
    """Local cache used when the remote store cannot be written.

    Always available; implementations do not raise.
    """

    def get(self, key: str) -> Document | None:
        """Get cached document or None if missing."""
        ...

    def put(self, key: str, document: Document) -> None:
        """Cache a document."""
        ...

    def delete(self, key: str) -> None:
        """Drop a cached document; missing keys are ignored."""
        ...
