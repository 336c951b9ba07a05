"""In-memory implementations of store interfaces."""

import copy

from tripdesk.db.repositories import Document


class InMemoryDocumentStore:
    """In-memory implementation of DocumentStore."""

    def __init__(self, documents: dict[str, Document] | None = None) -> None:
        self._documents: dict[str, Document] = dict(documents or {})
        self.put_count = 0

    async def get(self, context_id: str) -> Document | None:
        """Get a copy of the stored document."""
        document = self._documents.get(context_id)
        return copy.deepcopy(document) if document is not None else None

    async def put(self, context_id: str, document: Document) -> None:
        """Store a copy of the document."""
        self._documents[context_id] = copy.deepcopy(document)
        self.put_count += 1


class InMemoryFallbackStore:
    """In-memory implementation of FallbackStore."""

    def __init__(self, prefix: str = "") -> None:
        self._prefix = prefix
        self._entries: dict[str, Document] = {}

    def get(self, key: str) -> Document | None:
        """Get a copy of the cached document."""
        document = self._entries.get(self._prefix + key)
        return copy.deepcopy(document) if document is not None else None

    def put(self, key: str, document: Document) -> None:
        """Cache a copy of the document."""
        self._entries[self._prefix + key] = copy.deepcopy(document)

    def delete(self, key: str) -> None:
        """Drop a cached document."""
        self._entries.pop(self._prefix + key, None)
