"""Document store interface used by the ledger and token services."""

from collections.abc import Callable
from typing import Protocol

from health_ledger.domain.documents import Document, DocumentKey

DocumentUpdate = Callable[[Document | None], dict[str, object]]


class DocumentStore(Protocol):
    """Keyed document persistence with atomic read-modify-write."""

    def get(self, key: DocumentKey) -> Document | None:
        """Return the current document for a key, if present."""

    def run_transaction(
        self, key: DocumentKey, update: DocumentUpdate
    ) -> dict[str, object]:
        """Apply ``update`` to a fresh snapshot and commit it atomically.

        ``update`` receives the snapshot read inside the transaction (or None)
        and returns the full new document. It may run more than once when a
        concurrent writer wins; exceptions it raises abort the transaction.
        Returns the committed data.
        """

    def merge(self, key: DocumentKey, fields: dict[str, object]) -> dict[str, object]:
        """Write ``fields`` into the document, creating it if absent."""
