"""Supabase-backed document store.

Each collection is a table with columns ``user_id``, ``doc_id``, ``data``
(jsonb), ``revision`` (integer) and ``updated_at``, keyed by
``(user_id, doc_id)``. Transactions are optimistic: the row is re-read, the
update is applied, and the write only lands if ``revision`` is unchanged.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from postgrest.exceptions import APIError
from supabase import Client

from health_ledger.domain.documents import Document, DocumentKey
from health_ledger.domain.errors import TransactionConflictError
from health_ledger.services.documents import DocumentStore, DocumentUpdate

_UNIQUE_VIOLATION = "23505"

_logger = logging.getLogger(__name__)


@dataclass
class SupabaseDocumentStore(DocumentStore):
    """Supabase implementation of the document store."""

    client: Client
    max_attempts: int = 5

    def get(self, key: DocumentKey) -> Document | None:
        """Return the document for a key, if present."""
        response = (
            self.client.table(key.collection)
            .select("data, revision")
            .eq("user_id", key.user_id)
            .eq("doc_id", key.doc_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        return Document(
            key=key,
            data=dict(row.get("data") or {}),
            revision=int(row.get("revision", 0)),
        )

    def run_transaction(
        self, key: DocumentKey, update: DocumentUpdate
    ) -> dict[str, object]:
        """Run an optimistic read-modify-write, retrying on conflicts."""
        for attempt in range(1, self.max_attempts + 1):
            current = self.get(key)
            data = update(current)
            if current is None:
                committed = self._insert(key, data)
            else:
                committed = self._compare_and_swap(key, current.revision, data)
            if committed:
                return data
            _logger.info(
                "Document conflict on %s (attempt %s/%s)",
                key,
                attempt,
                self.max_attempts,
            )
        _logger.warning("Giving up on %s after %s attempts", key, self.max_attempts)
        raise TransactionConflictError(key, self.max_attempts)

    def merge(self, key: DocumentKey, fields: dict[str, object]) -> dict[str, object]:
        """Merge fields into the stored document."""

        def apply(current: Document | None) -> dict[str, object]:
            data = dict(current.data) if current else {}
            data.update(fields)
            return data

        return self.run_transaction(key, apply)

    def _insert(self, key: DocumentKey, data: dict[str, object]) -> bool:
        try:
            self.client.table(key.collection).insert(
                {
                    "user_id": key.user_id,
                    "doc_id": key.doc_id,
                    "data": data,
                    "revision": 1,
                    "updated_at": datetime.now(tz=UTC).isoformat(),
                }
            ).execute()
        except APIError as exc:
            if exc.code == _UNIQUE_VIOLATION:
                return False
            raise
        return True

    def _compare_and_swap(
        self, key: DocumentKey, revision: int, data: dict[str, object]
    ) -> bool:
        response = (
            self.client.table(key.collection)
            .update(
                {
                    "data": data,
                    "revision": revision + 1,
                    "updated_at": datetime.now(tz=UTC).isoformat(),
                }
            )
            .eq("user_id", key.user_id)
            .eq("doc_id", key.doc_id)
            .eq("revision", revision)
            .execute()
        )
        return bool(response.data)
