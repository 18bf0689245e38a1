"""Document keys and snapshots."""

from dataclasses import dataclass

DAILY_LOGS = "daily_logs"
WEIGHT_LOGS = "weight_logs"
INTEGRATIONS = "integrations"


@dataclass(frozen=True)
class DocumentKey:
    """Addresses one document: ``users/{user_id}/{collection}/{doc_id}``."""

    collection: str
    user_id: str
    doc_id: str

    def __str__(self) -> str:
        return f"users/{self.user_id}/{self.collection}/{self.doc_id}"


@dataclass(frozen=True)
class Document:
    """Snapshot of a stored document at a given revision."""

    key: DocumentKey
    data: dict[str, object]
    revision: int


def daily_log_key(user_id: str, date_key: str) -> DocumentKey:
    return DocumentKey(collection=DAILY_LOGS, user_id=user_id, doc_id=date_key)


def weight_log_key(user_id: str, date_key: str) -> DocumentKey:
    return DocumentKey(collection=WEIGHT_LOGS, user_id=user_id, doc_id=date_key)


def integration_key(user_id: str, service_name: str) -> DocumentKey:
    return DocumentKey(collection=INTEGRATIONS, user_id=user_id, doc_id=service_name)
