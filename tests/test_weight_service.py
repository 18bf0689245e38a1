"""Tests for the weight log service."""

from datetime import UTC, datetime

import pytest

from health_ledger.domain.documents import weight_log_key
from health_ledger.domain.errors import AlreadyExistsError, InvalidArgumentError
from health_ledger.services.weight import WeightLogService, parse_weight
from tests.conftest import InMemoryDocumentStore


def test_record_weight_creates_record(store: InMemoryDocumentStore) -> None:
    service = WeightLogService(store)

    record = service.record_weight("user-1", "2024-03-05", "81.4")

    assert record.weight == 81.4
    assert record.date == datetime(2024, 3, 5, tzinfo=UTC)
    assert store.data(weight_log_key("user-1", "2024-03-05")) == {
        "date": "2024-03-05T00:00:00+00:00",
        "weight": 81.4,
    }


def test_second_weight_for_same_day_is_rejected(
    store: InMemoryDocumentStore,
) -> None:
    service = WeightLogService(store)
    service.record_weight("user-1", "2024-03-05", 81.4)

    with pytest.raises(AlreadyExistsError) as excinfo:
        service.record_weight("user-1", "2024-03-05", 79.0)

    assert "2024-03-05" in excinfo.value.message
    assert store.data(weight_log_key("user-1", "2024-03-05"))["weight"] == 81.4


def test_weights_on_other_days_and_users_are_independent(
    store: InMemoryDocumentStore,
) -> None:
    service = WeightLogService(store)

    service.record_weight("user-1", "2024-03-05", 81.4)
    service.record_weight("user-1", "2024-03-06", 81.1)
    service.record_weight("user-2", "2024-03-05", 64.0)

    assert len(store.documents) == 3


def test_invalid_weight_writes_nothing(store: InMemoryDocumentStore) -> None:
    service = WeightLogService(store)

    with pytest.raises(InvalidArgumentError):
        service.record_weight("user-1", "2024-03-05", "heavy")

    assert store.documents == {}


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (72, 72.0),
        (72.4, 72.4),
        ("72.4", 72.4),
        ("72,4", 72.4),
        (" 72.4 kg", 72.4),
        ("180lbs", 180.0),
    ],
)
def test_parse_weight_is_permissive(raw: object, expected: float) -> None:
    assert parse_weight(raw) == expected


@pytest.mark.parametrize("raw", [None, True, "", "kg", 0, -5, "-1", float("nan")])
def test_parse_weight_rejects_unusable_values(raw: object) -> None:
    with pytest.raises(InvalidArgumentError):
        parse_weight(raw)
