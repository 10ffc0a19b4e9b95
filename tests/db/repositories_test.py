from datetime import timezone
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from db.repositories import AssetRepository, LedgerRepository
from domain.base_types import AssetId, TransactionId
from domain.ledger import LedgerOrder
from tests.helpers.catalog import BASE_TIME, make_asset, make_transaction


@pytest.fixture()
def asset_repo(test_session: Session) -> AssetRepository:
    return AssetRepository(test_session)


@pytest.fixture()
def ledger_repo(test_session: Session, asset_repo: AssetRepository) -> LedgerRepository:
    asset_repo.add_many(
        [
            make_asset(asset_id=1, name="Sunset Villa", total_supply=5),
            make_asset(asset_id=2, name="Harbor Office Tower", unit_price="25.50", total_supply=10),
        ]
    )
    return LedgerRepository(test_session)


def test_add_many_and_get_asset(asset_repo: AssetRepository) -> None:
    asset = make_asset(asset_id=7, name="Loft", unit_price="12.75", total_supply=40, roi_percent="6.5")

    inserted = asset_repo.add_many([asset])

    assert inserted == 1
    assert asset_repo.get(AssetId(7)) == asset
    assert asset_repo.get(AssetId(8)) is None


def test_add_many_skips_existing_ids(asset_repo: AssetRepository) -> None:
    asset_repo.add_many([make_asset(asset_id=1, name="Original")])

    inserted = asset_repo.add_many([make_asset(asset_id=1, name="Replacement"), make_asset(asset_id=2)])

    assert inserted == 1
    assert [asset.name for asset in asset_repo.list()] == ["Original", "Sunset Villa"]


def test_add_single_asset(asset_repo: AssetRepository) -> None:
    assert asset_repo.add(make_asset(asset_id=3, name="Loft")) is True
    assert asset_repo.add(make_asset(asset_id=3, name="Other Loft")) is False

    stored = asset_repo.get(AssetId(3))
    assert stored is not None
    assert stored.name == "Loft"


def test_reserve_decrements_supply(asset_repo: AssetRepository) -> None:
    asset_repo.add_many([make_asset(asset_id=1, total_supply=5)])

    reserved = asset_repo.reserve(AssetId(1), 3, commit=True)

    assert reserved is not None
    assert reserved.remaining_supply == 2
    stored = asset_repo.get(AssetId(1))
    assert stored is not None
    assert stored.remaining_supply == 2


def test_reserve_refuses_more_than_remaining(asset_repo: AssetRepository) -> None:
    asset_repo.add_many([make_asset(asset_id=1, total_supply=5, remaining_supply=2)])

    assert asset_repo.reserve(AssetId(1), 3, commit=True) is None
    stored = asset_repo.get(AssetId(1))
    assert stored is not None
    assert stored.remaining_supply == 2


def test_reserve_unknown_asset(asset_repo: AssetRepository) -> None:
    assert asset_repo.reserve(AssetId(99), 1) is None


def test_append_and_get_transaction(ledger_repo: LedgerRepository) -> None:
    transaction = make_transaction(transaction_id=1, quantity=3)

    assert ledger_repo.append(transaction) is True

    fetched = ledger_repo.get(TransactionId(1))
    assert fetched == transaction
    assert fetched is not None
    assert fetched.timestamp.tzinfo == timezone.utc


def test_append_is_idempotent_on_id(ledger_repo: LedgerRepository) -> None:
    transaction = make_transaction(transaction_id=1, quantity=3)
    ledger_repo.append(transaction)

    assert ledger_repo.append(transaction) is False
    assert ledger_repo.append(make_transaction(transaction_id=1, quantity=1, buyer_name="Mallory")) is False

    records = ledger_repo.list()
    assert records == [transaction]


def test_list_orders_by_timestamp_then_id(ledger_repo: LedgerRepository) -> None:
    same_time = BASE_TIME
    ledger_repo.append(make_transaction(transaction_id=3, timestamp=same_time))
    ledger_repo.append(make_transaction(transaction_id=1, timestamp=same_time))
    ledger_repo.append(make_transaction(transaction_id=2, timestamp=BASE_TIME.replace(hour=11)))

    ascending = [record.id for record in ledger_repo.list()]
    descending = [record.id for record in ledger_repo.list(order=LedgerOrder.DESC)]

    assert ascending == [2, 1, 3]
    assert descending == [3, 1, 2]


def test_list_keeps_microsecond_precision(ledger_repo: LedgerRepository) -> None:
    first = make_transaction(transaction_id=1, timestamp=BASE_TIME.replace(microsecond=2))
    second = make_transaction(transaction_id=2, timestamp=BASE_TIME.replace(microsecond=1))
    ledger_repo.append(first)
    ledger_repo.append(second)

    records = ledger_repo.list()

    assert [record.id for record in records] == [2, 1]
    assert records[1].timestamp == first.timestamp


def test_list_filters_by_asset_and_buyer(ledger_repo: LedgerRepository) -> None:
    ledger_repo.append(make_transaction(transaction_id=1, asset_id=1, buyer_name="Alice Smith"))
    ledger_repo.append(make_transaction(transaction_id=2, asset_id=2, buyer_name="Bob", unit_price="25.50"))
    ledger_repo.append(make_transaction(transaction_id=3, asset_id=2, buyer_name="alice cooper", unit_price="25.50"))

    by_asset = ledger_repo.list(asset_ids={AssetId(2)})
    by_buyer = ledger_repo.list(buyer_contains="ALICE")
    both = ledger_repo.list(asset_ids={AssetId(2)}, buyer_contains="alice")
    either = ledger_repo.list(asset_ids={AssetId(1)}, buyer_contains="bob", match_any=True)
    nothing = ledger_repo.list(asset_ids=set())

    assert [record.id for record in by_asset] == [2, 3]
    assert [record.id for record in by_buyer] == [1, 3]
    assert [record.id for record in both] == [3]
    assert [record.id for record in either] == [1, 2]
    assert nothing == []


def test_buyer_filter_treats_wildcards_literally(ledger_repo: LedgerRepository) -> None:
    ledger_repo.append(make_transaction(transaction_id=1, buyer_name="100% Capital"))
    ledger_repo.append(make_transaction(transaction_id=2, buyer_name="Plain Buyer"))

    assert [record.id for record in ledger_repo.list(buyer_contains="%")] == [1]


def test_buyer_filter_folds_non_ascii_case(ledger_repo: LedgerRepository) -> None:
    ledger_repo.append(make_transaction(transaction_id=1, buyer_name="Émile Zola"))
    ledger_repo.append(make_transaction(transaction_id=2, buyer_name="Straßer GmbH"))
    ledger_repo.append(make_transaction(transaction_id=3, buyer_name="Emily"))

    assert [record.id for record in ledger_repo.list(buyer_contains="émile")] == [1]
    assert [record.id for record in ledger_repo.list(buyer_contains="ÉMILE")] == [1]
    assert [record.id for record in ledger_repo.list(buyer_contains="STRASSER")] == [2]


def test_latest_and_quantities_by_asset(ledger_repo: LedgerRepository) -> None:
    assert ledger_repo.latest() is None
    assert ledger_repo.quantities_by_asset() == {}

    ledger_repo.append(make_transaction(transaction_id=1, asset_id=1, quantity=2))
    ledger_repo.append(make_transaction(transaction_id=2, asset_id=1, quantity=1))
    ledger_repo.append(make_transaction(transaction_id=3, asset_id=2, quantity=4, unit_price="25.50"))

    latest = ledger_repo.latest()
    assert latest is not None
    assert latest.id == 3
    assert latest.total_price == Decimal("102.00")
    assert ledger_repo.quantities_by_asset() == {1: 3, 2: 4}
