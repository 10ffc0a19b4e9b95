from __future__ import annotations

from datetime import timezone
from typing import Collection

from sqlalchemy import String, and_, func, or_, select, update
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.orm import Session
from sqlalchemy.sql.selectable import ScalarSelect

from db import models
from domain.base_types import AssetId, TransactionId
from domain.catalog import Asset
from domain.ledger import LedgerOrder, Transaction


class AssetRepository:
    """Asset catalog. Repository methods never commit unless asked to."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def add(self, asset: Asset, *, commit: bool = True) -> bool:
        return self.add_many([asset], commit=commit) == 1

    def add_many(self, assets: list[Asset], *, commit: bool = True) -> int:
        """Insert assets, skipping ids already in the catalog. Returns the number inserted."""
        if not assets:
            return 0

        stmt = insert(models.AssetOrm).values(
            [
                {
                    "id": asset.id,
                    "name": asset.name,
                    "unit_price": asset.unit_price,
                    "total_supply": asset.total_supply,
                    "remaining_supply": asset.remaining_supply,
                    "roi_percent": asset.roi_percent,
                }
                for asset in assets
            ]
        )
        stmt = stmt.on_conflict_do_nothing(index_elements=["id"])
        result = self._session.execute(stmt)
        if commit:
            self._session.commit()
        return result.rowcount

    def get(self, asset_id: AssetId) -> Asset | None:
        orm_asset = self._session.get(models.AssetOrm, asset_id)
        if orm_asset is None:
            return None
        return self._to_domain(orm_asset)

    def list(self) -> list[Asset]:
        orm_assets = self._session.scalars(select(models.AssetOrm).order_by(models.AssetOrm.id.asc())).all()
        return [self._to_domain(asset) for asset in orm_assets]

    def reserve(self, asset_id: AssetId, quantity: int, *, commit: bool = False) -> Asset | None:
        """Decrement remaining supply only if at least ``quantity`` units are left.

        Returns the updated asset, or None when supply was insufficient (nothing changes).
        """
        stmt = (
            update(models.AssetOrm)
            .where(models.AssetOrm.id == asset_id, models.AssetOrm.remaining_supply >= quantity)
            .values(remaining_supply=models.AssetOrm.remaining_supply - quantity)
            .execution_options(synchronize_session=False)
        )
        result = self._session.execute(stmt)
        if result.rowcount != 1:
            return None

        orm_asset = self._session.get(models.AssetOrm, asset_id, populate_existing=True)
        if orm_asset is None:
            return None
        if commit:
            self._session.commit()
        return self._to_domain(orm_asset)

    def supply_against_ledger(self) -> list[tuple[Asset, int]]:
        """Every asset paired with the remaining supply its ledger entries imply, read in one statement."""
        ledger_remaining = models.AssetOrm.total_supply - self._sold_quantity()
        stmt = (
            select(models.AssetOrm, ledger_remaining)
            .order_by(models.AssetOrm.id.asc())
            .execution_options(populate_existing=True)
        )
        return [(self._to_domain(orm_asset), int(remaining)) for orm_asset, remaining in self._session.execute(stmt)]

    def repair_remaining_supply(self, asset_id: AssetId, *, commit: bool = True) -> bool:
        """Rewrite remaining supply to ``total_supply - sum(ledger quantities)``.

        The ledger sum is evaluated inside the UPDATE, so a purchase committed
        after the caller last read the asset is counted. Returns False when the
        row already agrees with the ledger or the ledger oversold the asset.
        Only the ledger reconciliation uses this.
        """
        ledger_remaining = models.AssetOrm.total_supply - self._sold_quantity()
        stmt = (
            update(models.AssetOrm)
            .where(
                models.AssetOrm.id == asset_id,
                models.AssetOrm.remaining_supply != ledger_remaining,
                ledger_remaining >= 0,
            )
            .values(remaining_supply=ledger_remaining)
            .execution_options(synchronize_session=False)
        )
        result = self._session.execute(stmt)
        if commit:
            self._session.commit()
        return result.rowcount == 1

    @staticmethod
    def _sold_quantity() -> ScalarSelect[int]:
        return (
            select(func.coalesce(func.sum(models.TransactionOrm.quantity), 0))
            .where(models.TransactionOrm.asset_id == models.AssetOrm.id)
            .correlate_except(models.TransactionOrm)
            .scalar_subquery()
        )

    @staticmethod
    def _to_domain(orm_asset: models.AssetOrm) -> Asset:
        return Asset(
            id=AssetId(orm_asset.id),
            name=orm_asset.name,
            unit_price=orm_asset.unit_price,
            total_supply=orm_asset.total_supply,
            remaining_supply=orm_asset.remaining_supply,
            roi_percent=orm_asset.roi_percent,
        )


class LedgerRepository:
    """Append-only transaction ledger. There is no update or delete."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def append(self, transaction: Transaction, *, commit: bool = True) -> bool:
        """Store ``transaction``. Returns False, changing nothing, if its id is already present."""
        stmt = insert(models.TransactionOrm).values(
            id=transaction.id,
            asset_id=transaction.asset_id,
            buyer_name=transaction.buyer_name,
            quantity=transaction.quantity,
            unit_price_at_purchase=transaction.unit_price_at_purchase,
            total_price=transaction.total_price,
            timestamp=transaction.timestamp,
        )
        stmt = stmt.on_conflict_do_nothing(index_elements=["id"])
        result = self._session.execute(stmt)
        if commit:
            self._session.commit()
        return result.rowcount == 1

    def get(self, transaction_id: TransactionId) -> Transaction | None:
        orm_transaction = self._session.get(models.TransactionOrm, transaction_id)
        if orm_transaction is None:
            return None
        return self._to_domain(orm_transaction)

    def latest(self) -> Transaction | None:
        stmt = select(models.TransactionOrm).order_by(models.TransactionOrm.id.desc()).limit(1)
        orm_transaction = self._session.scalars(stmt).first()
        if orm_transaction is None:
            return None
        return self._to_domain(orm_transaction)

    def list(
        self,
        *,
        asset_ids: Collection[AssetId] | None = None,
        buyer_contains: str | None = None,
        match_any: bool = False,
        order: LedgerOrder = LedgerOrder.ASC,
    ) -> list[Transaction]:
        """List transactions in ledger order.

        ``asset_ids`` and ``buyer_contains`` (substring, compared casefolded) are
        combined with AND, or with OR when ``match_any`` is set.
        """
        conditions = []
        if asset_ids is not None:
            conditions.append(models.TransactionOrm.asset_id.in_(list(asset_ids)))
        if buyer_contains is not None:
            folded_buyer = func.casefold(models.TransactionOrm.buyer_name, type_=String)
            conditions.append(folded_buyer.contains(buyer_contains.casefold(), autoescape=True))

        stmt = select(models.TransactionOrm)
        if conditions:
            stmt = stmt.where(or_(*conditions) if match_any else and_(*conditions))

        if order == LedgerOrder.DESC:
            stmt = stmt.order_by(models.TransactionOrm.timestamp.desc(), models.TransactionOrm.id.desc())
        else:
            stmt = stmt.order_by(models.TransactionOrm.timestamp.asc(), models.TransactionOrm.id.asc())

        return [self._to_domain(row) for row in self._session.scalars(stmt).all()]

    def quantities_by_asset(self) -> dict[AssetId, int]:
        stmt = select(models.TransactionOrm.asset_id, func.sum(models.TransactionOrm.quantity)).group_by(
            models.TransactionOrm.asset_id
        )
        return {AssetId(asset_id): int(total) for asset_id, total in self._session.execute(stmt).all()}

    @staticmethod
    def _to_domain(orm_transaction: models.TransactionOrm) -> Transaction:
        timestamp = orm_transaction.timestamp
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)

        return Transaction(
            id=TransactionId(orm_transaction.id),
            asset_id=AssetId(orm_transaction.asset_id),
            buyer_name=orm_transaction.buyer_name,
            quantity=orm_transaction.quantity,
            unit_price_at_purchase=orm_transaction.unit_price_at_purchase,
            total_price=orm_transaction.total_price,
            timestamp=timestamp,
        )
