from __future__ import annotations

import logging
from typing import TypeAlias

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from db.repositories import AssetRepository, LedgerRepository
from domain.base_types import AssetId
from domain.failures import (
    AssetNotFound,
    Busy,
    InsufficientSupply,
    InvalidBuyer,
    InvalidQuantity,
    PurchaseFailure,
    StorageFailure,
)
from domain.ledger import Transaction
from domain.sequencer import TransactionSequencer

from .asset_locks import AssetLockRegistry

logger = logging.getLogger(__name__)

PurchaseResult: TypeAlias = Transaction | PurchaseFailure

DEFAULT_LOCK_TIMEOUT_SECONDS = 5.0


class _DuplicateTransactionId(Exception):
    pass


class PurchaseEngine:
    """Accept purchases against the asset catalog and record them in the ledger.

    Validation happens first and has no side effects. The supply check that
    counts is the conditional decrement done while holding the asset's lock;
    the decrement and the ledger append share one database transaction.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        sequencer: TransactionSequencer | None = None,
        locks: AssetLockRegistry | None = None,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT_SECONDS,
    ) -> None:
        self._session_factory = session_factory
        self._sequencer = sequencer if sequencer is not None else self._sequencer_from_ledger(session_factory)
        self._locks = locks if locks is not None else AssetLockRegistry()
        self._lock_timeout = lock_timeout

    def purchase(self, asset_id: object, buyer_name: object, quantity: object) -> PurchaseResult:
        resolved_id = self._resolve_asset_id(asset_id)
        if resolved_id is None:
            return self._reject(AssetNotFound(asset_id=asset_id))

        try:
            with self._session_factory() as session:
                asset = AssetRepository(session).get(resolved_id)
        except SQLAlchemyError as exc:
            logger.exception("Could not read asset %s", resolved_id)
            return self._reject(StorageFailure(reason=str(exc)))
        if asset is None:
            return self._reject(AssetNotFound(asset_id=asset_id))

        if not isinstance(buyer_name, str) or not buyer_name.strip():
            return self._reject(InvalidBuyer())
        buyer = buyer_name.strip()

        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            return self._reject(InvalidQuantity(quantity=quantity))

        # Advisory only; a concurrent buyer may still take these units before we hold the lock.
        if quantity > asset.remaining_supply:
            return self._reject(
                InsufficientSupply(asset_id=resolved_id, requested=quantity, available=asset.remaining_supply)
            )

        with self._locks.hold(resolved_id, timeout=self._lock_timeout) as acquired:
            if not acquired:
                logger.warning("Timed out after %.2fs waiting for asset %s", self._lock_timeout, resolved_id)
                return self._reject(Busy(asset_id=resolved_id))
            return self._reserve_and_record(resolved_id, buyer, quantity)

    def _reserve_and_record(self, asset_id: AssetId, buyer: str, quantity: int) -> PurchaseResult:
        with self._session_factory() as session:
            assets = AssetRepository(session)
            ledger = LedgerRepository(session)
            try:
                reserved = assets.reserve(asset_id, quantity)
                if reserved is None:
                    session.rollback()
                    current = assets.get(asset_id)
                    available = current.remaining_supply if current is not None else 0
                    return self._reject(InsufficientSupply(asset_id=asset_id, requested=quantity, available=available))

                # The reserve UPDATE holds the database write lock, so the latest row cannot move until commit.
                latest = ledger.latest()
                if latest is None:
                    transaction_id, timestamp = self._sequencer.next()
                else:
                    transaction_id, timestamp = self._sequencer.next(
                        stored_id=latest.id, stored_timestamp=latest.timestamp
                    )
                transaction = Transaction(
                    id=transaction_id,
                    asset_id=asset_id,
                    buyer_name=buyer,
                    quantity=quantity,
                    unit_price_at_purchase=reserved.unit_price,
                    total_price=reserved.unit_price * quantity,
                    timestamp=timestamp,
                )
                if not ledger.append(transaction, commit=False):
                    raise _DuplicateTransactionId(transaction_id)
                session.commit()
            except _DuplicateTransactionId as exc:
                session.rollback()
                logger.error("Transaction id %s already exists in the ledger; purchase rolled back", exc.args[0])
                return self._reject(StorageFailure(reason=f"transaction id {exc.args[0]} already recorded"))
            except OperationalError as exc:
                session.rollback()
                if "locked" in str(exc.orig).lower():
                    logger.warning("Database busy while purchasing asset %s", asset_id)
                    return self._reject(Busy(asset_id=asset_id))
                logger.exception("Storage failure while purchasing asset %s", asset_id)
                return self._reject(StorageFailure(reason=str(exc.orig)))
            except SQLAlchemyError as exc:
                session.rollback()
                logger.exception("Storage failure while purchasing asset %s", asset_id)
                return self._reject(StorageFailure(reason=str(exc)))

        logger.info(
            "Accepted purchase %s: asset=%s buyer=%s quantity=%d total=%s remaining=%d",
            transaction.id,
            asset_id,
            buyer,
            quantity,
            transaction.total_price,
            reserved.remaining_supply,
        )
        return transaction

    @staticmethod
    def _resolve_asset_id(asset_id: object) -> AssetId | None:
        if isinstance(asset_id, bool):
            return None
        if isinstance(asset_id, int):
            return AssetId(asset_id)
        if isinstance(asset_id, str) and asset_id.strip().isdigit():
            return AssetId(int(asset_id.strip()))
        return None

    @staticmethod
    def _reject(failure: PurchaseFailure) -> PurchaseFailure:
        logger.info("Rejected purchase (%s): %s", failure.kind, failure.message)
        return failure

    @staticmethod
    def _sequencer_from_ledger(session_factory: sessionmaker[Session]) -> TransactionSequencer:
        with session_factory() as session:
            latest = LedgerRepository(session).latest()
        if latest is None:
            return TransactionSequencer()
        return TransactionSequencer(last_id=latest.id, last_timestamp=latest.timestamp)


__all__ = ["PurchaseEngine", "PurchaseResult"]
