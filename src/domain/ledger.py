from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import StrEnum
from typing import Iterable

from pydantic import BaseModel, ConfigDict, model_validator

from domain.base_types import AssetId, TransactionId


class LedgerOrder(StrEnum):
    ASC = "asc"
    DESC = "desc"


class Transaction(BaseModel):
    """An accepted purchase. Immutable once created; the ledger only grows."""

    model_config = ConfigDict(frozen=True)

    id: TransactionId
    asset_id: AssetId
    buyer_name: str
    quantity: int
    unit_price_at_purchase: Decimal
    total_price: Decimal
    timestamp: datetime

    @model_validator(mode="after")
    def _validate_fields(self) -> Transaction:
        if not self.buyer_name.strip():
            raise ValueError("Transaction.buyer_name must be non-empty")
        if self.quantity < 1:
            raise ValueError("Transaction.quantity must be >= 1")
        if self.unit_price_at_purchase <= 0:
            raise ValueError("Transaction.unit_price_at_purchase must be > 0")
        if self.total_price != self.unit_price_at_purchase * self.quantity:
            raise ValueError("Transaction.total_price must equal quantity * unit_price_at_purchase")
        if self.timestamp.tzinfo is None:
            raise ValueError("Transaction.timestamp must be timezone-aware")
        return self


class LedgerSummary(BaseModel):
    total_volume: Decimal
    total_count: int


def summarize(transactions: Iterable[Transaction]) -> LedgerSummary:
    """Fold the ledger into its aggregate view. Nothing else keeps these totals."""
    total_volume = Decimal(0)
    total_count = 0
    for transaction in transactions:
        total_volume += transaction.total_price
        total_count += 1
    return LedgerSummary(total_volume=total_volume, total_count=total_count)
