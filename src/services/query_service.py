from __future__ import annotations

from pydantic import BaseModel
from sqlalchemy.orm import Session

from db.repositories import AssetRepository, LedgerRepository
from domain.base_types import AssetId
from domain.ledger import LedgerOrder, LedgerSummary, Transaction, summarize


class TransactionView(BaseModel):
    transaction: Transaction
    asset_name: str


def placeholder_asset_name(asset_id: AssetId) -> str:
    return f"Asset #{asset_id}"


class TransactionQueryService:
    """Read side of the ledger: listings with display names, and totals."""

    def __init__(self, session: Session) -> None:
        self._assets = AssetRepository(session)
        self._ledger = LedgerRepository(session)

    def list_transactions(
        self, search_term: str | None = None, *, order: LedgerOrder = LedgerOrder.ASC
    ) -> list[TransactionView]:
        """List the ledger, optionally narrowed to entries whose asset name or buyer contains ``search_term``."""
        names = {asset.id: asset.name for asset in self._assets.list()}

        term = (search_term or "").strip()
        if not term:
            transactions = self._ledger.list(order=order)
        else:
            needle = term.casefold()
            matching_asset_ids = {
                asset_id
                for asset_id in self._ledger.quantities_by_asset()
                if needle in self._resolve_name(names, asset_id).casefold()
            }
            transactions = self._ledger.list(
                asset_ids=matching_asset_ids, buyer_contains=term, match_any=True, order=order
            )

        return [
            TransactionView(transaction=transaction, asset_name=self._resolve_name(names, transaction.asset_id))
            for transaction in transactions
        ]

    def summary(self) -> LedgerSummary:
        return summarize(self._ledger.list())

    @staticmethod
    def _resolve_name(names: dict[AssetId, str], asset_id: AssetId) -> str:
        name = names.get(asset_id)
        if name is None or not name.strip():
            return placeholder_asset_name(asset_id)
        return name


__all__ = ["TransactionQueryService", "TransactionView", "placeholder_asset_name"]
