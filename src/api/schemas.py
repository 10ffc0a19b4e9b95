from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer

from domain.catalog import Asset, PurchaseQuote
from domain.ledger import LedgerSummary, Transaction


def _decimal_to_number(value: Decimal) -> int | float:
    if value == value.to_integral_value():
        return int(value)
    return float(value)


# Money goes over the wire as a plain JSON number, not pydantic's default string.
JsonNumber = Annotated[Decimal, PlainSerializer(_decimal_to_number, return_type=int | float, when_used="json")]


class BuyRequest(BaseModel):
    """Purchase request as sent by the purchase dialog.

    Fields stay untyped so that the purchase engine, not request parsing,
    decides which failure a bad value maps to.
    """

    model_config = ConfigDict(populate_by_name=True)

    asset_id: Any = Field(default=None, alias="assetId")
    quantity: Any = None
    buyer_name: Any = Field(default=None, alias="buyerName")


class TransactionResponse(BaseModel):
    id: int
    asset_id: int
    asset_name: str
    buyer: str
    quantity: int
    timestamp: datetime
    total_price: JsonNumber
    price: JsonNumber

    @classmethod
    def from_domain(cls, transaction: Transaction, asset_name: str) -> TransactionResponse:
        return cls(
            id=transaction.id,
            asset_id=transaction.asset_id,
            asset_name=asset_name,
            buyer=transaction.buyer_name,
            quantity=transaction.quantity,
            timestamp=transaction.timestamp,
            total_price=transaction.total_price,
            price=transaction.unit_price_at_purchase,
        )


class AssetResponse(BaseModel):
    id: int
    name: str
    price: JsonNumber
    supply: int
    total_supply: int
    roi: JsonNumber | None = None

    @classmethod
    def from_domain(cls, asset: Asset) -> AssetResponse:
        return cls(
            id=asset.id,
            name=asset.name,
            price=asset.unit_price,
            supply=asset.remaining_supply,
            total_supply=asset.total_supply,
            roi=asset.roi_percent,
        )


class QuoteResponse(BaseModel):
    asset_id: int
    quantity: int
    total_price: JsonNumber
    projected_annual_income: JsonNumber
    projected_monthly_income: JsonNumber

    @classmethod
    def from_domain(cls, quote: PurchaseQuote) -> QuoteResponse:
        return cls(**quote.model_dump())


class SummaryResponse(BaseModel):
    total_volume: JsonNumber
    total_count: int

    @classmethod
    def from_domain(cls, summary: LedgerSummary) -> SummaryResponse:
        return cls(total_volume=summary.total_volume, total_count=summary.total_count)


class ErrorResponse(BaseModel):
    error: str
