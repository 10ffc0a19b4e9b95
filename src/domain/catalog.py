from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, model_validator

from domain.base_types import AssetId

MONTHS_PER_YEAR = 12


class Asset(BaseModel):
    """A fixed-supply tokenized item offered for fractional purchase.

    ``remaining_supply`` is the only mutable field and only the purchase path
    changes it; everything else is fixed once the asset is in the catalog.
    """

    id: AssetId
    name: str
    unit_price: Decimal
    total_supply: int
    remaining_supply: int
    roi_percent: Decimal | None = None

    @model_validator(mode="after")
    def _validate_fields(self) -> Asset:
        if self.unit_price <= 0:
            raise ValueError("Asset.unit_price must be > 0")
        if self.total_supply <= 0:
            raise ValueError("Asset.total_supply must be > 0")
        if not 0 <= self.remaining_supply <= self.total_supply:
            raise ValueError("Asset.remaining_supply must be within [0, total_supply]")
        return self

    @property
    def sold_supply(self) -> int:
        return self.total_supply - self.remaining_supply


class PurchaseQuote(BaseModel):
    """Informational price and projected income for a prospective purchase."""

    asset_id: AssetId
    quantity: int
    total_price: Decimal
    projected_annual_income: Decimal
    projected_monthly_income: Decimal


def quote_purchase(asset: Asset, quantity: int) -> PurchaseQuote:
    total_price = asset.unit_price * quantity
    annual = Decimal(0)
    if asset.roi_percent is not None:
        annual = total_price * asset.roi_percent / Decimal(100)
    return PurchaseQuote(
        asset_id=asset.id,
        quantity=quantity,
        total_price=total_price,
        projected_annual_income=annual,
        projected_monthly_income=annual / MONTHS_PER_YEAR,
    )
