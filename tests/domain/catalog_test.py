from decimal import Decimal

import pytest
from pydantic import ValidationError

from domain.catalog import quote_purchase
from tests.helpers.catalog import make_asset


def test_asset_tracks_sold_supply() -> None:
    asset = make_asset(total_supply=10, remaining_supply=4)

    assert asset.sold_supply == 6


@pytest.mark.parametrize(
    ("unit_price", "total_supply", "remaining_supply"),
    [
        ("0", 5, 5),
        ("-1", 5, 5),
        ("100", 0, 0),
        ("100", 5, -1),
        ("100", 5, 6),
    ],
)
def test_asset_rejects_invalid_price_or_supply(unit_price: str, total_supply: int, remaining_supply: int) -> None:
    with pytest.raises(ValidationError):
        make_asset(unit_price=unit_price, total_supply=total_supply, remaining_supply=remaining_supply)


def test_quote_projects_income_from_roi() -> None:
    asset = make_asset(unit_price="250", total_supply=100, roi_percent="12")

    quote = quote_purchase(asset, 4)

    assert quote.total_price == Decimal("1000")
    assert quote.projected_annual_income == Decimal("120")
    assert quote.projected_monthly_income == Decimal("10")


def test_quote_without_roi_projects_no_income() -> None:
    asset = make_asset(unit_price="100")

    quote = quote_purchase(asset, 3)

    assert quote.total_price == Decimal("300")
    assert quote.projected_annual_income == 0
    assert quote.projected_monthly_income == 0
