from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from db.repositories import AssetRepository
from domain.base_types import AssetId

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SupplyDrift:
    asset_id: AssetId
    recorded_remaining: int
    ledger_remaining: int


def reconcile_supply(session: Session, *, repair: bool = True) -> list[SupplyDrift]:
    """Compare each asset's remaining supply with what its ledger entries imply.

    The ledger is authoritative: remaining = total_supply - sum(quantity). With
    ``repair`` set, drifted assets are rewritten to the ledger figure as it
    stands when the UPDATE runs, so purchases committed meanwhile still count.
    """
    assets = AssetRepository(session)

    drifts: list[SupplyDrift] = []
    repaired = 0
    for asset, ledger_remaining in assets.supply_against_ledger():
        if ledger_remaining == asset.remaining_supply:
            continue
        drift = SupplyDrift(
            asset_id=asset.id, recorded_remaining=asset.remaining_supply, ledger_remaining=ledger_remaining
        )
        drifts.append(drift)
        if ledger_remaining < 0:
            logger.error(
                "Ledger for asset %s records %d units sold, more than its total supply %d",
                asset.id,
                asset.total_supply - ledger_remaining,
                asset.total_supply,
            )
            continue
        logger.warning(
            "Supply drift for asset %s: catalog=%d ledger=%d", asset.id, drift.recorded_remaining, ledger_remaining
        )
        if repair:
            if assets.repair_remaining_supply(asset.id, commit=False):
                repaired += 1
            else:
                logger.info("Asset %s already agrees with the ledger; nothing to repair", asset.id)

    if repaired:
        session.commit()
    return drifts


__all__ = ["SupplyDrift", "reconcile_supply"]
