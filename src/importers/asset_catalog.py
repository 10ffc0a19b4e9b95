from __future__ import annotations

import json
from decimal import Decimal, InvalidOperation
from pathlib import Path

from domain.base_types import AssetId
from domain.catalog import Asset


def load_assets(path: Path) -> list[Asset]:
    """Load catalog entries from a JSON list.

    Each entry needs ``id``, ``name``, ``price`` and ``supply`` (units still
    available); ``total_supply`` defaults to ``supply`` and ``roi`` is optional.
    """
    payload = json.loads(path.read_text())
    if not isinstance(payload, list):
        msg = f"Asset file {path} must contain a JSON list of objects."
        raise ValueError(msg)

    assets: list[Asset] = []
    seen: set[int] = set()
    for entry in payload:
        if not isinstance(entry, dict):
            msg = "Each asset entry must be an object with 'id', 'name', 'price' and 'supply'."
            raise ValueError(msg)
        missing = {"id", "name", "price", "supply"} - entry.keys()
        if missing:
            msg = f"Asset entry {entry!r} missing required keys: {', '.join(sorted(missing))}"
            raise ValueError(msg)

        asset_id = _parse_int(entry["id"], "id")
        if asset_id in seen:
            msg = f"Duplicate asset id {asset_id} in {path}"
            raise ValueError(msg)
        seen.add(asset_id)

        supply = _parse_int(entry["supply"], "supply")
        total_supply = _parse_int(entry.get("total_supply", supply), "total_supply")
        roi_raw = entry.get("roi")
        assets.append(
            Asset(
                id=AssetId(asset_id),
                name=str(entry["name"]),
                unit_price=_parse_decimal(entry["price"], "price"),
                total_supply=total_supply,
                remaining_supply=supply,
                roi_percent=_parse_decimal(roi_raw, "roi") if roi_raw is not None else None,
            )
        )

    return assets


def _parse_int(raw: object, field: str) -> int:
    if isinstance(raw, bool) or not isinstance(raw, int):
        msg = f"Asset field '{field}' must be an integer, got {raw!r}"
        raise ValueError(msg)
    return raw


def _parse_decimal(raw: object, field: str) -> Decimal:
    if isinstance(raw, bool) or not isinstance(raw, (int, float, str)):
        msg = f"Asset field '{field}' must be a number, got {raw!r}"
        raise ValueError(msg)
    try:
        return Decimal(str(raw))
    except InvalidOperation as exc:
        msg = f"Asset field '{field}' must be a number, got {raw!r}"
        raise ValueError(msg) from exc


__all__ = ["load_assets"]
