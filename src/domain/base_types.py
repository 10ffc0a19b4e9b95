from __future__ import annotations

from typing import NewType

AssetId = NewType("AssetId", int)
TransactionId = NewType("TransactionId", int)
