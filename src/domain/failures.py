"""Typed outcomes for rejected purchases.

A purchase either yields a ``Transaction`` or exactly one of the failure
variants below. They are plain values returned to the caller, not raised.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import ClassVar, TypeAlias


class FailureKind(StrEnum):
    ASSET_NOT_FOUND = "ASSET_NOT_FOUND"
    INVALID_BUYER = "INVALID_BUYER"
    INVALID_QUANTITY = "INVALID_QUANTITY"
    INSUFFICIENT_SUPPLY = "INSUFFICIENT_SUPPLY"
    BUSY = "BUSY"
    STORAGE_FAILURE = "STORAGE_FAILURE"


@dataclass(frozen=True)
class AssetNotFound:
    asset_id: object
    kind: ClassVar[FailureKind] = FailureKind.ASSET_NOT_FOUND

    @property
    def message(self) -> str:
        return f"Asset {self.asset_id} not found"


@dataclass(frozen=True)
class InvalidBuyer:
    kind: ClassVar[FailureKind] = FailureKind.INVALID_BUYER

    @property
    def message(self) -> str:
        return "Please enter your name"


@dataclass(frozen=True)
class InvalidQuantity:
    quantity: object
    kind: ClassVar[FailureKind] = FailureKind.INVALID_QUANTITY

    @property
    def message(self) -> str:
        return f"Quantity must be a positive whole number, got {self.quantity!r}"


@dataclass(frozen=True)
class InsufficientSupply:
    asset_id: int
    requested: int
    available: int
    kind: ClassVar[FailureKind] = FailureKind.INSUFFICIENT_SUPPLY

    @property
    def message(self) -> str:
        return f"Quantity must be between 1 and {self.available} (requested {self.requested})"


@dataclass(frozen=True)
class Busy:
    asset_id: int
    kind: ClassVar[FailureKind] = FailureKind.BUSY

    @property
    def message(self) -> str:
        return f"Asset {self.asset_id} is handling other purchases, please try again"


@dataclass(frozen=True)
class StorageFailure:
    reason: str
    kind: ClassVar[FailureKind] = FailureKind.STORAGE_FAILURE

    @property
    def message(self) -> str:
        return f"Purchase could not be recorded: {self.reason}"


PurchaseFailure: TypeAlias = AssetNotFound | InvalidBuyer | InvalidQuantity | InsufficientSupply | Busy | StorageFailure

__all__ = [
    "AssetNotFound",
    "Busy",
    "FailureKind",
    "InsufficientSupply",
    "InvalidBuyer",
    "InvalidQuantity",
    "PurchaseFailure",
    "StorageFailure",
]
