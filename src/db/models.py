from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class DecimalAsString(TypeDecorator):
    impl = String
    cache_ok = True

    def process_bind_param(self, value: Decimal | None, dialect: object) -> str | None:
        if value is None:
            return None
        return str(value)

    def process_result_value(self, value: str | None, dialect: object) -> Decimal | None:
        if value is None:
            return None
        return Decimal(value)


class Base(DeclarativeBase):
    pass


class AssetOrm(Base):
    __tablename__ = "assets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    total_supply: Mapped[int] = mapped_column(Integer, nullable=False)
    remaining_supply: Mapped[int] = mapped_column(Integer, nullable=False)
    roi_percent: Mapped[Decimal | None] = mapped_column(DecimalAsString, nullable=True)

    __table_args__ = (
        CheckConstraint("remaining_supply >= 0", name="ck_assets_remaining_non_negative"),
        CheckConstraint("remaining_supply <= total_supply", name="ck_assets_remaining_within_total"),
    )


class TransactionOrm(Base):
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    asset_id: Mapped[int] = mapped_column(Integer, ForeignKey("assets.id"), nullable=False)
    buyer_name: Mapped[str] = mapped_column(String, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price_at_purchase: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    total_price: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_transactions_quantity_positive"),
        Index("ix_transactions_order", "timestamp", "id"),
        Index("ix_transactions_asset", "asset_id"),
    )
