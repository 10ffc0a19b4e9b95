from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Sequence

import uvicorn
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker

from api.api import create_app
from config import AppSettings, config
from db.db import create_session_factory, init_db
from db.repositories import AssetRepository
from domain.ledger import LedgerOrder, Transaction
from importers.asset_catalog import load_assets
from services.purchase_engine import PurchaseEngine
from services.query_service import TransactionQueryService
from services.reconciliation import reconcile_supply
from utils.formatting import format_money

logger = logging.getLogger(__name__)


def cmd_init_db(settings: AppSettings, *, reset: bool) -> None:
    url = make_url(settings.database_url)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        init_db(settings.db_echo, db_file=Path(url.database), reset=reset)
    else:
        create_session_factory(settings.database_url, echo=settings.db_echo)
    logger.info("Database ready at %s", settings.database_url)


def cmd_seed(session_factory: sessionmaker[Session], path: Path) -> None:
    assets = load_assets(path)
    with session_factory() as session:
        inserted = AssetRepository(session).add_many(assets)
    logger.info("Loaded %d assets from %s, inserted %d new", len(assets), path, inserted)
    print(f"Inserted {inserted} of {len(assets)} assets")


def cmd_reconcile(session_factory: sessionmaker[Session]) -> None:
    with session_factory() as session:
        drifts = reconcile_supply(session)
    if not drifts:
        print("Catalog supply matches the ledger")
        return
    for drift in drifts:
        print(f"  Asset #{drift.asset_id}: catalog={drift.recorded_remaining} ledger={drift.ledger_remaining}")


def cmd_buy(
    session_factory: sessionmaker[Session], settings: AppSettings, *, asset_id: int, buyer: str, quantity: int
) -> int:
    engine = PurchaseEngine(session_factory, lock_timeout=settings.lock_timeout_seconds)
    result = engine.purchase(asset_id, buyer, quantity)
    if not isinstance(result, Transaction):
        print(f"Purchase rejected ({result.kind}): {result.message}")
        return 1
    print(
        f"Purchase #{result.id}: {result.quantity} x asset {result.asset_id} for {format_money(result.total_price)} "
        f"at {result.timestamp.isoformat()}"
    )
    return 0


def cmd_transactions(session_factory: sessionmaker[Session], *, search: str | None, order: LedgerOrder) -> None:
    with session_factory() as session:
        views = TransactionQueryService(session).list_transactions(search, order=order)
    if not views:
        print("No matching transactions" if search else "No transactions yet")
        return
    for view in views:
        transaction = view.transaction
        print(
            f"#{transaction.id} {transaction.timestamp.isoformat()} {view.asset_name} "
            f"buyer={transaction.buyer_name} qty={transaction.quantity} "
            f"total={format_money(transaction.total_price)} price={format_money(transaction.unit_price_at_purchase)}"
        )


def cmd_summary(session_factory: sessionmaker[Session]) -> None:
    with session_factory() as session:
        summary = TransactionQueryService(session).summary()
    print("Ledger summary:")
    print(f"  Total volume:       {format_money(summary.total_volume)}")
    print(f"  Total transactions: {summary.total_count}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Asset purchase ledger.")
    parser.add_argument("--database-url", default=None, help="Overrides DATABASE_URL from the environment")
    sub = parser.add_subparsers(dest="command", required=True)

    init_parser = sub.add_parser("init-db", help="Create database tables")
    init_parser.add_argument("--reset", action="store_true", help="Delete an existing SQLite file first")

    seed_parser = sub.add_parser("seed", help="Load assets from a JSON file into the catalog")
    seed_parser.add_argument("path", type=Path)

    sub.add_parser("reconcile", help="Repair remaining supply from the ledger")

    buy_parser = sub.add_parser("buy", help="Purchase asset tokens")
    buy_parser.add_argument("asset_id", type=int)
    buy_parser.add_argument("buyer")
    buy_parser.add_argument("quantity", type=int)

    tx_parser = sub.add_parser("transactions", help="List the ledger")
    tx_parser.add_argument("--search", default=None)
    tx_parser.add_argument("--order", type=LedgerOrder, choices=list(LedgerOrder), default=LedgerOrder.ASC)

    sub.add_parser("summary", help="Total volume and count")

    sub.add_parser("serve", help="Run the HTTP API")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = config()
    if args.database_url is not None:
        settings = settings.model_copy(update={"database_url": args.database_url})

    if args.command == "init-db":
        cmd_init_db(settings, reset=args.reset)
        return 0
    if args.command == "serve":
        uvicorn.run(create_app(settings=settings), host=settings.api_host, port=settings.api_port)
        return 0

    session_factory = create_session_factory(settings.database_url, echo=settings.db_echo)
    if args.command == "seed":
        cmd_seed(session_factory, args.path)
    elif args.command == "reconcile":
        cmd_reconcile(session_factory)
    elif args.command == "buy":
        return cmd_buy(session_factory, settings, asset_id=args.asset_id, buyer=args.buyer, quantity=args.quantity)
    elif args.command == "transactions":
        cmd_transactions(session_factory, search=args.search, order=args.order)
    elif args.command == "summary":
        cmd_summary(session_factory)
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    raise SystemExit(main())
