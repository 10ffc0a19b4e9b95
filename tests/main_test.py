from __future__ import annotations

import json
from pathlib import Path

import pytest

from main import main


@pytest.fixture()
def database_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'cli.db'}"


@pytest.fixture()
def assets_file(tmp_path: Path) -> Path:
    path = tmp_path / "assets.json"
    path.write_text(
        json.dumps(
            [
                {"id": 1, "name": "Sunset Villa", "price": 1500, "supply": 5},
                {"id": 2, "name": "Harbor Office Tower", "price": "25.50", "supply": 10, "roi": 8},
            ]
        )
    )
    return path


def test_cli_seed_buy_and_report(database_url: str, assets_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--database-url", database_url, "init-db"]) == 0
    assert main(["--database-url", database_url, "seed", str(assets_file)]) == 0
    assert "Inserted 2 of 2 assets" in capsys.readouterr().out

    assert main(["--database-url", database_url, "buy", "1", "Alice", "2"]) == 0
    assert "for $3,000" in capsys.readouterr().out

    assert main(["--database-url", database_url, "buy", "1", "Bob", "9"]) == 1
    assert "INSUFFICIENT_SUPPLY" in capsys.readouterr().out

    assert main(["--database-url", database_url, "transactions", "--search", "villa"]) == 0
    listing = capsys.readouterr().out
    assert "Sunset Villa buyer=Alice qty=2" in listing

    assert main(["--database-url", database_url, "summary"]) == 0
    summary = capsys.readouterr().out
    assert "Total volume:       $3,000" in summary
    assert "Total transactions: 1" in summary


def test_cli_reconcile_on_consistent_catalog(
    database_url: str, assets_file: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    main(["--database-url", database_url, "seed", str(assets_file)])
    capsys.readouterr()

    assert main(["--database-url", database_url, "reconcile"]) == 0
    assert "Catalog supply matches the ledger" in capsys.readouterr().out


def test_cli_transactions_on_empty_ledger(database_url: str, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--database-url", database_url, "transactions"]) == 0
    assert "No transactions yet" in capsys.readouterr().out
