from pathlib import Path
from typing import Generator

import pytest
from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from db.db import create_db_engine, init_db
from db.models import Base
from db.repositories import AssetRepository
from tests.helpers.catalog import make_asset

engine: Engine = create_db_engine("sqlite:///:memory:")
session_factory = sessionmaker(engine)


@pytest.fixture(scope="function")
def test_session() -> Generator[Session, None, None]:
    with session_factory() as session:
        yield session


@pytest.fixture(scope="function", autouse=True)
def reset_db() -> Generator[None, None, None]:
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def file_session_factory(tmp_path: Path) -> Generator[sessionmaker[Session], None, None]:
    """File-backed database; needed wherever sessions are opened from several threads."""
    factory = init_db(db_file=tmp_path / "ledger.db")
    yield factory
    factory.kw["bind"].dispose()


@pytest.fixture(scope="function")
def seeded_factory(file_session_factory: sessionmaker[Session]) -> sessionmaker[Session]:
    """Catalog with asset 1 (5 left at 100) and asset 2 (10 left at 25.50, 8% ROI)."""
    with file_session_factory() as session:
        AssetRepository(session).add_many(
            [
                make_asset(asset_id=1, name="Sunset Villa", unit_price="100", total_supply=5, remaining_supply=5),
                make_asset(
                    asset_id=2,
                    name="Harbor Office Tower",
                    unit_price="25.50",
                    total_supply=10,
                    remaining_supply=10,
                    roi_percent="8",
                ),
            ]
        )
    return file_session_factory
