from typing import Annotated, Generator

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from db.repositories import AssetRepository
from services.purchase_engine import PurchaseEngine
from services.query_service import TransactionQueryService


def get_session(request: Request) -> Generator[Session, None, None]:
    with request.app.state.sessionmaker() as session:
        yield session


def get_asset_repository(session: Annotated[Session, Depends(get_session)]) -> AssetRepository:
    return AssetRepository(session)


def get_query_service(session: Annotated[Session, Depends(get_session)]) -> TransactionQueryService:
    return TransactionQueryService(session)


def get_purchase_engine(request: Request) -> PurchaseEngine:
    return request.app.state.purchase_engine
