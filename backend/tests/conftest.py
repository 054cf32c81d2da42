from __future__ import annotations

import os

# 测试默认使用内存 SQLite，不需要 Postgres
os.environ.setdefault("DATABASE_URL", "sqlite://")

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine, delete

from watermark_api.api.deps import get_db, get_image_editor, get_receipt_verifier
from watermark_api.integrations.apple_receipt import ReceiptVerification
from watermark_api.integrations.image_edit import BBox
from watermark_api.main import app
from watermark_api.models import Entitlement, IapTransaction
from watermark_api.services.catalog_service import get_catalog
from watermark_api.services.entitlement_service import EntitlementService


class FakeVerifier:
    """Scripted receipt verifier: receipt string -> verification result."""

    def __init__(self) -> None:
        self.results: dict[str, ReceiptVerification | Exception] = {}
        self.calls: list[tuple[str, str]] = []

    def add(self, receipt: str, transaction_id: str, product_id: str) -> None:
        self.results[receipt] = ReceiptVerification(
            valid=True,
            transaction_id=transaction_id,
            original_transaction_id=transaction_id,
            product_id=product_id,
            purchased_at="2023-11-14T22:13:20.000Z",
        )

    def verify(self, *, receipt: str, product_id: str) -> ReceiptVerification:
        self.calls.append((receipt, product_id))
        result = self.results.get(receipt)
        if result is None:
            return ReceiptVerification.invalid("Invalid receipt status: 21002")
        if isinstance(result, Exception):
            raise result
        return result


class FakeEditor:
    def __init__(self) -> None:
        self.result: str | None = "data:image/png;base64,ZWRpdGVk"
        self.calls: list[tuple[BBox, int]] = []

    def edit(self, *, image_base64: str, bbox: BBox, retry_level: int = 0) -> str | None:
        self.calls.append((bbox, retry_level))
        return self.result


@pytest.fixture(scope="session")
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    return engine


@pytest.fixture(scope="function")
def db(engine) -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session
        session.rollback()
        session.exec(delete(IapTransaction))
        session.exec(delete(Entitlement))
        session.commit()


@pytest.fixture(scope="function")
def verifier() -> FakeVerifier:
    return FakeVerifier()


@pytest.fixture(scope="function")
def editor() -> FakeEditor:
    return FakeEditor()


@pytest.fixture(scope="function")
def make_service(db, verifier):
    def _make(**kwargs) -> EntitlementService:
        options = {
            "session": db,
            "free_usage_limit": 1,
            "dev_mode": False,
            "catalog": get_catalog(),
            "verifier": verifier,
        }
        options.update(kwargs)
        return EntitlementService(**options)

    return _make


@pytest.fixture(scope="function")
def client(engine, db, verifier, editor) -> Generator[TestClient, None, None]:
    def _override_get_db() -> Generator[Session, None, None]:
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_receipt_verifier] = lambda: verifier
    app.dependency_overrides[get_image_editor] = lambda: editor
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def _pin_metering_settings(monkeypatch):
    from watermark_api.core.config import settings

    monkeypatch.setattr(settings, "FREE_USAGE_LIMIT", 1)
    monkeypatch.setattr(settings, "DEV_MODE", False)
    monkeypatch.setattr(settings, "PRO_FREE_REMAINING", 999)
