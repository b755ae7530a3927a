"""Pytest fixtures for testing"""

import pytest
from datetime import datetime, timedelta, timezone
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from attribution_gateway.api.main import create_app
from attribution_gateway.api.dependencies import get_attribution_service, get_store_client
from attribution_gateway.infrastructure.database.models import Base
from attribution_gateway.infrastructure.database.session import engine_options, get_db
from attribution_gateway.domain.models import AttributionMapping, AttributionType, Transaction
from attribution_gateway.services.attribution import AttributionService, InFlightRegistry, ReportCache


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, **engine_options(TEST_DATABASE_URL))
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database and a clean service state"""
    app = create_app()
    cache = ReportCache()
    inflight = InFlightRegistry()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    def override_get_attribution_service():
        return AttributionService(get_store_client(), cache, inflight)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_attribution_service] = override_get_attribution_service
    return TestClient(app)


def make_mapping(
    refcode: str,
    attribution_type: AttributionType,
    mapping_id: str | None = None,
    created_at: datetime | None = None,
    organization_id: str = "org_1",
) -> AttributionMapping:
    return AttributionMapping(
        mapping_id=mapping_id or f"map_{refcode}_{attribution_type.value}",
        organization_id=organization_id,
        refcode=refcode.lower(),
        source="facebook",
        attribution_type=attribution_type,
        created_at=created_at,
    )


@pytest.fixture
def mapping_factory():
    """Build AttributionMapping records with sensible defaults"""
    return make_mapping


@pytest.fixture
def sample_transactions() -> list[Transaction]:
    """Donations across truth, heuristic, and unmapped refcodes"""
    base = datetime(2024, 10, 1, tzinfo=timezone.utc)
    transactions = []

    # Verified Meta refcode: 4 donations of $25 from 2 donors, one recurring
    for i in range(4):
        transactions.append(
            Transaction(
                transaction_id=f"meta_{i}",
                amount_cents=2500,
                refcode="meta_fall24",
                transaction_date=base + timedelta(days=i),
                donor_id=f"donor_{i % 2}",
                is_recurring=(i == 0),
            )
        )

    # Heuristic SMS refcode: 2 donations of $50
    for i in range(2):
        transactions.append(
            Transaction(
                transaction_id=f"sms_{i}",
                amount_cents=5000,
                refcode="sms_gotv",
                transaction_date=base + timedelta(days=10 + i),
                donor_id=f"donor_sms_{i}",
            )
        )

    # Unmapped high-revenue refcode
    transactions.append(
        Transaction(
            transaction_id="fb_0",
            amount_cents=25000,
            refcode="fb_winter_push",
            transaction_date=base + timedelta(days=20),
            donor_id="donor_0",
        )
    )

    # No refcode at all
    transactions.append(
        Transaction(
            transaction_id="direct_0",
            amount_cents=3000,
            refcode=None,
            transaction_date=base + timedelta(days=25),
            donor_id="donor_direct",
        )
    )

    return transactions


@pytest.fixture
def sample_mappings() -> list[AttributionMapping]:
    return [
        make_mapping("META_FALL24", AttributionType.DETERMINISTIC_URL_REFCODE),
        make_mapping("sms_gotv", AttributionType.HEURISTIC_PATTERN),
    ]
