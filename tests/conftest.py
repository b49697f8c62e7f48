"""
Pytest fixtures for the rental engine test suite.

Provides:
- A file-backed SQLite database per test (threads in the availability
  engine open their own sessions, so an in-memory database will not do)
- A session factory and a default session
- A deterministic clock fixed at 2025-06-15 12:00 UTC
- Structured log capture
- Factories for rental units, vendors and agreements
"""

import json
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest
from sqlalchemy.orm import Session

from rental_kernel.db.engine import (
    create_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from rental_kernel.domain.clock import DeterministicClock
from rental_kernel.domain.entities import Agreement, RentalUnit, TrialStatus, Vendor
from rental_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from rental_kernel.models import AgreementModel, RentalUnitModel, VendorModel
from tests.factories import make_agreement

TEST_NOW = datetime(2025, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture rental_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, revenue_service):
            revenue_service.calculate_monthly_revenue(2025, 1)
            logs = captured_logs()
            assert any(r["message"] == "monthly_revenue_calculated" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("rental_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def db_engine(tmp_path):
    engine = init_engine_from_url(f"sqlite:///{tmp_path / 'rental.db'}")
    create_tables()
    yield engine
    reset_engine()


@pytest.fixture
def session_factory(db_engine):
    return get_session_factory()


@pytest.fixture
def session(session_factory):
    sess = session_factory()
    yield sess
    sess.close()


# Clock fixtures


@pytest.fixture
def deterministic_clock():
    """Provide a deterministic clock fixed mid-June 2025."""
    return DeterministicClock(TEST_NOW)


# =============================================================================
# Data factories
# =============================================================================


@pytest.fixture
def create_unit(session: Session):
    """Persist a rental unit and return its entity."""

    def _create(
        label: str | None = None,
        unit_type: str = "shelf",
        base_price: Decimal = Decimal("100"),
        is_available: bool = True,
    ) -> RentalUnit:
        unit = RentalUnit(
            id=uuid4(),
            label=label,
            unit_type=unit_type,
            is_available=is_available,
            base_price=base_price,
        )
        session.add(RentalUnitModel.from_dto(unit))
        session.commit()
        return unit

    return _create


@pytest.fixture
def create_vendor(session: Session):
    """Persist a vendor and return its entity."""

    def _create(
        name: str = "Test Vendor",
        trial_status: TrialStatus = TrialStatus.ACTIVE,
        trial_start_date: date | None = None,
        trial_end_date: date | None = None,
        role: str = "vendor",
        company_name: str | None = None,
    ) -> Vendor:
        vendor = Vendor(
            id=uuid4(),
            name=name,
            role=role,
            company_name=company_name,
            trial_status=trial_status,
            trial_start_date=trial_start_date,
            trial_end_date=trial_end_date,
        )
        session.add(VendorModel.from_dto(vendor))
        session.commit()
        return vendor

    return _create


@pytest.fixture
def create_agreement(session: Session):
    """Persist an agreement built by ``make_agreement`` and return its entity."""

    def _create(vendor: Vendor, units: list[RentalUnit], start: date, **kwargs) -> Agreement:
        agreement = make_agreement(vendor, units, start, **kwargs)
        session.add(AgreementModel.from_dto(agreement))
        session.commit()
        return agreement

    return _create
