"""Shared pytest fixtures for pledgeflow tests."""

import os
import tempfile
from datetime import date, datetime, UTC
from decimal import Decimal

import pytest

from pledgeflow.config import EngineConfig
from pledgeflow.database.factories import create_sqlite_database
from pledgeflow.domain.agreement import AgreementService
from pledgeflow.domain.entities import AgreementSpec, Frequency
from pledgeflow.domain.events import InMemoryEventSink
from pledgeflow.domain.processor import DueCycleProcessor
from pledgeflow.domain.reporting import ReportingService
from pledgeflow.domain.retry import RetryPolicy
from pledgeflow.gateway.simulated import SimulatedGateway
from pledgeflow.logging_config import reset_logging

FIXED_NOW = datetime(2024, 1, 10, 9, 0, tzinfo=UTC)


@pytest.fixture(autouse=True)
def _reset_logging():
    """Leave the pledgeflow logger unconfigured between tests."""
    reset_logging()
    yield
    reset_logging()


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def clock():
    """Mutable clock; tests move time by assigning ``clock.now``."""

    class Clock:
        def __init__(self):
            self.now = FIXED_NOW

        def __call__(self) -> datetime:
            return self.now

    return Clock()


@pytest.fixture
def config():
    """Engine config without retry jitter so delays are exact."""
    return EngineConfig(retry_policy=RetryPolicy(jitter_ratio=0.0), worker_concurrency=4)


@pytest.fixture
def agreement_service(temp_db, config, clock):
    """Create an AgreementService with a temporary database."""
    return AgreementService(temp_db, config=config, clock=clock)


@pytest.fixture
def reporting_service(temp_db, config):
    """Create a ReportingService with a temporary database."""
    return ReportingService(temp_db, config=config)


@pytest.fixture
def gateway():
    """Simulated gateway that approves every capture."""
    return SimulatedGateway()


@pytest.fixture
def event_sink():
    """Event sink collecting events in memory."""
    return InMemoryEventSink()


@pytest.fixture
def processor(temp_db, gateway, event_sink, config, clock):
    """Create a DueCycleProcessor wired to the simulated gateway."""
    return DueCycleProcessor(
        temp_db, gateway, event_sink=event_sink, config=config, clock=clock
    )


@pytest.fixture
def monthly_agreement(agreement_service):
    """Monthly agreement anchored on Jan 31 with three occurrences."""
    return agreement_service.create(
        AgreementSpec(
            donor_id="D-100",
            amount=Decimal("500.00"),
            frequency=Frequency.MONTHLY,
            anchor_date=date(2024, 1, 31),
            occurrence_limit=3,
        )
    )


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
