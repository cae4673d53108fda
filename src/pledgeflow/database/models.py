"""SQLAlchemy models for pledgeflow database."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    UniqueConstraint,
    Index,
    create_engine,
    event,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Agreement(Base):
    """Recurring donation agreement model."""

    __tablename__ = "agreements"

    id = Column(Integer, primary_key=True)
    donor_id = Column(String, nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    frequency = Column(String, nullable=False)
    anchor_date = Column(Date, nullable=False)
    next_due_date = Column(Date, nullable=False)
    state = Column(String, nullable=False)
    occurrences_completed = Column(Integer, default=0, nullable=False)
    cycles_skipped = Column(Integer, default=0, nullable=False)
    occurrence_limit = Column(Integer, nullable=True)
    end_date = Column(Date, nullable=True)
    failure_streak = Column(Integer, default=0, nullable=False)
    next_retry_at = Column(DateTime, nullable=True)
    cancel_reason = Column(String, nullable=True)
    version = Column(Integer, default=1, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, nullable=False)

    __table_args__ = (Index("ix_agreements_state_next_due", "state", "next_due_date"),)

    # Relationships
    instances = relationship("DonationInstance", back_populates="agreement")


class DonationInstance(Base):
    """Materialized donation for one cycle of an agreement."""

    __tablename__ = "donation_instances"

    id = Column(Integer, primary_key=True)
    agreement_id = Column(Integer, ForeignKey("agreements.id"), nullable=False)
    due_date = Column(Date, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    status = Column(String, nullable=False)
    attempts = Column(Integer, default=0, nullable=False)
    captured_at = Column(DateTime, nullable=True)
    transaction_ref = Column(String, nullable=True)
    failure_reason = Column(String, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    # One row per cycle; the idempotency key is agreement_id + due_date
    __table_args__ = (
        UniqueConstraint("agreement_id", "due_date", name="uq_agreement_due_date"),
    )

    # Relationships
    agreement = relationship("Agreement", back_populates="instances")


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        # Sweep workers use their own sessions; wait on the file lock
        # instead of failing immediately.
        connect_args = {"check_same_thread": False, "timeout": 30}
    engine = create_engine(database_url, echo=False, connect_args=connect_args)
    if database_url.startswith("sqlite"):
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
