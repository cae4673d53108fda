"""Engine configuration.

Values come from ``PLEDGEFLOW_*`` environment variables with defaults for
anything unset. The only process-wide state the engine keeps is one
``EngineConfig`` instance.
"""

import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Mapping, Optional

from pledgeflow.domain.entities import ResumePolicy
from pledgeflow.domain.errors import ValidationError
from pledgeflow.domain.retry import RetryPolicy

ENV_DB_PATH = "PLEDGEFLOW_DB_PATH"


@dataclass(frozen=True)
class EngineConfig:
    """Tunables for the sweep, retry policy and command API."""

    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    worker_concurrency: int = 4
    resume_policy: ResumePolicy = ResumePolicy.SKIP_MISSED
    currency: str = "INR"
    log_level: str = "WARNING"

    def __post_init__(self):
        if self.worker_concurrency < 1:
            raise ValidationError("Worker concurrency must be at least 1")


def _read(environ: Mapping[str, str], name: str, default: str) -> str:
    value = environ.get(name)
    return default if value is None or value.strip() == "" else value.strip()


def _read_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = _read(environ, name, str(default))
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer, got '{raw}'")


def _read_float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = _read(environ, name, str(default))
    try:
        return float(raw)
    except ValueError:
        raise ValidationError(f"{name} must be a number, got '{raw}'")


def load_config(environ: Optional[Mapping[str, str]] = None) -> EngineConfig:
    """Build an EngineConfig from environment variables.

    Args:
        environ: Mapping to read from (defaults to os.environ)

    Returns:
        EngineConfig instance

    Raises:
        ValidationError: If a variable holds an invalid value
    """
    if environ is None:
        environ = os.environ

    resume_raw = _read(environ, "PLEDGEFLOW_RESUME_POLICY", ResumePolicy.SKIP_MISSED.value)
    try:
        resume_policy = ResumePolicy(resume_raw.lower())
    except ValueError:
        raise ValidationError(
            f"PLEDGEFLOW_RESUME_POLICY must be one of "
            f"{', '.join(p.value for p in ResumePolicy)}, got '{resume_raw}'"
        )

    retry_policy = RetryPolicy(
        base_delay=timedelta(seconds=_read_int(environ, "PLEDGEFLOW_RETRY_BASE_SECONDS", 3600)),
        max_delay=timedelta(seconds=_read_int(environ, "PLEDGEFLOW_RETRY_CAP_SECONDS", 86400)),
        max_retries=_read_int(environ, "PLEDGEFLOW_MAX_RETRIES", 3),
        jitter_ratio=_read_float(environ, "PLEDGEFLOW_RETRY_JITTER", 0.1),
    )

    return EngineConfig(
        retry_policy=retry_policy,
        worker_concurrency=_read_int(environ, "PLEDGEFLOW_WORKERS", 4),
        resume_policy=resume_policy,
        currency=_read(environ, "PLEDGEFLOW_CURRENCY", "INR").upper(),
        log_level=_read(environ, "PLEDGEFLOW_LOG_LEVEL", "WARNING").upper(),
    )


def default_database_path(environ: Optional[Mapping[str, str]] = None) -> str:
    """Resolve the SQLite path from PLEDGEFLOW_DB_PATH or ~/.pledgeflow."""
    if environ is None:
        environ = os.environ

    database_path = environ.get(ENV_DB_PATH)
    if database_path:
        return database_path

    db_dir = Path.home() / ".pledgeflow"
    db_dir.mkdir(exist_ok=True)
    return str(db_dir / "pledgeflow.db")
