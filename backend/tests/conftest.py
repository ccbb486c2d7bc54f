import sys
from pathlib import Path

# Ensure repository root is on sys.path so 'import backend' works
ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Force pytest-anyio to use asyncio backend (avoid requiring 'trio')
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from backend.app.models.sql_models import Base
from backend.app.services.flags import SqlFlagRepository


@pytest.fixture
def anyio_backend():
    return "asyncio"


class RecordingRepository:
    """Flag repository double that keeps writes in memory."""

    def __init__(self, fail: bool = False):
        self.flags = []
        self.fail = fail

    def create_flag(self, record):
        if self.fail:
            raise RuntimeError("ledger unavailable")
        self.flags.append(record)
        return f"flag-{len(self.flags)}"

    def mark_flag_reviewed(self, flag_id, reviewer_id, action, notes=""):
        raise NotImplementedError

    def list_flags(self, status=None, min_severity=0, page=1, limit=20):
        # Records here are never reviewed, so every one counts as pending
        matching = [f for f in self.flags if f.severity >= min_severity]
        matching.sort(key=lambda f: -f.severity)
        start = (page - 1) * limit
        return matching[start:start + limit], len(matching)

    def get_stats(self):
        by_reason = {}
        for f in self.flags:
            by_reason[f.reason.value] = by_reason.get(f.reason.value, 0) + 1
        return {
            "total": len(self.flags),
            "pending": len(self.flags),
            "avgSeverity": sum(f.severity for f in self.flags) / len(self.flags) if self.flags else 0.0,
            "maxSeverity": max((f.severity for f in self.flags), default=0),
            "byReason": by_reason,
        }


@pytest.fixture
def recording_repo():
    return RecordingRepository()


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        engine.dispose()


@pytest.fixture
def sql_repo(session_factory):
    return SqlFlagRepository(session_factory)


@pytest.fixture
def failing_repo():
    return RecordingRepository(fail=True)
