# spicereads/conftest.py
import os
import sys
from pathlib import Path

import pytest

# Add the repository root to PYTHONPATH
REPO_ROOT = Path(__file__).resolve().parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

os.environ.setdefault("SKIP_ENV_VALIDATION", "1")

from spicereads.features.gamification.service import set_gamification_service


@pytest.fixture
def sqlite_engine():
    """
    Fresh in-memory SQLite database with all tables created.

    Uses the same engine factory as production so the StaticPool wiring is exercised.
    """
    from spicereads.core.database import build_engine, create_all_tables

    engine = build_engine("sqlite://")
    create_all_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture(autouse=True)
def reset_service():
    """Each test starts without a process-wide service."""
    set_gamification_service(None)
    yield
    set_gamification_service(None)
