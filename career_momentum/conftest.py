# career_momentum/conftest.py
import os
import sys
from pathlib import Path

import pytest

# Add project root to PYTHONPATH
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

os.environ.setdefault("SKIP_ENV_VALIDATION", "1")


@pytest.fixture(scope="session")
def db_url():
    """
    Provide DATABASE_URL for tests.

    Returns the URL from environment, or None if not set.
    Tests can use this to conditionally enable persistence tests.
    """
    return os.getenv("DATABASE_URL")


@pytest.fixture(scope="session", autouse=True)
def create_tables(db_url):
    """Create all tables once per session when a database is configured."""
    if not db_url:
        yield
        return

    from career_momentum.core.database import check_connection, create_all_tables
    if check_connection():
        create_all_tables()
    yield


@pytest.fixture(autouse=True)
def reset_progress_store():
    """Each test starts with a fresh process-wide store."""
    from career_momentum.features.progress.store import reset_store
    reset_store()
    yield
    reset_store()
