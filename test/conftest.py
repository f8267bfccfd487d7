"""
Test Configuration and Fixtures

This module provides:
- Environment setup before any application import (sqlite database, test log dir)
- Database reset for integration tests
- A TestClient over the test app

Architecture:
- Unit tests (test/**/unit/): marked `unit`, never touch the database
- Integration tests: run against a throwaway sqlite file with real repositories
"""

# =============================================================================
# CRITICAL: Environment setup MUST happen before any other imports
# Settings and the engine read DATABASE_URL when first imported
# =============================================================================
import os
from pathlib import Path
import tempfile


def _early_setup_test_environment() -> None:
    worker_id = os.environ.get('PYTEST_XDIST_WORKER', 'master')
    db_dir = Path(tempfile.mkdtemp(prefix=f'slot_booking_{worker_id}_'))
    os.environ['DATABASE_URL'] = f'sqlite+aiosqlite:///{db_dir / "test_booking.db"}'

    test_log_dir = Path(__file__).parent / 'test_log'
    test_log_dir.mkdir(exist_ok=True)
    os.environ['TEST_LOG_DIR'] = str(test_log_dir)


_early_setup_test_environment()

from collections.abc import AsyncGenerator, Generator  # noqa: E402

from fastapi.testclient import TestClient  # noqa: E402
import pytest  # noqa: E402

from src.platform.database.orm_db_setting import Base, get_engine  # noqa: E402
import src.service.booking.driven_adapter.model  # noqa: E402, F401


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        markers = [m.name for m in item.iter_markers()]
        if 'unit' not in markers:
            item.fixturenames.append('clean_database')


@pytest.fixture
async def clean_database() -> AsyncGenerator[None, None]:
    """Fresh schema for every integration test"""
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    from test.test_main import app

    with TestClient(app) as test_client:
        yield test_client
