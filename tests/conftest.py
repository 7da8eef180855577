"""Shared test fixtures for the pipesheet test suite."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from pipesheet.models import Base
from pipesheet.grid.surface import MemoryGrid
from pipesheet.storage.properties import MemoryPropertyStore
from pipesheet.sync.preferences import ColumnPreferenceStore

SAMPLE_SHEET = "Sheet1"
SAMPLE_USER = "rep@example.com"
SAMPLE_TEAM = "42"

# 40-char custom field hashes as Pipedrive issues them
MONEY_HASH = "a1b2c3d4e5f6a7b8c9d0a1b2c3d4e5f6a7b8c9d0"
DATE_RANGE_HASH = "b2c3d4e5f6a7b8c9d0a1b2c3d4e5f6a7b8c9d0e1"
ADDRESS_HASH = "c3d4e5f6a7b8c9d0a1b2c3d4e5f6a7b8c9d0e1f2"
OPTIONS_HASH = "d4e5f6a7b8c9d0a1b2c3d4e5f6a7b8c9d0e1f2a3"


# ============================================================================
# Mock Response Data
# ============================================================================

MOCK_DEAL = {
    "id": 1,
    "title": "Acme Deal",
    "value": 200,
    "currency": "USD",
    "status": "open",
    "owner_id": {"id": 7, "name": "Dana Rep", "email": "dana@example.com"},
    "add_time": "2024-01-15 10:00:00",
    "update_time": "2024-02-01 08:30:00",
    "expected_close_date": "2024-03-05",
    "custom_fields": {MONEY_HASH: {"value": 10, "currency": "EUR"}},
}

MOCK_PERSON = {
    "id": 11,
    "name": "Jo Buyer",
    "email": [
        {"label": "work", "value": "jo@acme.test", "primary": True},
        {"label": "home", "value": "jo@home.test", "primary": False},
    ],
    "phone": [{"label": "mobile", "value": "+1 555 0100", "primary": True}],
    "org_id": {"value": 3, "name": "Acme"},
}

MOCK_DEAL_FIELDS = [
    {"key": "title", "name": "Title", "field_type": "varchar"},
    {"key": "value", "name": "Value", "field_type": "monetary"},
    {"key": "expected_close_date", "name": "Expected close date", "field_type": "date"},
    {"key": MONEY_HASH, "name": "Setup Fee", "field_type": "monetary"},
    {"key": DATE_RANGE_HASH, "name": "Contract Term", "field_type": "daterange"},
    {"key": ADDRESS_HASH, "name": "Site", "field_type": "address"},
    {
        "key": OPTIONS_HASH,
        "name": "Interests",
        "field_type": "set",
        "options": [{"id": 31, "label": "Hardware"}, {"id": 32, "label": "Software"}, {"id": 33, "label": "Support"}],
    },
    {
        "key": "label_ids",
        "name": "Labels",
        "field_type": "set",
        "options": [{"id": 1, "label": "Hot"}, {"id": 2, "label": "VIP"}],
    },
]


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def script_props():
    return MemoryPropertyStore()


@pytest.fixture
def document_props():
    return MemoryPropertyStore()


@pytest.fixture
def grid():
    return MemoryGrid()


@pytest.fixture
def preferences(script_props, document_props):
    return ColumnPreferenceStore(script_props, SAMPLE_USER, sheet_state=document_props)


@pytest.fixture
def mock_client():
    """PipedriveClient stand-in with async API methods."""
    client = MagicMock()
    client.list_records = AsyncMock(return_value=[MOCK_DEAL])
    client.get_record = AsyncMock(return_value=MOCK_DEAL)
    client.update_record = AsyncMock(return_value={})
    client.list_fields = AsyncMock(return_value=MOCK_DEAL_FIELDS)
    return client


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()
