"""Scoped string key -> JSON string persistence.

Three scopes are used: ``user`` (per person), ``document`` (per spreadsheet,
shared by collaborators) and ``script`` (global to the installation, where
column preferences live so teams can share them).

Usage:
    store = SQLPropertyStore(async_session_factory, scope=SCRIPT_SCOPE)
    await store.set("COLUMNS_Sheet1_deals_me@example.com", json.dumps([...]))
    raw = await store.get("COLUMNS_Sheet1_deals_me@example.com")
"""

from __future__ import annotations

from typing import Protocol

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..models import PropertyEntry

USER_SCOPE = "user"
DOCUMENT_SCOPE = "document"
SCRIPT_SCOPE = "script"


class PropertyStore(Protocol):
    """Minimal key-value contract the sync engine relies on."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...

    async def delete(self, key: str) -> None: ...


class MemoryPropertyStore:
    """Dict-backed store for tests and one-off runs."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)


class SQLPropertyStore:
    """Store rows in the ``property_entry`` table under one scope."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], scope: str = SCRIPT_SCOPE):
        self._session_factory = session_factory
        self.scope = scope

    async def get(self, key: str) -> str | None:
        async with self._session_factory() as db:
            stmt = select(PropertyEntry.value).where(
                PropertyEntry.scope == self.scope,
                PropertyEntry.key == key,
            )
            return (await db.execute(stmt)).scalar_one_or_none()

    async def set(self, key: str, value: str) -> None:
        async with self._session_factory() as db:
            stmt = select(PropertyEntry).where(
                PropertyEntry.scope == self.scope,
                PropertyEntry.key == key,
            )
            existing = (await db.execute(stmt)).scalar_one_or_none()
            if existing:
                existing.value = value
            else:
                db.add(PropertyEntry(scope=self.scope, key=key, value=value))
            await db.commit()

    async def delete(self, key: str) -> None:
        async with self._session_factory() as db:
            await db.execute(
                delete(PropertyEntry).where(
                    PropertyEntry.scope == self.scope,
                    PropertyEntry.key == key,
                )
            )
            await db.commit()
