"""Integration tests for realm upserts against a live Postgres.

Set TEST_DATABASE_URL to a disposable database to run these.
"""

from __future__ import annotations

import asyncio
import os
from dataclasses import replace
from pathlib import Path

import pytest

from core import db
from realms import repository
from realms.schemas import RealmRecord

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(not os.environ.get("TEST_DATABASE_URL"), reason="TEST_DATABASE_URL is not set"),
]

MIGRATIONS = Path(__file__).resolve().parents[2] / "db" / "migrations"

RECORD = RealmRecord(
    record_id="abcdi0",
    ordinal_number=4242,
    minter_address="bc1qminter",
    owner_address="bc1qowner",
    profile_id="profilei0",
)


def _migration_up_sql() -> str:
    parts: list[str] = []
    for path in sorted(MIGRATIONS.glob("*.sql")):
        text = path.read_text()
        up = text.split("-- migrate:down", 1)[0]
        parts.append(up.replace("-- migrate:up", ""))
    return "\n".join(parts)


async def _fresh_pool() -> None:
    await db.init_pool(os.environ["TEST_DATABASE_URL"])
    await db.execute("DROP TABLE IF EXISTS realms")
    await db.execute(_migration_up_sql())


@pytest.mark.asyncio
async def test_reingest_updates_only_mutable_fields() -> None:
    """Second upsert of the same name keeps one row and its write-once fields."""
    await _fresh_pool()
    try:
        assert await repository.upsert_realm("a.b", RECORD) is True
        changed = replace(
            RECORD,
            record_id="otheri0",
            ordinal_number=1,
            minter_address="bc1qother",
            owner_address="bc1qnewowner",
            profile_id=None,
        )
        assert await repository.upsert_realm("a.b", changed) is True

        rows = await db.fetch_all("SELECT * FROM realms WHERE name = $1", "a.b")
        assert len(rows) == 1
        row = rows[0]
        assert row["realm_id"] == "abcdi0"
        assert row["realm_number"] == 4242
        assert row["minter_address"] == "bc1qminter"
        assert row["owner_address"] == "bc1qnewowner"
        assert row["profile_id"] is None
    finally:
        await db.close_pool()


@pytest.mark.asyncio
async def test_concurrent_upserts_of_one_name_leave_one_row() -> None:
    await _fresh_pool()
    try:
        owners = [replace(RECORD, owner_address=f"bc1qowner{i}") for i in range(5)]
        results = await asyncio.gather(*(repository.upsert_realm("a.b", r) for r in owners))

        assert all(results)
        row = await db.fetch_one("SELECT count(*) AS n FROM realms WHERE name = $1", "a.b")
        assert row == {"n": 1}
    finally:
        await db.close_pool()


@pytest.mark.asyncio
async def test_list_realms_returns_direct_children_only() -> None:
    await _fresh_pool()
    try:
        for name in ["a", "a.b", "a.c", "a.b.d", "ab.x"]:
            await repository.upsert_realm(name, RECORD)

        rows = await repository.list_realms(parent="a")

        assert [r["name"] for r in rows] == ["a.b", "a.c"]
        assert (await repository.get_realm("a.b.d"))["name"] == "a.b.d"
    finally:
        await db.close_pool()
