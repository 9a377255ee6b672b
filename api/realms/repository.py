"""
Realm persistence.
This module is where realm-related SQL lives.

Schema comes from the dbmate migration (db/migrations):
- realms(name text primary key, realm_id, realm_number, minter_address,
  owner_address, profile_id, created_at, updated_at)
"""

from __future__ import annotations

import logging
from typing import Any

from core import db

from .schemas import RealmRecord

logger = logging.getLogger(__name__)

# Write-once columns (realm_id, realm_number, minter_address) never appear in
# the DO UPDATE set.
UPSERT_REALM_SQL = """
    INSERT INTO realms (name, realm_id, realm_number, minter_address, owner_address, profile_id)
    VALUES ($1, $2, $3, $4, $5, $6)
    ON CONFLICT (name) DO UPDATE
    SET owner_address = EXCLUDED.owner_address,
        profile_id = EXCLUDED.profile_id,
        updated_at = now()
    RETURNING (xmax = 0) AS inserted
"""


async def upsert_realm(name: str, record: RealmRecord) -> bool:
    """
    Insert the realm, or refresh owner/profile when `name` already exists.

    Returns False (never raises) when the row could not be written.
    """
    try:
        row = await db.fetch_one(
            UPSERT_REALM_SQL,
            name,
            record.record_id,
            record.ordinal_number,
            record.minter_address,
            record.owner_address,
            record.profile_id,
        )
    except Exception:
        logger.exception("realm_upsert_failed name=%s record_id=%s", name, record.record_id)
        return False

    if row is None:
        logger.error("realm_upsert_failed name=%s record_id=%s reason=no_row", name, record.record_id)
        return False

    logger.debug("realm_upserted name=%s inserted=%s", name, bool(row.get("inserted")))
    return True


async def get_realm(name: str) -> dict[str, Any] | None:
    return await db.fetch_one(
        """
        SELECT name, realm_id, realm_number, minter_address, owner_address, profile_id,
               created_at, updated_at
        FROM realms
        WHERE name = $1
        """,
        name,
    )


async def list_realms(*, parent: str | None = None, limit: int = 100, offset: int = 0) -> list[dict[str, Any]]:
    """
    List stored realms by name. With `parent`, only its direct children.
    """
    if parent:
        # Direct children: "parent.x" but not "parent.x.y".
        return await db.fetch_all(
            """
            SELECT name, realm_id, realm_number, minter_address, owner_address, profile_id,
                   created_at, updated_at
            FROM realms
            WHERE left(name, length($1::text) + 1) = $1::text || '.'
              AND position('.' in substr(name, length($1::text) + 2)) = 0
            ORDER BY name
            LIMIT $2
            OFFSET $3
            """,
            parent,
            limit,
            offset,
        )

    return await db.fetch_all(
        """
        SELECT name, realm_id, realm_number, minter_address, owner_address, profile_id,
               created_at, updated_at
        FROM realms
        ORDER BY name
        LIMIT $1
        OFFSET $2
        """,
        limit,
        offset,
    )
