"""
Record enrichment via `blockchain.atomicals.get_state`.

fetch_record() never raises: any failure for one record is logged and
reported as None so the caller's loop keeps going.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from core import indexer

from . import address
from .schemas import AtomicalState, RealmRecord

logger = logging.getLogger(__name__)


def _address_or_none(script_hex: str | None, *, record_id: str, field: str) -> str | None:
    try:
        return address.resolve(script_hex)
    except address.ScriptDecodeError as e:
        logger.warning("script_decode_failed record_id=%s field=%s error=%s", record_id, field, e)
        return None


def record_from_state(record_id: str, state: AtomicalState) -> RealmRecord | None:
    """
    Normalize a get_state result. Non-realm records yield None.
    """
    if not state.is_realm():
        return None

    return RealmRecord(
        record_id=record_id,
        ordinal_number=state.atomical_number,
        minter_address=_address_or_none(state.reveal_script(), record_id=record_id, field="minter"),
        owner_address=_address_or_none(state.location_script(), record_id=record_id, field="owner"),
        profile_id=state.profile_id(),
        full_name=state.full_realm_name,
    )


async def fetch_state(record_id: str) -> AtomicalState | None:
    """
    Raises IndexerError subclasses; a null result is None.
    """
    result = await indexer.query(indexer.GET_STATE, [record_id])
    if result is None:
        return None
    try:
        return AtomicalState.model_validate(result)
    except ValidationError as e:
        raise indexer.MalformedResponseError(f"Unexpected get_state shape for {record_id}.") from e


async def fetch_record(record_id: str) -> RealmRecord | None:
    try:
        state = await fetch_state(record_id)
        if state is None:
            return None
        return record_from_state(record_id, state)
    except indexer.IndexerError as e:
        logger.warning("realm_fetch_failed record_id=%s error=%s", record_id, e)
        return None
    except Exception:
        logger.exception("realm_fetch_failed record_id=%s", record_id)
        return None
