"""
FastAPI router for realm endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query

from core import queue

from . import repository
from .schemas import QueueMessage

router = APIRouter()


@router.post("/realms/queue")
async def enqueue_realm(message: QueueMessage) -> dict:
    """
    Seed ingestion: queue {realm?, id} for the subrealm listing worker.
    """
    body: dict = {"id": message.id}
    if message.realm:
        body["realm"] = message.realm
    await queue.send(body)
    return {"queued": True, **body}


@router.get("/realms")
async def list_realms(
    parent: str | None = Query(default=None, max_length=255),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> dict:
    """
    List stored realms; `parent` narrows to its direct subrealms.
    """
    realms = await repository.list_realms(parent=parent, limit=limit, offset=offset)
    return {
        "realms": realms,
        "limit": limit,
        "offset": offset,
        "count": len(realms),
    }


@router.get("/realms/{name}")
async def get_realm(name: str) -> dict:
    row = await repository.get_realm(name)
    if row is None:
        raise HTTPException(status_code=404, detail="Realm not found.")
    return row
