"""
Realm ingestion "service layer".

Pipeline per queue message:

    handle_message -> list_subrealms (pages) -> process_page (entries)
                   -> fetcher.fetch_record -> repository.upsert_realm

Everything here is best-effort. Failures are logged and isolated:
- a failed page request ends the listing for that parent (earlier pages stay)
- a failed entry is counted and the rest of the page continues
- nothing is raised back to the queue transport
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, AsyncIterator

from pydantic import ValidationError

from core import indexer, queue

from . import fetcher, repository
from .schemas import SubrealmListing

SUBREALM_PAGE_SIZE = 200
TRUTHY = frozenset({"1", "true", "yes", "on"})

logger = logging.getLogger(__name__)


def recursive_enabled() -> bool:
    """
    INGEST_RECURSIVE=1 re-queues every persisted child so its own subrealms
    get listed too.
    """
    return os.environ.get("INGEST_RECURSIVE", "0").strip().lower() in TRUTHY


@dataclass
class PageStats:
    listed: int = 0
    persisted: int = 0
    skipped: int = 0
    failed: int = 0


@dataclass
class ListingStats:
    pages: int = 0
    listed: int = 0
    persisted: int = 0
    skipped: int = 0
    failed: int = 0
    aborted: bool = False

    def add(self, page: PageStats) -> None:
        self.pages += 1
        self.listed += page.listed
        self.persisted += page.persisted
        self.skipped += page.skipped
        self.failed += page.failed


def _parse_page(result: Any) -> list[SubrealmListing]:
    if not isinstance(result, list):
        raise indexer.MalformedResponseError("find_subrealms result is not a list.")
    try:
        return [SubrealmListing.model_validate(item) for item in result]
    except ValidationError as e:
        raise indexer.MalformedResponseError("Unexpected find_subrealms entry shape.") from e


async def iter_subrealm_pages(
    parent_id: str,
    *,
    page_size: int = SUBREALM_PAGE_SIZE,
) -> AsyncIterator[list[SubrealmListing]]:
    """
    Yield pages of direct children of `parent_id`, one request per page.

    The next page is only requested once the consumer asks for it. A short
    (or empty) page ends the listing. IndexerError propagates to the caller.
    """
    page = 0
    while True:
        offset = page * page_size
        result = await indexer.query(
            indexer.FIND_SUBREALMS,
            [parent_id, "", False, page_size, offset],
        )
        listings = _parse_page(result)
        if listings:
            yield listings
        if len(listings) < page_size:
            return
        page += 1


def _enqueue_child(name: str, record_id: str) -> None:
    # Runs on the queue worker itself, so never wait for space.
    try:
        queue.send_nowait({"realm": name, "id": record_id})
    except RuntimeError as e:
        logger.warning("child_enqueue_skipped name=%s error=%s", name, e)


async def process_page(parent_name: str, listings: list[SubrealmListing]) -> PageStats:
    """
    Enrich and persist each listing in order.

    Isolation is per entry: an unexpected exception on one entry is logged
    and counted as failed, and the remaining entries are still processed.
    """
    stats = PageStats(listed=len(listings))
    recursive = recursive_enabled()

    for listing in listings:
        if not listing.subrealm or not listing.atomical_id:
            logger.warning(
                "subrealm_listing_skipped parent=%s subrealm=%r id=%r",
                parent_name,
                listing.subrealm,
                listing.atomical_id,
            )
            stats.skipped += 1
            continue

        combined = f"{parent_name}.{listing.subrealm}"
        try:
            record = await fetcher.fetch_record(listing.atomical_id)
            if record is None:
                stats.skipped += 1
                continue

            if await repository.upsert_realm(combined, record):
                stats.persisted += 1
                if recursive:
                    _enqueue_child(combined, listing.atomical_id)
            else:
                stats.failed += 1
        except Exception:
            logger.exception("subrealm_processing_failed name=%s id=%s", combined, listing.atomical_id)
            stats.failed += 1

    return stats


async def list_subrealms(
    parent_name: str,
    parent_id: str,
    *,
    page_size: int = SUBREALM_PAGE_SIZE,
) -> ListingStats:
    """
    List every child of `parent_id` and process each page before fetching the next.

    Never raises for indexer failures; the listing just stops.
    """
    stats = ListingStats()
    try:
        async for listings in iter_subrealm_pages(parent_id, page_size=page_size):
            page_stats = await process_page(parent_name, listings)
            stats.add(page_stats)
            logger.info(
                "subrealm_page_processed parent=%s page=%s listed=%s persisted=%s skipped=%s failed=%s",
                parent_name,
                stats.pages - 1,
                page_stats.listed,
                page_stats.persisted,
                page_stats.skipped,
                page_stats.failed,
            )
    except indexer.IndexerError as e:
        stats.aborted = True
        logger.warning("subrealm_listing_aborted parent=%s page=%s error=%s", parent_name, stats.pages, e)
    except Exception:
        stats.aborted = True
        logger.exception("subrealm_listing_aborted parent=%s page=%s", parent_name, stats.pages)

    return stats


async def _resolve_root_name(record_id: str) -> str | None:
    """
    Name a parent from its own state and persist the parent itself.
    """
    record = await fetcher.fetch_record(record_id)
    if record is None or not record.full_name:
        return None
    await repository.upsert_realm(record.full_name, record)
    return record.full_name


async def handle_message(message: Any) -> None:
    """
    Queue entrypoint for one message body: {"realm"?: str, "id": str}.

    This should never raise to the transport; we just log failures.
    """
    if not isinstance(message, dict):
        logger.warning("realm_message_ignored reason=not_a_dict type=%s", type(message).__name__)
        return None

    record_id = str(message.get("id") or "").strip()
    if not record_id:
        return None

    realm = str(message.get("realm") or "").strip() or None

    try:
        if realm is None:
            realm = await _resolve_root_name(record_id)
            if realm is None:
                logger.warning("realm_message_dropped id=%s reason=unresolved_parent_name", record_id)
                return None

        stats = await list_subrealms(realm, record_id)
        logger.info(
            "realm_listing_complete parent=%s id=%s pages=%s listed=%s persisted=%s skipped=%s failed=%s aborted=%s",
            realm,
            record_id,
            stats.pages,
            stats.listed,
            stats.persisted,
            stats.skipped,
            stats.failed,
            stats.aborted,
        )
    except Exception:
        logger.exception("realm_message_failed realm=%s id=%s", realm, record_id)

    return None


async def consume_batch(messages: list[dict[str, Any]]) -> None:
    """
    Queue consumer: handle a batch of message bodies sequentially.
    """
    for message in messages:
        await handle_message(message)
