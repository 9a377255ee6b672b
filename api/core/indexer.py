"""
Indexer (Atomicals ElectrumX proxy) HTTP client helpers.

Every query is a GET on `{base_url}/{method}?params=<json array>` and answers
with an envelope:

    {"success": true, "response": {"result": ...}}

Used methods:
- blockchain.atomicals.find_subrealms -> result: [{subrealm, atomical_id, ...}, ...]
- blockchain.atomicals.get_state      -> result: {type, subtype, mint_info, ...}
"""

from __future__ import annotations

import json
import os
from typing import Any

import httpx

DEFAULT_INDEXER_BASE_URL = "https://ep.atomicals.xyz/proxy"
DEFAULT_TIMEOUT_S = 30.0

FIND_SUBREALMS = "blockchain.atomicals.find_subrealms"
GET_STATE = "blockchain.atomicals.get_state"


# Indexer failures are explicit and separable from other runtime errors.
class IndexerError(RuntimeError):
    pass


class TransportError(IndexerError):
    """HTTP failure or non-success status code."""


class MalformedResponseError(IndexerError):
    """Body is not JSON, lacks the success flag, or has an unexpected shape."""


def indexer_base_url() -> str:
    base_url = os.environ.get("INDEXER_BASE_URL", DEFAULT_INDEXER_BASE_URL).strip()
    if not base_url:
        raise IndexerError("INDEXER_BASE_URL is empty.")
    return base_url.rstrip("/")


def indexer_timeout_s() -> float:
    raw = os.environ.get("INDEXER_TIMEOUT_S", "").strip()
    if not raw:
        return DEFAULT_TIMEOUT_S
    try:
        return float(raw)
    except ValueError:
        return DEFAULT_TIMEOUT_S


def encode_params(params: list[Any]) -> str:
    # The proxy expects a compact JSON array, e.g. ["abc","",false,200,0]
    return json.dumps(params, separators=(",", ":"))


async def query(
    method: str,
    params: list[Any],
    *,
    base_url: str | None = None,
    timeout_s: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Any:
    """
    Run one read-only indexer query and return `response.result`.

    Raises TransportError / MalformedResponseError; callers decide whether
    that means "no data".
    """
    base_url = (base_url or indexer_base_url()).rstrip("/")
    timeout = timeout_s if timeout_s is not None else indexer_timeout_s()

    try:
        async with httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport) as client:
            resp = await client.get(f"/{method}", params={"params": encode_params(params)})
    except httpx.HTTPError as e:
        raise TransportError(f"Indexer request failed: {method}: {e}") from e

    if resp.status_code < 200 or resp.status_code >= 300:
        # Avoid dumping huge bodies; include a small snippet.
        body = resp.text[:500]
        raise TransportError(f"Indexer request failed: {method}: {resp.status_code} {body}")

    try:
        data = resp.json()
    except ValueError as e:
        raise MalformedResponseError(f"Indexer returned non-JSON body for {method}.") from e

    if not isinstance(data, dict) or not data.get("success"):
        raise MalformedResponseError(f"Indexer returned no success flag for {method}.")

    response = data.get("response")
    if not isinstance(response, dict) or "result" not in response:
        raise MalformedResponseError(f"Indexer response for {method} has no result.")

    return response["result"]
