"""
Realm schemas.

- Indexer payload models (pydantic). Every nested field is optional; a
  missing value means "absent", never an error.
- RealmRecord: the normalized record written to storage.
- Queue / API request models.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field

REALM_TYPE = "NFT"
REALM_SUBTYPES = frozenset({"realm", "subrealm"})


class SubrealmListing(BaseModel):
    subrealm: str = ""
    atomical_id: str = ""
    status: str | None = None
    subrealm_hex: str | None = None
    # Indexer-side ordering only; passed through.
    tx_num: int | None = None


class MintInfo(BaseModel):
    reveal_location_script: str | None = None


class LocationInfo(BaseModel):
    script: str | None = None


class LatestState(BaseModel):
    d: Any = None


class StateInfo(BaseModel):
    latest: LatestState | None = None


class AtomicalState(BaseModel):
    atomical_id: str | None = None
    type: str | None = None
    subtype: str | None = None
    atomical_number: int | None = None
    mint_info: MintInfo | None = None
    location_info: list[LocationInfo] | None = None
    state: StateInfo | None = None
    full_realm_name: str | None = Field(default=None, alias="$full_realm_name")

    def is_realm(self) -> bool:
        return self.type == REALM_TYPE and self.subtype in REALM_SUBTYPES

    def reveal_script(self) -> str | None:
        return self.mint_info.reveal_location_script if self.mint_info else None

    def location_script(self) -> str | None:
        # Current owner is the first location.
        if not self.location_info:
            return None
        return self.location_info[0].script

    def profile_id(self) -> str | None:
        if self.state is None or self.state.latest is None:
            return None
        d = self.state.latest.d
        if d is None or d == "":
            return None
        return str(d)


@dataclass(frozen=True)
class RealmRecord:
    record_id: str
    ordinal_number: int | None
    minter_address: str | None
    owner_address: str | None
    profile_id: str | None = None
    full_name: str | None = None


class QueueMessage(BaseModel):
    realm: str | None = Field(default=None, max_length=255)
    id: str = Field(..., min_length=1, max_length=128)
