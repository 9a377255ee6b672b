"""
Realm ingestion: subrealm discovery, enrichment and storage.
"""

from .router import router

__all__ = ["router"]
