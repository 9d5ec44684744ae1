"""
Catalog registry for centralized schema catalog management
"""

import logging
from typing import Optional

import httpx

from agent_contract.catalog.base import SchemaCatalog
from agent_contract.fitness.rest_client import RestClient

logger = logging.getLogger(__name__)

SCHEMA_ENDPOINT = "/api/v1/agent/schema"

# Global catalog instance
_catalog: Optional[SchemaCatalog] = None


def set_schema_catalog(catalog: Optional[SchemaCatalog]) -> None:
    """Install (or clear) the process-wide catalog"""
    global _catalog
    _catalog = catalog


def get_schema_catalog() -> SchemaCatalog:
    """Get the process-wide catalog"""
    if _catalog is None:
        raise RuntimeError("Schema catalog not loaded; call load_schema_catalog() first")
    return _catalog


async def load_schema_catalog(rest_client: RestClient, force_refresh: bool = False) -> SchemaCatalog:
    """Fetch the live schema catalog once and cache it"""
    global _catalog
    if _catalog is not None and not force_refresh:
        return _catalog

    response = await rest_client.request("GET", SCHEMA_ENDPOINT)
    if not response.success or not isinstance(response.body, dict):
        raise RuntimeError(f"Schema catalog fetch failed: HTTP {response.status_code}")

    _catalog = SchemaCatalog.from_serialized(response.body)
    logger.info(
        f"Schema catalog loaded - {len(_catalog.tables)} tables, {_catalog.column_count} columns"
    )
    return _catalog


async def load_schema_catalog_or_empty(rest_client: RestClient) -> SchemaCatalog:
    """Like load_schema_catalog, but an unreachable schema endpoint yields an empty, uncached catalog

    Lifecycle and journey suites do not need the catalog; scenario prompts
    translated against an empty catalog fail as contract issues.
    """
    try:
        return await load_schema_catalog(rest_client)
    except (RuntimeError, httpx.HTTPError) as e:
        logger.warning(f"Schema catalog unavailable, continuing with an empty catalog: {e}")
        return SchemaCatalog([])
