"""
Health check API route
"""

from datetime import datetime, timezone

from fastapi import APIRouter

from agent_contract.catalog import registry

router = APIRouter()


@router.get("/")
async def health_check():
    """Always healthy; reports whether the schema catalog has been fetched yet"""
    try:
        catalog = registry.get_schema_catalog()
        catalog_status = f"loaded ({len(catalog.tables)} tables)"
    except RuntimeError:
        catalog_status = "not_loaded"

    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "catalog": catalog_status,
    }
