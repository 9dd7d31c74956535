"""
Census Statistics Router

Grouped counts for reporting charts. Every endpoint returns a JSON array of
``[label, count]`` pairs, most frequent first.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from census.database import get_db
from census.services.aggregator import Aggregator

router = APIRouter(prefix="/stats", tags=["Statistics"])


@router.get("/os-versions", response_model=list[tuple[str, int]])
async def get_os_versions(db: AsyncSession = Depends(get_db)):
    """Get the number of devices per Android release."""
    service = Aggregator(db)
    return await service.os_versions()


@router.get("/manufacturers", response_model=list[tuple[str, int]])
async def get_manufacturers(db: AsyncSession = Depends(get_db)):
    """
    Get the number of devices per manufacturer.

    Manufacturer names are upper-cased before counting.
    """
    service = Aggregator(db)
    return await service.manufacturers()


@router.get("/system_properties/{property_name}", response_model=list[tuple[str, int]])
async def get_property_distribution(
    property_name: str,
    upcase: bool = Query(False, description="Count values case-insensitively"),
    db: AsyncSession = Depends(get_db),
):
    """Get the distribution of any system property's value."""
    service = Aggregator(db)
    return await service.count_property_values(property_name, upcase=upcase)
