"""
Census Statistics Service

Grouped counts over stored attribute values for reporting:
- Any column of any table, optionally filtered
- System property values across all devices
- OS version and manufacturer distributions
"""

import logging
from collections import Counter
from typing import Any

from sqlalchemy import ColumnElement, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from census.models.database import SystemProperty

logger = logging.getLogger(__name__)

OS_VERSION_PROPERTY = "ro.build.version.release"
MANUFACTURER_PROPERTY = "ro.product.manufacturer"


def _label(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


class Aggregator:
    """Read-only statistics over decomposed census data."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def count_by_value(
        self,
        column: InstrumentedAttribute,
        *,
        where: tuple[ColumnElement[bool], ...] = (),
        upcase: bool = False,
    ) -> list[tuple[str, int]]:
        """Count rows per distinct value of a column.

        Args:
            column: Mapped column to group by, e.g. ``Permission.name``.
            where: Extra filter clauses.
            upcase: Upper-case labels before counting, so values differing
                only by case are counted together.

        Returns:
            ``(value, count)`` pairs, most frequent first, ties by value.
        """
        query = select(column, func.count()).group_by(column)
        for clause in where:
            query = query.where(clause)

        result = await self.db.execute(query)

        counts: Counter[str] = Counter()
        for value, count in result.all():
            label = _label(value)
            if upcase:
                label = label.upper()
            counts[label] += count

        return sorted(counts.items(), key=lambda item: (-item[1], item[0]))

    async def count_property_values(
        self, property_name: str, upcase: bool = False
    ) -> list[tuple[str, int]]:
        """Distribution of one system property's value across all devices."""
        return await self.count_by_value(
            SystemProperty.value,
            where=(SystemProperty.property == property_name,),
            upcase=upcase,
        )

    async def os_versions(self) -> list[tuple[str, int]]:
        """Devices per Android release."""
        return await self.count_property_values(OS_VERSION_PROPERTY)

    async def manufacturers(self) -> list[tuple[str, int]]:
        """Devices per manufacturer, case-insensitive."""
        return await self.count_property_values(MANUFACTURER_PROPERTY, upcase=True)
