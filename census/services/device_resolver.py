"""Find or create the device a submission belongs to."""

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from census.exceptions import DeviceNotFoundError
from census.models.database import Device

logger = logging.getLogger(__name__)

BUILD_DESCRIPTION_PROPERTY = "ro.build.description"


def build_description_for(name: str, system_properties: dict[str, str] | None) -> str:
    """The build description identifying a firmware variant of ``name``.

    Falls back to the device name when the submission carries no non-empty
    ``ro.build.description``.
    """
    if system_properties:
        description = system_properties.get(BUILD_DESCRIPTION_PROPERTY)
        if description:
            return description
    return name


class DeviceResolver:
    """Resolves ``(name, build_description)`` to a ``Device`` row.

    Must run inside the transaction that decomposes the submission, so a
    purge is never visible without the rows that replace it.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, device_id: int) -> Device:
        """Load a device.

        Raises:
            DeviceNotFoundError: If no device has this id.
        """
        device = await self.db.get(Device, device_id)
        if device is None:
            raise DeviceNotFoundError(device_id)
        return device

    async def find(self, name: str, build_description: str) -> Device | None:
        result = await self.db.execute(
            select(Device).where(
                Device.name == name,
                Device.build_description == build_description,
            )
        )
        return result.scalar_one_or_none()

    async def purge(self, device_id: int) -> None:
        """Delete every row derived from an earlier submission of a device."""
        for collection in Device.owned_collections():
            await self.db.execute(
                collection.purge_for_device(device_id),
                execution_options={"synchronize_session": False},
            )

    async def resolve(
        self, name: str, system_properties: dict[str, str] | None
    ) -> Device:
        """Return the device for a submission, ready for fresh rows.

        Args:
            name: Normalized device name.
            system_properties: The submission's system properties, if any.

        Returns:
            A newly created device, or the existing one with all of its
            dependent rows purged.
        """
        build_description = build_description_for(name, system_properties)

        device = await self.find(name, build_description)
        if device is not None:
            logger.info(f"Resubmission for device {device.id} ({name}), purging old rows")
            await self.purge(device.id)
            device.updated_at = datetime.utcnow()
            return device

        device = Device(name=name, build_description=build_description)
        self.db.add(device)
        # A concurrent create of the same pair fails here on the unique
        # constraint and aborts this transaction
        await self.db.flush()

        logger.info(f"Created device {device.id} ({name})")
        return device
