"""Decomposition of a census submission into relational rows.

Each section of a ``CensusSubmission`` maps onto one table:

==========================  =========================================
Section                     Rows
==========================  =========================================
``system_properties``       ``SystemProperty`` per key
``sysctl``                  ``Sysctl`` per key
``environment_variables``   ``EnvironmentVariable`` per key
``features``                ``Feature`` vocabulary + ``DeviceFeature``
``system_shared_libraries`` ``SharedLibrary`` vocabulary +
                            ``DeviceSharedLibrary``
``permissions``             ``Permission`` per element
``file_permissions``        ``FilePermission`` per element
``providers``               ``ContentProvider`` per element
``small_files``             ``SmallFile`` per path
==========================  =========================================

Absent sections produce no rows. The decomposer never commits; the result
processor runs it in the same transaction as device resolution and the
processed mark.
"""

import logging
from collections.abc import Iterator, Sequence
from typing import Any

from sqlalchemy import func, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from census.exceptions import InvariantViolation
from census.models.database import (
    Base,
    ContentProvider,
    Device,
    DeviceFeature,
    DeviceSharedLibrary,
    EnvironmentVariable,
    Feature,
    FilePermission,
    Permission,
    SharedLibrary,
    SmallFile,
    Sysctl,
    SystemProperty,
)
from census.models.submission import CensusSubmission

logger = logging.getLogger(__name__)

# Bound on bind parameters per IN clause
NAME_CHUNK_SIZE = 500


def _chunks(items: Sequence[str], size: int = NAME_CHUNK_SIZE) -> Iterator[Sequence[str]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


class Decomposer:
    """Writes the rows derived from one submission for one device."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def decompose(self, device: Device, submission: CensusSubmission) -> dict[str, int]:
        """Insert every section of ``submission`` for ``device``.

        Args:
            device: Resolved device with no remaining dependent rows.
            submission: Validated submission document.

        Returns:
            Number of rows written per section present in the submission.

        Raises:
            InvariantViolation: If the feature or shared library edges
                written for the device do not match the submitted names.
        """
        device_id = device.id
        counts: dict[str, int] = {}

        if submission.system_properties is not None:
            counts["system_properties"] = await self._insert_rows(
                SystemProperty,
                [
                    {"device_id": device_id, "property": key, "value": value.encode("utf-8")}
                    for key, value in submission.system_properties.items()
                ],
            )

        if submission.sysctl is not None:
            counts["sysctl"] = await self._insert_rows(
                Sysctl,
                [
                    {"device_id": device_id, "property": key, "value": value.encode("utf-8")}
                    for key, value in submission.sysctl.items()
                ],
            )

        if submission.environment_variables is not None:
            counts["environment_variables"] = await self._insert_rows(
                EnvironmentVariable,
                [
                    {"device_id": device_id, "variable": key, "value": value.encode("utf-8")}
                    for key, value in submission.environment_variables.items()
                ],
            )

        if submission.features is not None:
            counts["features"] = await self._link_vocabulary(
                device_id,
                submission.features,
                vocabulary=Feature,
                edge=DeviceFeature,
                edge_key="feature_id",
            )

        if submission.system_shared_libraries is not None:
            counts["system_shared_libraries"] = await self._link_vocabulary(
                device_id,
                submission.system_shared_libraries,
                vocabulary=SharedLibrary,
                edge=DeviceSharedLibrary,
                edge_key="shared_library_id",
            )

        if submission.permissions is not None:
            counts["permissions"] = await self._insert_rows(
                Permission,
                [
                    {
                        "device_id": device_id,
                        "name": p.name,
                        "package_name": p.package_name,
                        "protection_level": p.protection_level,
                        "flags": p.flags,
                    }
                    for p in submission.permissions
                ],
            )

        if submission.small_files is not None:
            counts["small_files"] = await self._insert_rows(
                SmallFile,
                [
                    {"device_id": device_id, "path": path, "contents": contents}
                    for path, contents in submission.small_files.items()
                ],
            )

        if submission.file_permissions is not None:
            counts["file_permissions"] = await self._insert_rows(
                FilePermission,
                [
                    {
                        "device_id": device_id,
                        "path": f.path,
                        "link_path": f.link_path,
                        "mode": f.mode,
                        "size": f.size,
                        "uid": f.uid,
                        "gid": f.gid,
                        "selinux_context": f.selinux_context,
                    }
                    for f in submission.file_permissions
                ],
            )

        if submission.providers is not None:
            counts["providers"] = await self._insert_rows(
                ContentProvider,
                [
                    {
                        "device_id": device_id,
                        "authority": p.authority,
                        "init_order": p.init_order,
                        "multiprocess": p.multiprocess,
                        "grant_uri_permissions": p.grant_uri_permissions,
                        "read_permission": p.read_permission,
                        "write_permission": p.write_permission,
                        "path_permissions": p.path_permissions,
                        "uri_permission_patterns": p.uri_permission_patterns,
                        "flags": p.flags,
                    }
                    for p in submission.providers
                ],
            )

        return counts

    async def _insert_rows(self, model: type[Base], rows: list[dict[str, Any]]) -> int:
        if rows:
            await self.db.execute(insert(model), rows)
        return len(rows)

    async def _ensure_vocabulary(
        self, vocabulary: type[Feature] | type[SharedLibrary], names: list[str]
    ) -> dict[str, int]:
        """Insert unknown names and return the id of every name."""
        known: dict[str, int] = {}
        for chunk in _chunks(names):
            rows = await self.db.execute(
                select(vocabulary.name, vocabulary.id).where(vocabulary.name.in_(chunk))
            )
            known.update({name: vocab_id for name, vocab_id in rows.all()})

        missing = [name for name in names if name not in known]
        if missing:
            await self.db.execute(insert(vocabulary), [{"name": name} for name in missing])
            for chunk in _chunks(missing):
                rows = await self.db.execute(
                    select(vocabulary.name, vocabulary.id).where(vocabulary.name.in_(chunk))
                )
                known.update({name: vocab_id for name, vocab_id in rows.all()})
        return known

    async def _link_vocabulary(
        self,
        device_id: int,
        names: list[str],
        *,
        vocabulary: type[Feature] | type[SharedLibrary],
        edge: type[DeviceFeature] | type[DeviceSharedLibrary],
        edge_key: str,
    ) -> int:
        """Link a device to every named vocabulary entry.

        Returns:
            Number of edges written.

        Raises:
            InvariantViolation: If the device's edge count differs from the
                number of submitted names (duplicate names, or names the
                vocabulary does not resolve one-to-one).
        """
        distinct = list(dict.fromkeys(names))
        ids = await self._ensure_vocabulary(vocabulary, distinct)
        await self._insert_rows(
            edge,
            [{"device_id": device_id, edge_key: ids[name]} for name in distinct if name in ids],
        )

        edge_count = (
            await self.db.execute(
                select(func.count()).select_from(edge).where(edge.device_id == device_id)
            )
        ).scalar_one()
        if edge_count != len(names):
            raise InvariantViolation(
                f"{edge.__tablename__}: device {device_id} has {edge_count} edges "
                f"for {len(names)} submitted names"
            )
        return edge_count
