"""Devices router."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from census.database import get_db
from census.exceptions import DeviceNotFoundError
from census.models.database import (
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
from census.models.schemas import (
    ContentProviderResponse,
    DeviceDetailResponse,
    DeviceResponse,
    FilePermissionResponse,
    KeyValueResponse,
    NamedEntityResponse,
    PaginatedResponse,
    PermissionResponse,
)
from census.services.device_resolver import DeviceResolver

router = APIRouter()
logger = logging.getLogger(__name__)


async def _get_device_or_404(db: AsyncSession, device_id: int) -> Device:
    try:
        return await DeviceResolver(db).get(device_id)
    except DeviceNotFoundError:
        raise HTTPException(status_code=404, detail="Device not found")


@router.get("", response_model=PaginatedResponse)
async def list_devices(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    search: str | None = None,
    db: AsyncSession = Depends(get_db),
):
    """List all devices with pagination and an optional name filter."""
    query = select(Device)

    if search:
        query = query.where(Device.name.ilike(f"%{search}%"))

    # Get total count
    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    # Apply pagination
    query = query.order_by(Device.name, Device.id)
    query = query.offset((page - 1) * page_size).limit(page_size)

    result = await db.execute(query)
    devices = result.scalars().all()

    return PaginatedResponse(
        items=[DeviceResponse.model_validate(d) for d in devices],
        total=total,
        page=page,
        page_size=page_size,
        pages=(total + page_size - 1) // page_size,
    )


@router.get("/{device_id}", response_model=DeviceDetailResponse)
async def get_device(device_id: int, db: AsyncSession = Depends(get_db)):
    """Get a device with the number of rows in each of its collections."""
    device = await _get_device_or_404(db, device_id)

    counts = {}
    for collection in Device.owned_collections():
        count_query = (
            select(func.count())
            .select_from(collection)
            .where(collection.device_id == device_id)
        )
        counts[collection.__tablename__] = (await db.execute(count_query)).scalar() or 0

    detail = DeviceDetailResponse.model_validate(device)
    detail.counts = counts
    return detail


async def _key_values(db: AsyncSession, device_id: int, key_column, model) -> list[KeyValueResponse]:
    await _get_device_or_404(db, device_id)
    result = await db.execute(
        select(key_column, model.value)
        .where(model.device_id == device_id)
        .order_by(key_column)
    )
    return [
        KeyValueResponse(device_id=device_id, key=key, value=value)
        for key, value in result.all()
    ]


@router.get("/{device_id}/system_properties", response_model=list[KeyValueResponse])
async def get_system_properties(device_id: int, db: AsyncSession = Depends(get_db)):
    """Get a device's system properties."""
    return await _key_values(db, device_id, SystemProperty.property, SystemProperty)


@router.get("/{device_id}/sysctls", response_model=list[KeyValueResponse])
async def get_sysctls(device_id: int, db: AsyncSession = Depends(get_db)):
    """Get a device's sysctl values."""
    return await _key_values(db, device_id, Sysctl.property, Sysctl)


@router.get("/{device_id}/environment_variables", response_model=list[KeyValueResponse])
async def get_environment_variables(device_id: int, db: AsyncSession = Depends(get_db)):
    """Get the census client's environment on a device."""
    return await _key_values(db, device_id, EnvironmentVariable.variable, EnvironmentVariable)


@router.get("/{device_id}/features", response_model=list[NamedEntityResponse])
async def get_features(device_id: int, db: AsyncSession = Depends(get_db)):
    """Get the features a device declares."""
    await _get_device_or_404(db, device_id)
    result = await db.execute(
        select(Feature)
        .join(DeviceFeature, DeviceFeature.feature_id == Feature.id)
        .where(DeviceFeature.device_id == device_id)
        .order_by(Feature.name)
    )
    return [NamedEntityResponse.model_validate(f) for f in result.scalars().all()]


@router.get("/{device_id}/shared_libraries", response_model=list[NamedEntityResponse])
async def get_shared_libraries(device_id: int, db: AsyncSession = Depends(get_db)):
    """Get the shared libraries a device ships."""
    await _get_device_or_404(db, device_id)
    result = await db.execute(
        select(SharedLibrary)
        .join(DeviceSharedLibrary, DeviceSharedLibrary.shared_library_id == SharedLibrary.id)
        .where(DeviceSharedLibrary.device_id == device_id)
        .order_by(SharedLibrary.name)
    )
    return [NamedEntityResponse.model_validate(lib) for lib in result.scalars().all()]


@router.get("/{device_id}/permissions", response_model=list[PermissionResponse])
async def get_permissions(device_id: int, db: AsyncSession = Depends(get_db)):
    """Get the permissions declared on a device."""
    await _get_device_or_404(db, device_id)
    result = await db.execute(
        select(Permission)
        .where(Permission.device_id == device_id)
        .order_by(Permission.name)
    )
    return [PermissionResponse.model_validate(p) for p in result.scalars().all()]


@router.get("/{device_id}/providers", response_model=list[ContentProviderResponse])
async def get_content_providers(device_id: int, db: AsyncSession = Depends(get_db)):
    """Get the content providers registered on a device."""
    await _get_device_or_404(db, device_id)
    result = await db.execute(
        select(ContentProvider)
        .where(ContentProvider.device_id == device_id)
        .order_by(ContentProvider.authority)
    )
    return [ContentProviderResponse.model_validate(p) for p in result.scalars().all()]


@router.get("/{device_id}/file_permissions", response_model=list[FilePermissionResponse])
async def get_file_permissions(device_id: int, db: AsyncSession = Depends(get_db)):
    """Get file ownership and modes captured on a device."""
    await _get_device_or_404(db, device_id)
    result = await db.execute(
        select(FilePermission)
        .where(FilePermission.device_id == device_id)
        .order_by(FilePermission.path)
    )
    return [FilePermissionResponse.model_validate(f) for f in result.scalars().all()]


@router.get("/{device_id}/small_files", response_model=list[str])
async def list_small_files(device_id: int, db: AsyncSession = Depends(get_db)):
    """List the paths of files captured on a device."""
    await _get_device_or_404(db, device_id)
    result = await db.execute(
        select(SmallFile.path)
        .where(SmallFile.device_id == device_id)
        .order_by(SmallFile.path)
    )
    return list(result.scalars().all())


@router.get("/{device_id}/small_files/{path:path}")
async def get_small_file(device_id: int, path: str, db: AsyncSession = Depends(get_db)):
    """Return the raw contents of one captured file."""
    await _get_device_or_404(db, device_id)
    if not path.startswith("/"):
        path = "/" + path

    result = await db.execute(
        select(SmallFile.contents)
        .where(SmallFile.device_id == device_id, SmallFile.path == path)
        .limit(1)
    )
    contents = result.scalar_one_or_none()

    if contents is None:
        raise HTTPException(status_code=404, detail="File not found")

    return Response(content=bytes(contents), media_type="text/plain")
