"""Cross-device lookups: which devices report a given property, permission,
provider, file, feature or shared library, and with which value."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from census.database import get_db
from census.models.database import (
    ContentProvider,
    Device,
    DeviceFeature,
    DeviceSharedLibrary,
    Feature,
    FilePermission,
    Permission,
    SharedLibrary,
    Sysctl,
    SystemProperty,
)
from census.models.schemas import (
    ContentProviderResponse,
    DeviceResponse,
    DeviceValueResponse,
    FilePermissionResponse,
    PermissionResponse,
)

router = APIRouter()


async def _values_by_device(
    db: AsyncSession, model, value_column, where
) -> list[DeviceValueResponse]:
    result = await db.execute(
        select(Device, value_column)
        .join(model, model.device_id == Device.id)
        .where(where)
        .order_by(Device.name, Device.id)
    )
    return [
        DeviceValueResponse(device=DeviceResponse.model_validate(device), value=value)
        for device, value in result.all()
    ]


async def _rows_by_device(db: AsyncSession, model, schema, where) -> list[DeviceValueResponse]:
    result = await db.execute(
        select(Device, model)
        .join(model, model.device_id == Device.id)
        .where(where)
        .order_by(Device.name, Device.id)
    )
    return [
        DeviceValueResponse(
            device=DeviceResponse.model_validate(device),
            value=schema.model_validate(row).model_dump(),
        )
        for device, row in result.all()
    ]


@router.get("/system_properties/{property_name}", response_model=list[DeviceValueResponse])
async def system_property_by_device(property_name: str, db: AsyncSession = Depends(get_db)):
    """Value of one system property on every device reporting it."""
    return await _values_by_device(
        db, SystemProperty, SystemProperty.value, SystemProperty.property == property_name
    )


@router.get("/sysctls/{property_name}", response_model=list[DeviceValueResponse])
async def sysctl_by_device(property_name: str, db: AsyncSession = Depends(get_db)):
    """Value of one sysctl on every device reporting it."""
    return await _values_by_device(db, Sysctl, Sysctl.value, Sysctl.property == property_name)


@router.get("/permissions/{name}", response_model=list[DeviceValueResponse])
async def permission_by_device(name: str, db: AsyncSession = Depends(get_db)):
    """Declaration of one permission on every device."""
    return await _rows_by_device(db, Permission, PermissionResponse, Permission.name == name)


@router.get("/content_providers/{authority}", response_model=list[DeviceValueResponse])
async def content_provider_by_device(authority: str, db: AsyncSession = Depends(get_db)):
    """Registration of one provider authority on every device."""
    return await _rows_by_device(
        db, ContentProvider, ContentProviderResponse, ContentProvider.authority == authority
    )


@router.get("/file_permissions/{path:path}", response_model=list[DeviceValueResponse])
async def file_permission_by_device(path: str, db: AsyncSession = Depends(get_db)):
    """Ownership and mode of one file on every device."""
    if not path.startswith("/"):
        path = "/" + path
    return await _rows_by_device(
        db, FilePermission, FilePermissionResponse, FilePermission.path == path
    )


@router.get("/features/{name}", response_model=list[DeviceResponse])
async def devices_with_feature(name: str, db: AsyncSession = Depends(get_db)):
    """Devices declaring a feature."""
    feature = (
        await db.execute(select(Feature).where(Feature.name == name))
    ).scalar_one_or_none()
    if not feature:
        raise HTTPException(status_code=404, detail="Feature not found")

    result = await db.execute(
        select(Device)
        .join(DeviceFeature, DeviceFeature.device_id == Device.id)
        .where(DeviceFeature.feature_id == feature.id)
        .order_by(Device.name, Device.id)
    )
    return [DeviceResponse.model_validate(d) for d in result.scalars().all()]


@router.get("/shared_libraries/{name}", response_model=list[DeviceResponse])
async def devices_with_shared_library(name: str, db: AsyncSession = Depends(get_db)):
    """Devices shipping a shared library."""
    library = (
        await db.execute(select(SharedLibrary).where(SharedLibrary.name == name))
    ).scalar_one_or_none()
    if not library:
        raise HTTPException(status_code=404, detail="Shared library not found")

    result = await db.execute(
        select(Device)
        .join(DeviceSharedLibrary, DeviceSharedLibrary.device_id == Device.id)
        .where(DeviceSharedLibrary.shared_library_id == library.id)
        .order_by(Device.name, Device.id)
    )
    return [DeviceResponse.model_validate(d) for d in result.scalars().all()]
