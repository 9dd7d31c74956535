"""Pydantic schemas for API responses."""

from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator


def _decode_value(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    return value


# Attribute values are stored as raw bytes
DecodedValue = Annotated[Any, BeforeValidator(_decode_value)]


# ============================================================================
# Result Schemas
# ============================================================================


class ResultStats(BaseModel):
    """Schema for raw result counts."""

    total: int
    processed: int
    unprocessed: int


# ============================================================================
# Device Schemas
# ============================================================================


class DeviceResponse(BaseModel):
    """Schema for device response."""

    id: int
    name: str
    build_description: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class DeviceDetailResponse(DeviceResponse):
    """Schema for a device together with the size of each collection."""

    counts: dict[str, int] = {}


# ============================================================================
# Device Collection Schemas
# ============================================================================


class KeyValueResponse(BaseModel):
    """Schema for system properties, sysctls and environment variables."""

    device_id: int
    key: str
    value: DecodedValue


class NamedEntityResponse(BaseModel):
    """Schema for feature and shared library vocabulary entries."""

    id: int
    name: str

    class Config:
        from_attributes = True


class PermissionResponse(BaseModel):
    """Schema for permission response."""

    device_id: int
    name: str
    package_name: str
    protection_level: int
    flags: int

    class Config:
        from_attributes = True


class ContentProviderResponse(BaseModel):
    """Schema for content provider response."""

    device_id: int
    authority: str
    init_order: int
    multiprocess: bool
    grant_uri_permissions: bool
    read_permission: str | None = None
    write_permission: str | None = None
    path_permissions: list[Any] | None = None
    uri_permission_patterns: list[Any] | None = None
    flags: int | None = None

    class Config:
        from_attributes = True


class FilePermissionResponse(BaseModel):
    """Schema for file permission response."""

    device_id: int
    path: str
    link_path: str | None = None
    mode: int
    size: int
    uid: int
    gid: int
    selinux_context: str | None = None

    class Config:
        from_attributes = True


# ============================================================================
# Lookup Schemas
# ============================================================================


class DeviceValueResponse(BaseModel):
    """Schema for one device's value of a property looked up across devices."""

    device: DeviceResponse
    value: DecodedValue


class PaginatedResponse(BaseModel):
    """Schema for paginated responses."""

    items: list[Any]
    total: int
    page: int
    page_size: int
    pages: int
