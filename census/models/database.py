"""SQLAlchemy ORM database models for the Android Census service.

Defines all database tables and relationships using SQLAlchemy 2.0
declarative mapping with ``Mapped`` type annotations. All models inherit
from ``Base`` which maps ``list[Any]`` annotations to a portable JSON type,
so the schema runs unchanged on PostgreSQL and SQLite.

Core entity relationships:
    RawResult (standalone, one per submission)
    Device --1:N--> SystemProperty, Sysctl, EnvironmentVariable,
                    Permission, ContentProvider, FilePermission, SmallFile
    Device --N:M--> Feature        (via DeviceFeature)
    Device --N:M--> SharedLibrary  (via DeviceSharedLibrary)

Every table carrying a ``device_id`` is owned by ``Device`` and listed in
``Device.owned_collections()``; each exposes ``purge_for_device`` so a
resubmission can replace the rows it derived earlier.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Delete,
    ForeignKey,
    Integer,
    LargeBinary,
    String,
    Text,
    UniqueConstraint,
    delete,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all ORM models.

    Configures automatic JSON column mapping for ``list[Any]`` type
    annotations.
    """

    type_annotation_map = {
        list[Any]: JSON,
    }


class RawResult(Base):
    """A census submission exactly as the client sent it.

    ``payload`` is the zlib-compressed JSON document. ``content_hash`` is the
    SHA-256 of the compressed bytes and drives deduplication.
    """

    __tablename__ = "raw_results"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    payload: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    content_hash: Mapped[str | None] = mapped_column(String(64), index=True)
    processed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, index=True
    )
    submitted_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    processed_at: Mapped[datetime | None] = mapped_column(DateTime)


class Device(Base):
    """Canonical identity of one census submission lineage.

    A device is identified by its normalized name plus its build description;
    resubmissions for the same pair reuse the row.
    """

    __tablename__ = "devices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(512), nullable=False, index=True)
    build_description: Mapped[str] = mapped_column(String(1024), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint("name", "build_description", name="uq_device_name_build"),
    )

    # Relationships
    system_properties: Mapped[list["SystemProperty"]] = relationship(
        back_populates="device", cascade="all, delete-orphan", passive_deletes=True
    )
    sysctls: Mapped[list["Sysctl"]] = relationship(
        back_populates="device", cascade="all, delete-orphan", passive_deletes=True
    )
    environment_variables: Mapped[list["EnvironmentVariable"]] = relationship(
        back_populates="device", cascade="all, delete-orphan", passive_deletes=True
    )
    permissions: Mapped[list["Permission"]] = relationship(
        back_populates="device", cascade="all, delete-orphan", passive_deletes=True
    )
    content_providers: Mapped[list["ContentProvider"]] = relationship(
        back_populates="device", cascade="all, delete-orphan", passive_deletes=True
    )
    file_permissions: Mapped[list["FilePermission"]] = relationship(
        back_populates="device", cascade="all, delete-orphan", passive_deletes=True
    )
    small_files: Mapped[list["SmallFile"]] = relationship(
        back_populates="device", cascade="all, delete-orphan", passive_deletes=True
    )
    features: Mapped[list["Feature"]] = relationship(
        secondary="device_features", viewonly=True
    )
    shared_libraries: Mapped[list["SharedLibrary"]] = relationship(
        secondary="device_shared_libraries", viewonly=True
    )

    @classmethod
    def owned_collections(cls) -> tuple[type["DeviceOwned"], ...]:
        """Every table whose rows are derived from a device's submission."""
        return (
            SystemProperty,
            Sysctl,
            EnvironmentVariable,
            Permission,
            SmallFile,
            FilePermission,
            ContentProvider,
            DeviceFeature,
            DeviceSharedLibrary,
        )


class DeviceOwned:
    """Mixin for tables keyed by ``device_id`` and purged on resubmission."""

    @classmethod
    def purge_for_device(cls, device_id: int) -> Delete:
        """Build the DELETE removing every row of this table for a device."""
        return delete(cls).where(cls.device_id == device_id)


def _device_fk() -> Mapped[int]:
    return mapped_column(
        Integer, ForeignKey("devices.id", ondelete="CASCADE"), nullable=False, index=True
    )


class SystemProperty(DeviceOwned, Base):
    """One ``getprop`` key/value pair reported by a device."""

    __tablename__ = "system_properties"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    device_id: Mapped[int] = _device_fk()
    property: Mapped[str] = mapped_column(String(512), nullable=False, index=True)
    value: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)

    device: Mapped["Device"] = relationship(back_populates="system_properties")


class Sysctl(DeviceOwned, Base):
    """One kernel sysctl value reported by a device."""

    __tablename__ = "sysctls"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    device_id: Mapped[int] = _device_fk()
    property: Mapped[str] = mapped_column(String(512), nullable=False, index=True)
    value: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)

    device: Mapped["Device"] = relationship(back_populates="sysctls")


class EnvironmentVariable(DeviceOwned, Base):
    """One process environment variable of the census client."""

    __tablename__ = "environment_variables"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    device_id: Mapped[int] = _device_fk()
    variable: Mapped[str] = mapped_column(String(512), nullable=False, index=True)
    value: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)

    device: Mapped["Device"] = relationship(back_populates="environment_variables")


class Permission(DeviceOwned, Base):
    """A permission declared on the device by some package."""

    __tablename__ = "permissions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    device_id: Mapped[int] = _device_fk()
    name: Mapped[str] = mapped_column(String(512), nullable=False, index=True)
    package_name: Mapped[str] = mapped_column(String(512), nullable=False)
    protection_level: Mapped[int] = mapped_column(Integer, nullable=False)
    flags: Mapped[int] = mapped_column(Integer, nullable=False)

    device: Mapped["Device"] = relationship(back_populates="permissions")


class ContentProvider(DeviceOwned, Base):
    """A content provider registered on the device.

    ``path_permissions`` and ``uri_permission_patterns`` keep the submitted
    arrays as JSON.
    """

    __tablename__ = "content_providers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    device_id: Mapped[int] = _device_fk()
    authority: Mapped[str] = mapped_column(String(512), nullable=False, index=True)
    init_order: Mapped[int] = mapped_column(Integer, nullable=False)
    multiprocess: Mapped[bool] = mapped_column(Boolean, nullable=False)
    grant_uri_permissions: Mapped[bool] = mapped_column(Boolean, nullable=False)
    read_permission: Mapped[str | None] = mapped_column(String(512))
    write_permission: Mapped[str | None] = mapped_column(String(512))
    path_permissions: Mapped[list[Any] | None] = mapped_column(JSON)
    uri_permission_patterns: Mapped[list[Any] | None] = mapped_column(JSON)
    flags: Mapped[int | None] = mapped_column(Integer)

    device: Mapped["Device"] = relationship(back_populates="content_providers")


class FilePermission(DeviceOwned, Base):
    """Ownership, mode and SELinux label of one file on the device."""

    __tablename__ = "file_permissions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    device_id: Mapped[int] = _device_fk()
    path: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    link_path: Mapped[str | None] = mapped_column(Text)
    mode: Mapped[int] = mapped_column(Integer, nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False)
    uid: Mapped[int] = mapped_column(Integer, nullable=False)
    gid: Mapped[int] = mapped_column(Integer, nullable=False)
    selinux_context: Mapped[str | None] = mapped_column(String(512))

    device: Mapped["Device"] = relationship(back_populates="file_permissions")


class SmallFile(DeviceOwned, Base):
    """Snapshot of a small file's contents captured on the device."""

    __tablename__ = "small_files"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    device_id: Mapped[int] = _device_fk()
    path: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    contents: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)

    device: Mapped["Device"] = relationship(back_populates="small_files")


class Feature(Base):
    """Global vocabulary of system feature names."""

    __tablename__ = "features"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(512), unique=True, nullable=False)


class SharedLibrary(Base):
    """Global vocabulary of system shared library names."""

    __tablename__ = "shared_libraries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(512), unique=True, nullable=False)


class DeviceFeature(DeviceOwned, Base):
    """Edge between a device and a feature it declares."""

    __tablename__ = "device_features"

    device_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("devices.id", ondelete="CASCADE"), primary_key=True
    )
    feature_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("features.id", ondelete="CASCADE"), primary_key=True
    )


class DeviceSharedLibrary(DeviceOwned, Base):
    """Edge between a device and a shared library it ships."""

    __tablename__ = "device_shared_libraries"

    device_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("devices.id", ondelete="CASCADE"), primary_key=True
    )
    shared_library_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("shared_libraries.id", ondelete="CASCADE"), primary_key=True
    )
