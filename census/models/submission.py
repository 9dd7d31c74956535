"""Pydantic models for census submission documents.

A submission is parsed and validated once, when a raw result is processed,
and the decomposer then maps these typed sections onto table rows. Struct
fields accept the camelCase keys the census client sends as well as their
snake_case spelling.
"""

from typing import Any

from pydantic import (
    Base64Bytes,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)
from pydantic.alias_generators import to_camel

from census.exceptions import MalformedPayloadError


class WireModel(BaseModel):
    """Base for structs inside a submission."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class PermissionEntry(WireModel):
    """A permission declared on the device."""

    name: str
    package_name: str
    protection_level: int = 0
    flags: int = 0


class FilePermissionEntry(WireModel):
    """Stat and SELinux label of one file."""

    path: str
    link_path: str | None = None
    mode: int
    size: int
    uid: int
    gid: int
    selinux_context: str | None = None


class ProviderEntry(WireModel):
    """A registered content provider."""

    authority: str
    init_order: int = 0
    multiprocess: bool = False
    grant_uri_permissions: bool = False
    read_permission: str | None = None
    write_permission: str | None = None
    path_permissions: list[Any] | None = None
    uri_permission_patterns: list[Any] | None = None
    flags: int | None = None


def _stringify_scalar(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise ValueError(f"expected a scalar value, got {type(value).__name__}")


class CensusSubmission(BaseModel):
    """One device census report.

    Only ``device_name`` is required; every other section may be absent and
    is then skipped by the decomposer.
    """

    model_config = ConfigDict(extra="ignore")

    device_name: str = Field(..., min_length=1)
    system_properties: dict[str, str] | None = None
    sysctl: dict[str, str] | None = None
    environment_variables: dict[str, str] | None = None
    features: list[str] | None = None
    system_shared_libraries: list[str] | None = None
    permissions: list[PermissionEntry] | None = None
    file_permissions: list[FilePermissionEntry] | None = None
    providers: list[ProviderEntry] | None = None
    small_files: dict[str, Base64Bytes] | None = None

    @field_validator(
        "system_properties", "sysctl", "environment_variables", mode="before"
    )
    @classmethod
    def _stringify_map_values(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {key: _stringify_scalar(item) for key, item in value.items()}
        return value


def parse_submission(document: bytes | str) -> CensusSubmission:
    """Validate a decompressed JSON document.

    Raises:
        MalformedPayloadError: If the document is not JSON or does not match
            the submission schema.
    """
    try:
        return CensusSubmission.model_validate_json(document)
    except ValidationError as e:
        error_details = []
        for error in e.errors():
            loc = " -> ".join(str(l) for l in error["loc"])
            error_details.append(f"  {loc}: {error['msg']}")
        raise MalformedPayloadError(
            "Invalid census submission:\n" + "\n".join(error_details)
        ) from e
