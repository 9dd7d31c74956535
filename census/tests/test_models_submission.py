"""
Tests for census submission parsing.
"""

import pytest

from census.exceptions import MalformedPayloadError
from census.models.submission import parse_submission


class TestParseSubmission:
    """Tests for parse_submission."""

    def test_minimal_document(self):
        """Test only the device name is required."""
        submission = parse_submission(b'{"device_name": "Nexus 5"}')
        assert submission.device_name == "Nexus 5"
        assert submission.system_properties is None
        assert submission.features is None

    def test_camel_case_struct_fields(self):
        """Test struct entries accept the client's camelCase keys."""
        submission = parse_submission(
            b'{"device_name": "x", "permissions": '
            b'[{"name": "p", "packageName": "android", "protectionLevel": 2}]}'
        )
        permission = submission.permissions[0]
        assert permission.package_name == "android"
        assert permission.protection_level == 2
        assert permission.flags == 0

    def test_snake_case_struct_fields(self):
        """Test struct entries also accept snake_case keys."""
        submission = parse_submission(
            b'{"device_name": "x", "file_permissions": '
            b'[{"path": "/a", "mode": 1, "size": 2, "uid": 0, "gid": 0, "link_path": "/b"}]}'
        )
        assert submission.file_permissions[0].link_path == "/b"

    def test_scalar_map_values_stringified(self):
        """Test numeric and boolean map values are kept as strings."""
        submission = parse_submission(
            b'{"device_name": "x", "sysctl": {"a": 2, "b": true, "c": null}}'
        )
        assert submission.sysctl == {"a": "2", "b": "true", "c": ""}

    def test_small_files_base64(self):
        """Test small file contents are base64 decoded."""
        submission = parse_submission(
            b'{"device_name": "x", "small_files": {"/proc/version": "aGVsbG8="}}'
        )
        assert submission.small_files == {"/proc/version": b"hello"}

    def test_unknown_sections_ignored(self):
        """Test sections this service does not store are ignored."""
        submission = parse_submission(b'{"device_name": "x", "packages": []}')
        assert submission.device_name == "x"

    @pytest.mark.parametrize(
        "document",
        [
            b"not json",
            b"[]",
            b'{"features": []}',
            b'{"device_name": ""}',
            b'{"device_name": "x", "features": "camera"}',
            b'{"device_name": "x", "sysctl": {"a": [1]}}',
            b'{"device_name": "x", "permissions": [{"name": "p"}]}',
        ],
    )
    def test_invalid_documents(self, document):
        """Test malformed documents raise MalformedPayloadError."""
        with pytest.raises(MalformedPayloadError):
            parse_submission(document)
