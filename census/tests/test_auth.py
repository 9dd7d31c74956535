"""
Tests for the shared-secret access check.
"""

import pytest

from census.auth import check_access
from census.config import Settings
from census.exceptions import AccessDeniedError


class TestCheckAccess:
    """Tests for check_access."""

    def test_open_outside_production(self):
        """Test any request is allowed when production is off."""
        check_access(None, Settings(production=False, access_control_password="secret"))

    def test_matching_password(self):
        """Test the exact password is accepted in production."""
        check_access("secret", Settings(production=True, access_control_password="secret"))

    @pytest.mark.parametrize("header", [None, "", "wrong", "Bearer secret", "secret "])
    def test_rejected(self, header):
        """Test missing or mismatching headers are denied in production."""
        settings = Settings(production=True, access_control_password="secret")
        with pytest.raises(AccessDeniedError):
            check_access(header, settings)

    def test_empty_password_denies_all(self):
        """Test an unset password denies every request in production."""
        settings = Settings(production=True, access_control_password="")
        with pytest.raises(AccessDeniedError):
            check_access("", settings)
