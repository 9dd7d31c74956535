"""
Tests for device name normalization.
"""

import pytest

from census.services.name_normalizer import normalize


class TestNormalize:
    """Tests for vendor spelling rewrites."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("asus Nexus 7", "ASUS Nexus 7"),
            ("Asus Zenfone 2", "ASUS Zenfone 2"),
            ("acer Iconia", "Acer Iconia"),
            ("lge Nexus 5", "LG Nexus 5"),
            ("HUAWEI Nexus 6P", "Huawei Nexus 6P"),
            ("samsung SM-G920F", "Samsung SM-G920F"),
            ("motorola Moto G", "Motorola Moto G"),
            ("Oppo R7", "OPPO R7"),
            ("TCT ALCATEL Idol 3", "Alcatel Idol 3"),
            ("TCT Pixi", "Alcatel Pixi"),
            ("Coolpad 8297", "YuLong Coolpad 8297"),
            ("nubia NX40X", "ZTE Nubia NX40X"),
            ("unknown 8150", "YuLong Coolpad 8150"),
            ("unknown Lenovo A6000", "Lenovo A6000"),
        ],
    )
    def test_prefix_rules(self, raw, expected):
        """Test each vendor prefix is rewritten to its canonical spelling."""
        assert normalize(raw) == expected

    def test_one_touch_replacement(self):
        """Test Alcatel _one_touch_ model names are spaced out."""
        assert normalize("TCT ALCATEL_one_touch_6030") == "Alcatel ONE TOUCH 6030"

    def test_unknown_vendor_unchanged(self):
        """Test names without a known prefix pass through untouched."""
        assert normalize("Xiaomi Mi 4") == "Xiaomi Mi 4"

    def test_prefix_only_at_start(self):
        """Test vendor names inside a model name are not rewritten."""
        assert normalize("Google asus-built") == "Google asus-built"

    def test_lge_model_name_kept(self):
        """Test only the bare lge vendor token is rewritten."""
        assert normalize("LGE-AN10") == "LG-AN10"
        assert normalize("lgemodel") == "lgemodel"

    @pytest.mark.parametrize(
        "raw",
        [
            "asus Nexus 7",
            "lge Nexus 5",
            "TCT ALCATEL_one_touch_6030",
            "unknown 8150",
            "unknown lenovo K3",
            "coolpad 8297",
            "nubia nx40x",
            "Xiaomi Mi 4",
        ],
    )
    def test_idempotent(self, raw):
        """Test normalizing twice gives the same result as once."""
        once = normalize(raw)
        assert normalize(once) == once
