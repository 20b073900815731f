"""Tests for object name validation and rename key derivation."""

import pytest

from coordinator.exceptions import InvalidNameError
from coordinator.naming import (
    derive_destination_key,
    is_synthetic_prefix,
    leaf_name,
    split_key,
    validate_object_name,
)


class TestValidateObjectName:
    def test_trims_and_returns_name(self):
        assert validate_object_name("  report.pdf ") == "report.pdf"

    @pytest.mark.parametrize("name", ["", "   ", ".", "..", None, "a/b.pdf", "a\\b.pdf", "bad\x00name", "tab\tname"])
    def test_rejects_bad_names(self, name):
        with pytest.raises(InvalidNameError):
            validate_object_name(name)

    def test_allows_unicode_and_spaces(self):
        assert validate_object_name("Rapport final é.pdf") == "Rapport final é.pdf"


class TestSplitKey:
    def test_top_level_key(self):
        assert split_key("report.pdf") == ("", "report.pdf")

    def test_nested_key(self):
        assert split_key("legal/2024/report.pdf") == ("legal/2024/", "report.pdf")
        assert leaf_name("legal/2024/report.pdf") == "report.pdf"


class TestSyntheticPrefix:
    @pytest.mark.parametrize("prefix", [
        "2025/09/05/",
        "uploads/2025/09/05/",
        "3f2a9c0d4b1e8f7a6c5d/",
        "c0ffee00-1234-4abc-9def-0123456789ab/",
        "tenant/8d2f0a9b7c6e5d4f3a2b1c0d/",
    ])
    def test_detects_generated_prefixes(self, prefix):
        assert is_synthetic_prefix(prefix)

    @pytest.mark.parametrize("prefix", ["", "legal/", "projects/2025/", "team-a/docs/", "cafe/"])
    def test_keeps_human_prefixes(self, prefix):
        assert not is_synthetic_prefix(prefix)


class TestDeriveDestinationKey:
    def test_date_prefix_is_dropped(self):
        assert derive_destination_key("2025/09/05/report.pdf", "final.pdf") == "final.pdf"

    def test_organizational_prefix_is_kept(self):
        assert derive_destination_key("legal/report.pdf", "final.pdf") == "legal/final.pdf"

    def test_top_level_key(self):
        assert derive_destination_key("report.pdf", "final.pdf") == "final.pdf"

    def test_custom_predicate(self):
        always = lambda prefix: True  # noqa: E731
        assert derive_destination_key("legal/report.pdf", "final.pdf", always) == "final.pdf"
