"""
Unit tests for Elasticsearch version parsing.
"""

import pytest

from esoperator.errors import VersionParseError
from esoperator.utils.version import Version, parse_version


class TestParseVersion:

    def test_plain(self):
        assert parse_version("7.2.0") == Version(7, 2, 0)

    def test_label(self):
        version = parse_version("7.3.0-SNAPSHOT")

        assert version == Version(7, 3, 0, "SNAPSHOT")
        assert str(version) == "7.3.0-SNAPSHOT"

    @pytest.mark.parametrize("value", ["", "7", "7.2", "7.2.x", "v7.2.0", "7.2.0-"])
    def test_invalid(self, value):
        with pytest.raises(VersionParseError):
            parse_version(value)

    def test_not_a_string(self):
        with pytest.raises(VersionParseError):
            parse_version(7)


class TestCompare:

    def test_is_same_or_after(self):
        assert parse_version("7.0.0").is_same_or_after(Version(7, 0, 0))
        assert parse_version("7.10.1").is_same_or_after(Version(7, 9, 0))
        assert not parse_version("6.8.0").is_same_or_after(Version(7, 0, 0))

    def test_labels_ignored(self):
        assert parse_version("7.0.0-rc1").is_same_or_after(Version(7, 0, 0))
