"""Tests for version and edition checks."""

import logging

import pytest

from rgmigrate.exceptions import UnsupportedVersionError
from rgmigrate.models.governor import ServerInfo
from rgmigrate.services.validator import CompatibilityValidator


def server(name="S", version="15.0.2000.5", edition="Enterprise Edition (64-bit)"):
    return ServerInfo(name=name, version=version, edition=edition)


class TestCheckVersion:

    def test_supported_version_passes(self):
        CompatibilityValidator().check_version(server(version="10.50.6000.34"))

    def test_older_version_raises(self):
        with pytest.raises(UnsupportedVersionError) as exc_info:
            CompatibilityValidator().check_version(server(name="OLD", version="9.00.5000.00"))

        assert exc_info.value.server == "OLD"
        assert exc_info.value.major_version == 9
        assert "OLD" in str(exc_info.value)

    def test_unparseable_version_is_rejected(self):
        with pytest.raises(UnsupportedVersionError):
            CompatibilityValidator().check_version(server(version="unknown"))

    def test_custom_floor(self):
        with pytest.raises(UnsupportedVersionError):
            CompatibilityValidator(min_major_version=13).check_version(server(version="12.0.6024.0"))


class TestEditions:

    @pytest.mark.parametrize("edition,expected", [
        ("Enterprise Edition: Core-based Licensing (64-bit)", True),
        ("Developer Edition (64-bit)", True),
        ("Enterprise Evaluation Edition (64-bit)", True),
        ("Standard Edition (64-bit)", False),
        ("Express Edition (64-bit)", False),
        ("", False),
    ])
    def test_full_support(self, edition, expected):
        assert CompatibilityValidator().has_full_support(server(edition=edition)) is expected

    def test_configured_editions(self):
        validator = CompatibilityValidator(full_support_editions=["Standard"])
        assert validator.has_full_support(server(edition="Standard Edition (64-bit)"))


class TestValidate:

    def test_full_support_pair(self):
        report = CompatibilityValidator().validate(server("A"), server("B"))
        assert report.destination_full_support
        assert report.warnings == []

    def test_limited_destination_warns(self, caplog):
        report = CompatibilityValidator().validate(
            server("A"), server("B", edition="Standard Edition (64-bit)")
        )

        assert not report.destination_full_support
        assert len(report.warnings) == 1
        assert "Standard Edition" in report.warnings[0]
        assert any(r.levelno == logging.WARNING for r in caplog.records)
        assert report.to_dict()["destination"]["name"] == "B"

    def test_old_destination_raises(self):
        with pytest.raises(UnsupportedVersionError):
            CompatibilityValidator().validate(server("A"), server("B", version="9.0.1399.06"))
