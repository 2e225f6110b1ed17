"""Tests for reading Resource Governor configuration."""

import logging

from rgmigrate.extractors.governor_extractor import GovernorExtractor, _int
from rgmigrate.models.governor import ClassifierFunction, GovernorSettings

from .conftest import FakeSession


class TestGovernorExtractor:

    def test_pools_with_groups(self, source_session):
        pools = GovernorExtractor(source_session).get_pools()

        assert [p.name for p in pools] == ["internal", "default", "SalesPool", "EtlPool"]
        sales = pools[2]
        assert sales.max_cpu_percent == 50
        assert sales.cap_cpu_percent == 60
        assert sales.min_iops_per_volume is None
        assert [g.name for g in sales.workload_groups] == ["Reports", "Adhoc"]
        assert all(g.pool_name == "SalesPool" for g in sales.workload_groups)

    def test_get_pool_is_case_insensitive(self, source_session):
        extractor = GovernorExtractor(source_session)
        assert extractor.get_pool("salespool").name == "SalesPool"
        assert extractor.get_pool("Missing") is None

    def test_settings_with_classifier(self, classifier):
        session = FakeSession("SRC01", settings=GovernorSettings(is_enabled=True, classifier=classifier))
        settings = GovernorExtractor(session).get_settings()

        assert settings.is_enabled
        assert settings.classifier.qualified_name == "[dbo].[fnClassifier]"
        assert settings.classifier.definition.startswith("CREATE FUNCTION")

    def test_settings_without_classifier(self, source_session):
        settings = GovernorExtractor(source_session).get_settings()
        assert settings.classifier is None
        assert settings.max_outstanding_io_per_volume == 0

    def test_unreadable_classifier_definition_warns(self, caplog):
        session = FakeSession("SRC01", settings=GovernorSettings(
            is_enabled=True,
            classifier=ClassifierFunction(schema="dbo", name="fnEncrypted"),
        ))
        with caplog.at_level(logging.WARNING):
            settings = GovernorExtractor(session).get_settings()

        assert settings.classifier.definition == ""
        assert "[dbo].[fnEncrypted]" in caplog.text

    def test_classifier_exists(self):
        session = FakeSession("DST01", functions=["[dbo].[fnClassifier]"])
        extractor = GovernorExtractor(session)

        assert extractor.classifier_exists("dbo", "fnClassifier")
        assert not extractor.classifier_exists("dbo", "fnOther")

    def test_extract(self, source_session):
        result = GovernorExtractor(source_session).extract()

        assert result.server.name == "SRC01"
        assert [p.name for p in result.pools][-1] == "EtlPool"
        assert result.pools[-1].min_memory_percent == 10
        assert result.to_dict()["settings"]["is_enabled"] is True
        assert result.duration_seconds is not None


def test_int_handles_missing_columns():
    assert _int({}, "cap_cpu_percent") is None
    assert _int({"max_dop": None}, "max_dop", 0) == 0
    assert _int({"max_dop": 8}, "max_dop", 0) == 8
