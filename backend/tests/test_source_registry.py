"""
Unit Tests for the statement source registry.

Run with: pytest tests/test_source_registry.py -v
"""

from reconciliation.source_registry import SignConvention, SourceRegistry, StatementSource


class TestDefaults:
    """Default source configurations."""

    def test_file_sources_use_signed_amounts_and_manual_check(self):
        registry = SourceRegistry()

        for source in (StatementSource.CSV, StatementSource.EXCEL):
            config = registry.get_config(source)
            assert config.sign_convention == SignConvention.SIGNED_AMOUNT
            assert config.manual_duplicate_check is True

    def test_aggregator_is_positive_is_debit_without_manual_check(self):
        config = SourceRegistry().get_config(StatementSource.AGGREGATOR)

        assert config.sign_convention == SignConvention.POSITIVE_IS_DEBIT
        assert config.manual_duplicate_check is False

    def test_all_sources_enabled(self):
        registry = SourceRegistry()

        assert set(registry.get_enabled_sources()) == set(StatementSource)


class TestUpdates:
    """Runtime configuration changes."""

    def test_update_config_replaces_fields(self):
        registry = SourceRegistry()

        registry.update_config(StatementSource.CSV, manual_duplicate_check=False, unknown_field=1)

        assert registry.get_config(StatementSource.CSV).manual_duplicate_check is False
        assert registry.get_config(StatementSource.CSV).display_name == "CSV Bank Statement"

    def test_updates_do_not_leak_between_registries(self):
        first = SourceRegistry()
        first.update_config(StatementSource.EXCEL, enabled=False)

        assert first.is_source_enabled(StatementSource.EXCEL) is False
        assert SourceRegistry().is_source_enabled(StatementSource.EXCEL) is True

    def test_to_dict(self):
        data = SourceRegistry().to_dict()

        assert data["AGGREGATOR"]["sign_convention"] == "POSITIVE_IS_DEBIT"
        assert data["CSV"]["manual_duplicate_check"] is True
