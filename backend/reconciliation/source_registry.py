"""
Statement Source Registry

Central registry of all supported statement sources.
Each source has:
- Unique identifier
- Display name
- Sign convention used by its amounts
- Whether imported rows are checked against manual entries

Supported Sources:
- CSV: Bank statement exported as CSV
- EXCEL: Bank statement exported as XLSX/XLS
- AGGREGATOR: Transactions pulled from a bank aggregation API
- MANUAL: Rows keyed in by hand through a bulk form
"""

from enum import Enum
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, replace


class StatementSource(str, Enum):
    """
    Recognised statement sources.
    """
    CSV = "CSV"
    EXCEL = "EXCEL"
    AGGREGATOR = "AGGREGATOR"
    MANUAL = "MANUAL"


class SignConvention(str, Enum):
    """
    How a source expresses direction in its signed amounts.
    """
    SIGNED_AMOUNT = "SIGNED_AMOUNT"          # negative = money leaving = expense
    POSITIVE_IS_DEBIT = "POSITIVE_IS_DEBIT"  # positive = debit = expense


@dataclass(frozen=True)
class SourceConfig:
    """
    Configuration for a statement source.
    """
    source: StatementSource
    display_name: str
    sign_convention: SignConvention
    manual_duplicate_check: bool  # Compare rows against hand-entered transactions
    enabled: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source.value,
            "display_name": self.display_name,
            "sign_convention": self.sign_convention.value,
            "manual_duplicate_check": self.manual_duplicate_check,
            "enabled": self.enabled
        }


class SourceRegistry:
    """
    Central registry for statement sources.

    Manages source configurations and provides lookup methods
    for the reconciliation engine.
    """

    # Default configurations for each source
    _default_configs: Dict[StatementSource, SourceConfig] = {
        StatementSource.CSV: SourceConfig(
            source=StatementSource.CSV,
            display_name="CSV Bank Statement",
            sign_convention=SignConvention.SIGNED_AMOUNT,
            manual_duplicate_check=True
        ),
        StatementSource.EXCEL: SourceConfig(
            source=StatementSource.EXCEL,
            display_name="Excel Bank Statement",
            sign_convention=SignConvention.SIGNED_AMOUNT,
            manual_duplicate_check=True
        ),
        StatementSource.AGGREGATOR: SourceConfig(
            source=StatementSource.AGGREGATOR,
            display_name="Bank Aggregator Feed",
            sign_convention=SignConvention.POSITIVE_IS_DEBIT,
            manual_duplicate_check=False
        ),
        StatementSource.MANUAL: SourceConfig(
            source=StatementSource.MANUAL,
            display_name="Bulk Manual Entry",
            sign_convention=SignConvention.SIGNED_AMOUNT,
            manual_duplicate_check=False
        ),
    }

    def __init__(self):
        self._configs = dict(self._default_configs)

    def get_config(self, source: StatementSource) -> Optional[SourceConfig]:
        """Get configuration for a source."""
        return self._configs.get(source)

    def get_enabled_sources(self) -> List[StatementSource]:
        """Get list of enabled sources."""
        return [
            cfg.source for cfg in self._configs.values()
            if cfg.enabled
        ]

    def is_source_enabled(self, source: StatementSource) -> bool:
        """Check if a source is enabled."""
        cfg = self._configs.get(source)
        return cfg.enabled if cfg else False

    def update_config(self, source: StatementSource, **kwargs):
        """Update configuration for a source."""
        if source not in self._configs:
            return

        cfg = self._configs[source]
        known = {k: v for k, v in kwargs.items() if hasattr(cfg, k)}
        self._configs[source] = replace(cfg, **known)

    def to_dict(self) -> Dict[str, Any]:
        """Export registry as dictionary."""
        return {
            source.value: cfg.to_dict()
            for source, cfg in self._configs.items()
        }


# Global registry instance
source_registry = SourceRegistry()
