"""
Unit Tests for the aggregator feed adapter.

Run with: pytest tests/test_aggregator_feed.py -v
"""

from decimal import Decimal

from ingestion.aggregator_feed import row_from_aggregator, rows_from_aggregator


class TestAggregatorPayloads:
    """Test payload to ImportedRow mapping."""

    def test_normalised_payload(self):
        row = row_from_aggregator({
            "transaction_id": "tx-1",
            "description": "UBER *TRIP",
            "amount": "18.40",
            "transaction_date": "2025-02-10T08:15:00",
            "value_date": "2025-02-11",
        })

        assert row.external_id == "tx-1"
        assert row.description == "UBER *TRIP"
        assert row.amount == Decimal("18.40")
        assert row.date == "2025-02-10T08:15:00"
        assert row.currency == "EUR"

    def test_provider_payload_with_amount_object(self):
        row = row_from_aggregator({
            "transaction_id": "tx-2",
            "remittance_information_unstructured": "Salary February",
            "transaction_amount": {"amount": "-2100.00", "currency": "GBP"},
            "booking_date": "2025-02-25",
        })

        assert row.description == "Salary February"
        assert row.amount == Decimal("-2100.00")
        assert row.currency == "GBP"
        assert row.date == "2025-02-25"

    def test_value_date_fallback(self):
        row = row_from_aggregator({"transaction_id": "tx-3", "amount": "1", "value_date": "2025-02-11"})

        assert row.date == "2025-02-11"

    def test_unparseable_amount_becomes_zero(self):
        row = row_from_aggregator({"transaction_id": "tx-4", "amount": "n/a", "value_date": "2025-02-11"})

        assert row.amount == Decimal("0")

    def test_missing_id_and_amount(self):
        row = row_from_aggregator({"transaction_id": "", "value_date": "2025-02-11"})

        assert row.external_id is None
        assert row.amount == Decimal("0")

    def test_order_is_preserved(self):
        rows = rows_from_aggregator([
            {"transaction_id": "a", "amount": "1", "value_date": "2025-01-01"},
            {"transaction_id": "b", "amount": "2", "value_date": "2025-01-02"},
        ], default_currency="USD")

        assert [r.external_id for r in rows] == ["a", "b"]
        assert all(r.currency == "USD" for r in rows)
