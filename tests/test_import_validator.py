"""
tests/test_import_validator.py

Pytest unit tests for row validation of historical import batches.

Pure Python, no database.
"""

from __future__ import annotations

from datetime import date

import pytest

from app.validators.import_validator import (
    MSG_AMOUNT_INVALID,
    MSG_CLIENT_REQUIRED,
    MSG_DATE_INVALID,
    MSG_DATE_REQUIRED,
    amount_or_zero,
    raw_amount_for,
    validate_rows,
)


def _row(**overrides):
    row = {
        "date": "15/03/2024",
        "client_name": "Ana Souza",
        "procedure_name": "Limpeza",
        "value_sold": "R$ 150,00",
    }
    row.update(overrides)
    return row


# ---------------------------------------------------------------------------
# Amount column selection
# ---------------------------------------------------------------------------


class TestAmountSelection:
    def test_sales_use_value_sold(self) -> None:
        row = {"value_sold": "10", "value_received": "99"}
        assert raw_amount_for(row, "vendas") == "10"

    def test_executed_prefer_value_received(self) -> None:
        row = {"value_sold": "10", "value_received": "99"}
        assert raw_amount_for(row, "executado") == "99"

    def test_executed_fall_back_to_value_sold(self) -> None:
        row = {"value_sold": "10", "value_received": "  "}
        assert raw_amount_for(row, "executado") == "10"

    @pytest.mark.parametrize("received", [0, "0", "R$ 0,00"])
    def test_executed_zero_received_falls_back(self, received) -> None:
        row = {"value_sold": "10", "value_received": received}
        assert raw_amount_for(row, "executado") == "10"

    def test_executed_invalid_received_is_kept(self) -> None:
        row = {"value_sold": "10", "value_received": "abc"}
        assert raw_amount_for(row, "executado") == "abc"

    def test_blank_amount_is_zero(self) -> None:
        assert amount_or_zero(None) == 0.0
        assert amount_or_zero("") == 0.0


# ---------------------------------------------------------------------------
# Row rules
# ---------------------------------------------------------------------------


class TestRowRules:
    def test_clean_row_is_valid(self) -> None:
        result = validate_rows([_row()], "vendas")
        assert result.valid_rows == [0]
        assert result.errors == []
        assert result.warnings == []

    def test_missing_date(self) -> None:
        result = validate_rows([_row(date="")], "vendas")
        assert result.valid_rows == []
        assert [(e.row, e.field, e.message) for e in result.errors] == [(1, "date", MSG_DATE_REQUIRED)]

    def test_unparseable_date(self) -> None:
        result = validate_rows([_row(date="31/13/2024")], "vendas")
        assert [(e.field, e.message) for e in result.errors] == [("date", MSG_DATE_INVALID)]

    def test_missing_client_name(self) -> None:
        result = validate_rows([_row(client_name="   ")], "vendas")
        assert [(e.field, e.message) for e in result.errors] == [("client_name", MSG_CLIENT_REQUIRED)]

    def test_non_numeric_amount(self) -> None:
        result = validate_rows([_row(value_sold="grátis")], "vendas")
        assert [(e.field, e.message) for e in result.errors] == [("value", MSG_AMOUNT_INVALID)]

    def test_negative_amount(self) -> None:
        result = validate_rows([_row(value_sold="-5")], "vendas")
        assert result.valid_rows == []
        assert result.errors[0].message == MSG_AMOUNT_INVALID

    def test_blank_amount_is_valid(self) -> None:
        result = validate_rows([_row(value_sold=None)], "vendas")
        assert result.valid_rows == [0]

    def test_every_failing_field_is_reported(self) -> None:
        result = validate_rows([_row(date=None, client_name=None, value_sold="x")], "vendas")
        assert {e.field for e in result.errors} == {"date", "client_name", "value"}
        assert all(e.row == 1 for e in result.errors)

    def test_executed_amount_uses_value_received(self) -> None:
        row = _row(value_sold="abc", value_received="200,00")
        result = validate_rows([row], "executado")
        assert result.valid_rows == [0]


# ---------------------------------------------------------------------------
# Period warnings
# ---------------------------------------------------------------------------


class TestPeriodWarnings:
    def test_explicit_period(self) -> None:
        result = validate_rows(
            [_row(date="10/01/2024"), _row(date="10/06/2024", client_name="Bruno")],
            "vendas",
            period_start=date(2024, 1, 1),
            period_end=date(2024, 3, 31),
        )
        assert result.valid_rows == [0, 1]
        assert [(w.row, w.message) for w in result.warnings] == [(2, "Data fora do período (10/06/2024)")]

    def test_default_period(self) -> None:
        result = validate_rows([_row(date="01/01/2022")], "vendas")
        assert len(result.warnings) == 1
        assert result.valid_rows == [0]

    def test_configured_default_period(self) -> None:
        result = validate_rows(
            [_row(date="01/01/2022")],
            "vendas",
            default_period=(date(2020, 1, 1), date(2022, 12, 31)),
        )
        assert result.warnings == []


# ---------------------------------------------------------------------------
# Duplicates and summary
# ---------------------------------------------------------------------------


class TestDuplicatesAndSummary:
    @pytest.fixture()
    def result(self):
        rows = [
            _row(),
            _row(client_name=" ana souza ", value_sold="150"),
            _row(client_name=""),
        ]
        return validate_rows(rows, "vendas")

    def test_repeated_row_stays_valid(self, result) -> None:
        assert result.valid_rows == [0, 1]

    def test_repeated_row_is_listed_once(self, result) -> None:
        assert [d.row for d in result.duplicates] == [2]
        assert result.duplicates[0].key == "2024-03-15|ana souza|limpeza|150.00"

    def test_summary(self, result) -> None:
        assert result.total_rows == 3
        assert result.summary.valid == 2
        assert result.summary.invalid == 1
        assert result.summary.duplicates == 1

    def test_empty_batch(self) -> None:
        result = validate_rows([], "vendas")
        assert result.total_rows == 0
        assert result.summary.invalid == 0
