"""
Import Processor Module Tests

Tests for CSV and OFX processing, row-level errors, currency handling and
duplicate annotation.
"""

import re
from datetime import date

import pytest
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "python"))

from statement_import.config import ColumnMapping, FormattingOptions, TargetField
from statement_import.currency import Money
from statement_import.models import FailureKind, FileType, ImportFailure, ImportResult
from statement_import.processor import ImportProcessor, build_column_index, process_import


class TestBuildColumnIndex:
    """Tests for mapping source columns to target fields."""

    def test_dict_mappings(self):
        index = build_column_index(["Date", "Amount", "Note"], {"Date": "date", "Amount": "amount"})

        assert index == {TargetField.DATE: 0, TargetField.AMOUNT: 1}

    def test_mapping_objects(self):
        mappings = [ColumnMapping("Amount", TargetField.AMOUNT), ColumnMapping("Date", "date")]

        assert build_column_index(["Date", "Amount"], mappings) == {
            TargetField.DATE: 0,
            TargetField.AMOUNT: 1,
        }

    def test_unmatched_and_ignored(self):
        """Test unknown columns and ignore mappings are left out silently."""
        index = build_column_index(["Date"], {"Missing": "amount", "Date": "ignore"})

        assert index == {}

    def test_invalid_target_raises(self):
        with pytest.raises(ValueError):
            build_column_index(["Date"], {"Date": "when"})


class TestProcessCSV:
    """Tests for the CSV path."""

    def test_sample_file(self, sample_csv_content, sample_mappings):
        result = process_import(sample_csv_content, sample_mappings, FormattingOptions(), [])

        assert isinstance(result, ImportResult)
        assert result.ok
        assert result.file_type == FileType.CSV
        assert result.currency == "USD"
        assert result.stats.total_rows == 3
        assert result.stats.valid_rows == 3
        assert result.stats.error_rows == 0

        grocery, coffee, payroll = result.transactions
        assert grocery.date == date(2024, 1, 15)
        assert grocery.amount == Money(-7550, "USD")
        assert grocery.description == "GROCERY STORE #1042"
        assert grocery.notes == "Card purchase"
        assert coffee.amount == Money(-425, "USD")
        assert coffee.notes == ""
        assert payroll.amount == Money(250000, "USD")
        assert result.date_range == (date(2024, 1, 15), date(2024, 1, 20))

    def test_ids_and_row_indexes(self, sample_csv_content, sample_mappings):
        result = process_import(sample_csv_content, sample_mappings, FormattingOptions(), [])

        assert [t.source_row_index for t in result.transactions] == [0, 1, 2]
        for i, transaction in enumerate(result.transactions):
            assert re.fullmatch(rf"import-\d+-{i}", transaction.id)
        assert len({t.id for t in result.transactions}) == 3

    def test_row_errors(self):
        content = (
            "Date,Amount,Payee\n"
            "2024-01-15,10.00,Good\n"
            ",5.00,No date\n"
            "2024-13-01,5.00,Bad date\n"
            "2024-01-16,,No amount\n"
            "2024-01-17,abc,Bad amount\n"
            "junk,junk,Both bad\n"
        )
        mappings = {"Date": "date", "Amount": "amount", "Payee": "merchant"}
        result = process_import(content, mappings, FormattingOptions(), [])

        assert result.stats.total_rows == 6
        assert result.stats.valid_rows == 1
        assert result.stats.error_rows == 5
        errors = {e.row_index: e.errors for e in result.errors}
        assert errors[1] == ["Missing date"]
        assert errors[2] == ["Invalid date: 2024-13-01"]
        assert errors[3] == ["Missing amount"]
        assert errors[4] == ["Invalid amount: abc"]
        assert errors[5] == ["Invalid date: junk", "Invalid amount: junk"]
        assert result.errors[0].row == ["", "5.00", "No date"]

    def test_oversized_amount_is_row_error(self):
        """Test an amount too large for a float becomes a row error."""
        content = "Date,Amount\n2024-01-15," + "9" * 400 + "\n2024-01-16,5.00\n"
        result = process_import(content, {"Date": "date", "Amount": "amount"}, FormattingOptions(), [])

        assert isinstance(result, ImportResult)
        assert len(result.errors) == 1
        assert result.errors[0].row_index == 0
        assert result.errors[0].errors == [f"Invalid amount: {'9' * 400}"]
        assert [t.amount for t in result.transactions] == [Money(500, "USD")]

    def test_blank_optional_fields_still_valid(self):
        content = "Date,Amount,Payee,Memo\n2024-01-15,1.00,,\n"
        mappings = {"Date": "date", "Amount": "amount", "Payee": "merchant", "Memo": "memo"}
        result = process_import(content, mappings, FormattingOptions(), [])

        assert result.stats.valid_rows == 1
        assert result.transactions[0].description == ""
        assert result.transactions[0].check_number is None

    def test_description_fallbacks(self):
        """Test description falls back from merchant and notes from memo."""
        content = (
            "Date,Amount,Merchant,Description,Memo\n"
            "2024-01-15,1.00,,Plain description,\n"
            "2024-01-15,1.00,Shop,Plain description,Memo text\n"
        )
        mappings = {
            "Date": "date",
            "Amount": "amount",
            "Merchant": "merchant",
            "Description": "description",
            "Memo": "memo",
        }
        first, second = process_import(content, mappings, FormattingOptions(), []).transactions

        assert first.description == "Plain description"
        assert first.notes == "Plain description"
        assert second.description == "Shop"
        assert second.notes == "Memo text"

    def test_check_number_and_category(self):
        content = "Date,Amount,Check,Category\n2024-01-15,-50.00,1234,Rent\n"
        mappings = {"Date": "date", "Amount": "amount", "Check": "check_number", "Category": "category"}
        [transaction] = process_import(content, mappings, FormattingOptions(), []).transactions

        assert transaction.check_number == "1234"
        assert transaction.category_hint == "Rent"

    def test_european_formatting(self):
        content = "Datum;Betrag;Text\n15.01.2024;-1.234,56;Miete\n"
        formatting = FormattingOptions(
            separator=";", thousand_separator=".", decimal_separator=",", date_format="dd.MM.yyyy"
        )
        mappings = {"Datum": "date", "Betrag": "amount", "Text": "merchant"}
        [transaction] = process_import(content, mappings, formatting, [], "EUR").transactions

        assert transaction.date == date(2024, 1, 15)
        assert transaction.amount == Money(-123456, "EUR")

    def test_negate_amounts(self):
        content = "Date,Amount\n2024-01-15,25.00\n"
        formatting = FormattingOptions(negate_amounts=True)
        [transaction] = process_import(content, {"Date": "date", "Amount": "amount"}, formatting, []).transactions

        assert transaction.amount.amount == -2500

    def test_amount_in_minor_units(self):
        content = "Date,Amount\n2024-01-15,-7550\n"
        formatting = FormattingOptions(amount_in_minor_units=True)
        [transaction] = process_import(content, {"Date": "date", "Amount": "amount"}, formatting, []).transactions

        assert transaction.amount == Money(-7550, "USD")

    @pytest.mark.parametrize("currency,value,expected", [
        ("JPY", "1500", 1500),
        ("USD", "15.00", 1500),
        ("BHD", "1.5", 1500),
        ("USD", "0.005", 1),
        ("USD", "-0.005", -1),
        ("XYZ", "1.00", 100),
    ])
    def test_target_currency_decimals(self, currency, value, expected):
        content = f"Date,Amount\n2024-01-15,{value}\n"
        [transaction] = process_import(
            content, {"Date": "date", "Amount": "amount"}, FormattingOptions(), [], currency
        ).transactions

        assert transaction.amount.amount == expected
        assert transaction.amount.currency == currency

    def test_collapse_whitespace(self):
        content = 'Date,Amount,Payee\n2024-01-15,1.00,"COFFEE    SHOP\n  DOWNTOWN"\n'
        mappings = {"Date": "date", "Amount": "amount", "Payee": "merchant"}
        formatting = FormattingOptions(collapse_whitespace=True)
        [transaction] = process_import(content, mappings, formatting, []).transactions

        assert transaction.description == "COFFEE SHOP DOWNTOWN"

    def test_no_headers(self):
        content = "2024-01-15,1.00,Coffee\n2024-01-16,2.00,Tea\n"
        mappings = {"Column 1": "date", "Column 2": "amount", "Column 3": "merchant"}
        result = process_import(content, mappings, FormattingOptions(has_headers=False), [])

        assert [t.description for t in result.transactions] == ["Coffee", "Tea"]

    def test_unmapped_required_fields_warn(self):
        result = process_import("Date,Amount\n2024-01-15,1.00\n", {}, FormattingOptions(), [])

        assert "No column is mapped to date" in result.warnings
        assert "No column is mapped to amount" in result.warnings
        assert result.errors[0].errors == ["Missing date", "Missing amount"]

    def test_empty_file(self):
        result = process_import("", {"Date": "date"}, FormattingOptions(), [])

        assert isinstance(result, ImportResult)
        assert result.transactions == []
        assert result.stats.total_rows == 0
        assert "Empty CSV file" in result.warnings

    def test_ragged_short_row(self):
        """Test a row missing its amount column is a row error, not a crash."""
        result = process_import(
            "Date,Payee,Amount\n2024-01-15,Coffee\n", {"Date": "date", "Amount": "amount"}, None, []
        )

        assert result.errors[0].errors == ["Missing amount"]
        assert any("expected 3" in w for w in result.warnings)

    def test_duplicates_annotated(self, sample_csv_content, sample_mappings, existing_transactions):
        result = process_import(sample_csv_content, sample_mappings, FormattingOptions(), existing_transactions)

        assert result.stats.duplicate_count == 1
        grocery = result.transactions[0]
        assert grocery.is_duplicate
        assert grocery.duplicate_of_id == "existing-1"
        assert grocery.duplicate_confidence == pytest.approx(1.0)
        assert [t.is_duplicate for t in result.transactions[1:]] == [False, False]
        assert result.duplicates == [grocery]


class TestProcessOFX:
    """Tests for the OFX path."""

    def test_bank_statement(self, sgml_bank_ofx):
        result = process_import(sgml_bank_ofx, None, None, [])

        assert isinstance(result, ImportResult)
        assert result.file_type == FileType.OFX
        assert result.currency == "USD"
        assert result.account_ids == ["987654321"]
        assert result.date_range == (date(2024, 1, 1), date(2024, 1, 31))
        assert result.stats.total_rows == 3
        assert result.stats.valid_rows == 3

        grocery, check, payroll = result.transactions
        assert grocery.id == "2024011501"
        assert grocery.amount == Money(-7550, "USD")
        assert grocery.description == "GROCERY STORE #1042"
        assert grocery.notes == "Card purchase"
        assert grocery.transaction_type == "DEBIT"
        assert check.check_number == "1001"
        assert payroll.amount == Money(250000, "USD")

    def test_statement_currency_used(self, xml_credit_card_ofx):
        """Test OFX amounts use the statement currency, not the target currency."""
        result = process_import(xml_credit_card_ofx, None, None, [], "JPY")

        assert result.currency == "EUR"
        assert [t.amount for t in result.transactions] == [Money(-4210, "EUR"), Money(-999, "EUR")]

    def test_expected_currency_matches(self, xml_credit_card_ofx):
        result = process_import(xml_credit_card_ofx, None, None, [], expected_currency="eur")

        assert isinstance(result, ImportResult)

    def test_currency_mismatch(self, sgml_bank_ofx):
        result = process_import(sgml_bank_ofx, None, None, [], expected_currency="eur")

        assert isinstance(result, ImportFailure)
        assert result.ok is False
        assert result.kind == FailureKind.CURRENCY_MISMATCH
        assert "Currency mismatch" in result.message
        assert "USD" in result.message
        assert "EUR" in result.message
        assert result.details == ["Account 987654321 is in USD"]

    def test_parse_failure(self):
        result = process_import("<OFX>\n<BANKMSGSRSV1>\n</OFX>", None, None, [])

        assert isinstance(result, ImportFailure)
        assert result.kind == FailureKind.PARSE_ERROR
        assert result.details

    def test_no_statements(self):
        result = process_import("OFXHEADER:100\n<OFX>\n<SIGNONMSGSRSV1>\n</SIGNONMSGSRSV1>\n</OFX>", None, None, [])

        assert isinstance(result, ImportFailure)
        assert result.message == "No statements found in OFX file"

    def test_duplicates_annotated(self, sgml_bank_ofx, existing_transactions):
        result = process_import(sgml_bank_ofx, None, None, existing_transactions)

        assert result.stats.duplicate_count == 1
        assert result.transactions[0].duplicate_of_id == "existing-1"

    def test_repeated_fit_ids_made_unique(self):
        content = """<OFX>
<BANKMSGSRSV1>
<STMTTRNRS>
<STMTRS>
<CURDEF>USD
<BANKACCTFROM><ACCTID>A<ACCTTYPE>CHECKING</BANKACCTFROM>
<BANKTRANLIST>
<STMTTRN><DTPOSTED>20240101<TRNAMT>-1.00<FITID>SAME</STMTTRN>
<STMTTRN><DTPOSTED>20240102<TRNAMT>-2.00<FITID>SAME</STMTTRN>
</BANKTRANLIST>
</STMTRS>
</STMTTRNRS>
</BANKMSGSRSV1>
</OFX>"""
        result = process_import(content, None, None, [])
        ids = [t.id for t in result.transactions]

        assert ids[0] == "SAME"
        assert re.fullmatch(r"import-\d+-1", ids[1])


class TestImportProcessor:
    def test_reusable(self, sample_csv_content, sample_mappings, sgml_bank_ofx):
        processor = ImportProcessor()

        assert processor.process(sample_csv_content, sample_mappings, None).file_type == FileType.CSV
        assert processor.process(sgml_bank_ofx, None, None).file_type == FileType.OFX
