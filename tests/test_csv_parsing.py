"""
Tests for the line tokenizer and header normalization.
"""

import pytest

from bulk_import.domain.imports.csv_parsing import (
    build_row,
    normalize_header,
    normalize_headers,
    parse_csv_line,
    split_lines,
)
from bulk_import.domain.imports.types import CsvLineError, ImportType


class TestParseCsvLine:

    def test_simple_line_is_split_and_trimmed(self):
        assert parse_csv_line("Alice , a@x.com,  42 ") == ["Alice", "a@x.com", "42"]

    def test_doubled_quotes_inside_quoted_field(self):
        """A quoted field with embedded commas and escaped quotes stays one value."""
        assert parse_csv_line('"Smith, ""John"""') == ['Smith, "John"']

    def test_quoted_field_between_plain_fields(self):
        assert parse_csv_line('1,"Acme, Inc.",Pune') == ["1", "Acme, Inc.", "Pune"]

    def test_quoted_content_is_not_trimmed(self):
        assert parse_csv_line('" padded ",x') == [" padded ", "x"]

    def test_padding_around_quotes_is_ignored(self):
        assert parse_csv_line('a,  "b" ,c') == ["a", "b", "c"]

    def test_empty_fields_are_kept(self):
        assert parse_csv_line("a,,c,") == ["a", "", "c", ""]

    def test_unterminated_quote_raises(self):
        with pytest.raises(CsvLineError):
            parse_csv_line('a,"never closed')


class TestHeaderNormalization:

    def test_generic_normalization(self):
        assert normalize_header("First Name") == "first_name"
        assert normalize_header("  E-Mail  ") == "email"
        assert normalize_header("Phone\tNumber") == "phone_number"

    def test_inventory_alias_matches_canonical_spelling(self):
        """"Item ID / SKU" and a literal item_id_sku land on the same key."""
        aliased = normalize_headers(["Item ID / SKU"], ImportType.INVENTORY)
        literal = normalize_headers(["item_id_sku"], ImportType.INVENTORY)
        assert aliased == literal == ["item_id_sku"]

    def test_inventory_aliases_for_percent_and_unit_columns(self):
        headers = normalize_headers(["GST %", "Discount %", "Weight / Unit", "Remarks / Notes"], ImportType.INVENTORY)
        assert headers == ["gst_pct", "discount_pct", "weight_per_unit", "remarks_notes"]

    def test_aliases_only_apply_to_inventory(self):
        assert normalize_headers(["Item ID / SKU"], ImportType.CONTACTS) == ["item_id__sku"]


class TestRowHelpers:

    def test_build_row_fills_missing_cells(self):
        assert build_row(["a", "b", "c"], ["1"]) == {"a": "1", "b": "", "c": ""}

    def test_build_row_ignores_extra_cells(self):
        assert build_row(["a"], ["1", "2"]) == {"a": "1"}

    def test_split_lines_drops_blank_lines(self):
        text = "first_name,email\r\nAlice,a@x.com\n\n   \nBob,b@x.com\n"
        assert split_lines(text) == ["first_name,email", "Alice,a@x.com", "Bob,b@x.com"]


class TestTextAfterClosingQuote:

    def test_inner_space_is_kept(self):
        assert parse_csv_line('"a" b,c') == ["a b", "c"]

    def test_trailing_padding_is_dropped(self):
        assert parse_csv_line('"a" b   ,"c"  ') == ["a b", "c"]

    def test_second_quoted_run_keeps_separator(self):
        assert parse_csv_line('"a" "b"') == ["a b"]
