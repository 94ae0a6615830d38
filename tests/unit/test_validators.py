"""Unit tests for input validators and normalizers."""

from datetime import date
from decimal import Decimal

import pytest
from freezegun import freeze_time

from folio_tracker.lib.errors import ValidationError
from folio_tracker.lib.validators import (
    is_isin,
    looks_like_ticker,
    normalize_asset_type,
    parse_flexible_number,
    validate_date,
    validate_positive_decimal,
    validate_symbol,
)


@pytest.mark.unit
class TestIdentifierShapes:
    """Test suite for ISIN and ticker shape checks."""

    def test_isin(self):
        assert is_isin("US0378331005")
        assert is_isin("IE00B4L5Y983")
        assert not is_isin("AAPL")
        assert not is_isin("US037833100")  # 11 characters
        assert not is_isin("")
        assert not is_isin(None)

    def test_ticker_shape(self):
        assert looks_like_ticker("AAPL")
        assert looks_like_ticker("brk.b")
        assert looks_like_ticker("VWCE.DE")
        assert not looks_like_ticker("Apple Inc")
        assert not looks_like_ticker("THIRTEENCHARS")


@pytest.mark.unit
class TestParseFlexibleNumber:
    """Test suite for the lenient broker number parser."""

    def test_plain_numbers(self):
        assert parse_flexible_number("42") == Decimal("42")
        assert parse_flexible_number("0.5") == Decimal("0.5")
        assert parse_flexible_number(".5") == Decimal("0.5")

    def test_us_format(self):
        assert parse_flexible_number("1,234.56") == Decimal("1234.56")
        assert parse_flexible_number("$1,234.56") == Decimal("1234.56")

    def test_european_format(self):
        assert parse_flexible_number("1.234,56") == Decimal("1234.56")
        assert parse_flexible_number("12,50") == Decimal("12.50")
        assert parse_flexible_number("1.234.567") == Decimal("1234567")
        assert parse_flexible_number("€ 99,9") == Decimal("99.9")

    def test_ambiguous_groups(self):
        """A lone dot or comma followed by three digits follows the grouped-dot rule first."""
        assert parse_flexible_number("1.234") == Decimal("1234")
        assert parse_flexible_number("150.123") == Decimal("150123")
        assert parse_flexible_number("1,234") == Decimal("1.234")

    def test_currency_codes_and_symbols(self):
        assert parse_flexible_number("USD 100") == Decimal("100")
        assert parse_flexible_number("250 kr") == Decimal("250")
        assert parse_flexible_number("£12.30") == Decimal("12.30")

    def test_negatives(self):
        assert parse_flexible_number("-5") == Decimal("-5")
        assert parse_flexible_number("(12.5)") == Decimal("-12.5")
        assert parse_flexible_number("+7") == Decimal("7")

    def test_not_numeric(self):
        assert parse_flexible_number(None) is None
        assert parse_flexible_number("") is None
        assert parse_flexible_number("abc") is None
        assert parse_flexible_number("1.2.3,4,5") is None


@pytest.mark.unit
class TestNormalizeAssetType:
    """Test suite for asset type normalization."""

    def test_blank_defaults_to_stock(self):
        assert normalize_asset_type(None) == "Stock"
        assert normalize_asset_type("  ") == "Stock"

    def test_known_aliases(self):
        assert normalize_asset_type("Common Stock") == "Stock"
        assert normalize_asset_type("Exchange Traded Fund") == "ETF"
        assert normalize_asset_type("cryptocurrency") == "Crypto"
        assert normalize_asset_type("Real Estate") == "REIT"
        assert normalize_asset_type("Fixed Income") == "Bond"

    def test_keyword_in_longer_label(self):
        assert normalize_asset_type("iShares Core UCITS ETF (Acc)") == "ETF"
        assert normalize_asset_type("Stock - ADR") == "Stock"

    def test_unknown_label_is_kept(self):
        assert normalize_asset_type(" Private Equity ") == "Private Equity"


@pytest.mark.unit
class TestCliValidators:
    """Test suite for validators applied to command-line input."""

    def test_validate_symbol(self):
        assert validate_symbol(" mc.pa ") == "MC.PA"
        assert validate_symbol("BRK-B") == "BRK-B"

    def test_validate_symbol_rejects_bad_input(self):
        with pytest.raises(ValidationError, match="Invalid ticker format"):
            validate_symbol("")
        with pytest.raises(ValidationError, match="Invalid ticker format"):
            validate_symbol("AA PL")

    def test_validate_positive_decimal(self):
        assert validate_positive_decimal("1.234,5", "shares") == Decimal("1234.5")

    def test_validate_positive_decimal_rejects(self):
        with pytest.raises(ValidationError, match="is not a number"):
            validate_positive_decimal("ten", "shares")
        with pytest.raises(ValidationError, match="must be greater than zero"):
            validate_positive_decimal("0", "shares")

    @freeze_time("2025-03-15")
    def test_validate_date(self):
        assert validate_date("2025-01-02") == "2025-01-02"
        assert validate_date("March 1, 2025") == "2025-03-01"
        assert validate_date("") == date(2025, 3, 15).isoformat()

    @freeze_time("2025-03-15")
    def test_validate_date_rejects(self):
        with pytest.raises(ValidationError, match="Expected format"):
            validate_date("not a date")
        with pytest.raises(ValidationError, match="in the future"):
            validate_date("2025-12-31")
