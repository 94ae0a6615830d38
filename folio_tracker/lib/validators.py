"""
Input validation and normalization utilities.

Provides identifier shape checks (ISIN, ticker), the lenient number parser
used for pasted broker exports, asset type normalization, and validators for
CLI inputs.
"""

import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from dateutil import parser as date_parser

from folio_tracker.lib.errors import ValidationError
from folio_tracker.models.position import AssetType

ISIN_PATTERN = re.compile(r"^[A-Z]{2}[A-Z0-9]{10}$")
TICKER_SHAPE_PATTERN = re.compile(r"^[A-Z0-9.]{1,12}$", re.IGNORECASE)

# Currency symbols and ISO codes that brokers prefix or suffix to amounts
_CURRENCY_PATTERN = re.compile(
    r"HK\$|C\$|US\$|A\$|CHF|EUR|USD|GBP|SEK|NOK|DKK|CAD|JPY|kr|[$€£¥\s ]",
    re.IGNORECASE,
)
# 1.234,56 / 1.234.567 / 12,5 (dots group digits, optional decimal comma)
_EUROPEAN_GROUPED = re.compile(r"^\d{1,3}(\.\d{3})*(,\d+)?$")
# 12,50 / 1234,5 (decimal comma without grouping)
_EUROPEAN_DECIMAL = re.compile(r"^\d+,\d{1,2}$")
_PLAIN_NUMBER = re.compile(r"^\d+(\.\d+)?$|^\.\d+$")

# Provider and broker labels mapped to canonical asset types (lowercase keys)
ASSET_TYPE_ALIASES: dict[str, AssetType] = {
    # Stocks
    "stock": AssetType.STOCK,
    "stocks": AssetType.STOCK,
    "equity": AssetType.STOCK,
    "equities": AssetType.STOCK,
    "share": AssetType.STOCK,
    "shares": AssetType.STOCK,
    "common stock": AssetType.STOCK,
    "ordinary share": AssetType.STOCK,
    "ordinary shares": AssetType.STOCK,
    "cs": AssetType.STOCK,
    "adr": AssetType.STOCK,
    "gdr": AssetType.STOCK,
    "dr": AssetType.STOCK,
    "depositary receipt": AssetType.STOCK,
    "preferred": AssetType.STOCK,
    "preferred stock": AssetType.STOCK,
    "pfd": AssetType.STOCK,
    "aktie": AssetType.STOCK,
    "aktier": AssetType.STOCK,
    "action": AssetType.STOCK,
    # Funds
    "etf": AssetType.ETF,
    "etfs": AssetType.ETF,
    "etp": AssetType.ETF,
    "etc": AssetType.ETF,
    "etn": AssetType.ETF,
    "ucits": AssetType.ETF,
    "ucits etf": AssetType.ETF,
    "fund": AssetType.ETF,
    "funds": AssetType.ETF,
    "mutual fund": AssetType.ETF,
    "index fund": AssetType.ETF,
    "closed-end fund": AssetType.ETF,
    "closed end fund": AssetType.ETF,
    "cef": AssetType.ETF,
    "exchange traded fund": AssetType.ETF,
    "fonds": AssetType.ETF,
    "fond": AssetType.ETF,
    # Crypto
    "crypto": AssetType.CRYPTO,
    "cryptocurrency": AssetType.CRYPTO,
    "cryptocurrencies": AssetType.CRYPTO,
    "digital currency": AssetType.CRYPTO,
    "digital asset": AssetType.CRYPTO,
    "coin": AssetType.CRYPTO,
    "token": AssetType.CRYPTO,
    # REITs
    "reit": AssetType.REIT,
    "reits": AssetType.REIT,
    "real estate": AssetType.REIT,
    "real estate investment trust": AssetType.REIT,
    # Bonds
    "bond": AssetType.BOND,
    "bonds": AssetType.BOND,
    "fixed income": AssetType.BOND,
    "note": AssetType.BOND,
    "treasury": AssetType.BOND,
    "gilt": AssetType.BOND,
    "debt": AssetType.BOND,
    "obligation": AssetType.BOND,
    # Commodities
    "commodity": AssetType.COMMODITY,
    "commodities": AssetType.COMMODITY,
    "gold": AssetType.COMMODITY,
    "silver": AssetType.COMMODITY,
    "precious metal": AssetType.COMMODITY,
    "precious metals": AssetType.COMMODITY,
    # Cash
    "cash": AssetType.CASH,
    "money market": AssetType.CASH,
    "mmf": AssetType.CASH,
    "deposit": AssetType.CASH,
    "currency": AssetType.CASH,
    # Other
    "other": AssetType.OTHER,
    "warrant": AssetType.OTHER,
    "option": AssetType.OTHER,
    "right": AssetType.OTHER,
    "unit": AssetType.OTHER,
    "structured product": AssetType.OTHER,
    "cfd": AssetType.OTHER,
}


def is_isin(value: Optional[str]) -> bool:
    """
    Check whether a value has the shape of an ISIN.

    Examples:
        >>> is_isin("US0378331005")
        True
        >>> is_isin("AAPL")
        False
    """
    if not value:
        return False
    return bool(ISIN_PATTERN.match(value.strip()))


def looks_like_ticker(value: str) -> bool:
    """True for 1-12 letters, digits or dots (case-insensitive)."""
    return bool(TICKER_SHAPE_PATTERN.match(value.strip()))


def parse_flexible_number(raw: Optional[str]) -> Optional[Decimal]:
    """
    Parse a number as pasted from a broker export.

    Accepts currency symbols and codes, US (``1,234.56``) and European
    (``1.234,56``, ``12,50``) separators, and accounting negatives ``(12.5)``.
    The digit-group-dot pattern is tested before the decimal-comma one, so
    ``1.234`` reads as 1234 and ``1,234`` (no decimals) reads as 1.234.

    Args:
        raw: Cell text

    Returns:
        Parsed Decimal, or None when the cell is blank or not numeric

    Examples:
        >>> parse_flexible_number("1.234,56")
        Decimal('1234.56')
        >>> parse_flexible_number("$1,234.56")
        Decimal('1234.56')
        >>> parse_flexible_number("12,50")
        Decimal('12.50')
    """
    if raw is None:
        return None

    text = _CURRENCY_PATTERN.sub("", str(raw))
    if not text:
        return None

    negative = False
    if text.startswith("(") and text.endswith(")"):
        negative = True
        text = text[1:-1]
    if text.startswith("-"):
        negative = not negative
        text = text[1:]
    elif text.startswith("+"):
        text = text[1:]

    if _EUROPEAN_GROUPED.match(text):
        text = text.replace(".", "").replace(",", ".")
    elif _EUROPEAN_DECIMAL.match(text):
        text = text.replace(",", ".")
    text = text.replace(",", "")

    if not _PLAIN_NUMBER.match(text):
        return None

    try:
        value = Decimal(text)
    except InvalidOperation:
        return None
    return -value if negative else value


def normalize_asset_type(label: Optional[str]) -> str:
    """
    Map a provider or broker asset label to a canonical asset type.

    Blank labels become ``Stock``; labels with no known mapping are returned
    unchanged (trimmed) so nothing the user typed is lost.

    Examples:
        >>> normalize_asset_type("Common Stock")
        'Stock'
        >>> normalize_asset_type("UCITS ETF")
        'ETF'
        >>> normalize_asset_type("")
        'Stock'
    """
    if label is None:
        return AssetType.STOCK.value

    cleaned = label.strip()
    if not cleaned:
        return AssetType.STOCK.value

    key = re.sub(r"\s+", " ", cleaned.lower())
    if key in ASSET_TYPE_ALIASES:
        return ASSET_TYPE_ALIASES[key].value

    # Multi-word labels such as "iShares UCITS ETF (Acc)" or "Stock - ADR"
    words = set(re.split(r"[^a-z0-9-]+", key))
    for word in ("etf", "etp", "ucits", "reit", "bond", "crypto", "adr"):
        if word in words:
            return ASSET_TYPE_ALIASES[word].value

    return cleaned


def validate_symbol(symbol: str) -> str:
    """
    Validate and normalize a ticker symbol entered by the user.

    Raises:
        ValidationError: If the symbol is blank or has an invalid shape
    """
    symbol = symbol.strip().upper()
    if not symbol or not re.match(r"^[A-Z0-9][A-Z0-9.\-]{0,19}$", symbol):
        raise ValidationError(
            f"Invalid ticker format: '{symbol}'. "
            "Use letters, digits and an optional exchange suffix (e.g., AAPL, MC.PA)"
        )
    return symbol


def validate_positive_decimal(value: Union[str, float, Decimal], field: str) -> Decimal:
    """
    Parse a user-entered amount and require it to be greater than zero.

    Raises:
        ValidationError: If the value is not a number or is not positive
    """
    parsed = parse_flexible_number(str(value))
    if parsed is None:
        raise ValidationError(f"Invalid {field}: '{value}' is not a number")
    if parsed <= 0:
        raise ValidationError(f"Invalid {field}: {parsed} must be greater than zero")
    return parsed


def validate_date(value: Optional[str]) -> str:
    """
    Parse a user-entered date and return it as ``YYYY-MM-DD``.

    Empty input means today.

    Raises:
        ValidationError: If the date cannot be parsed or is in the future
    """
    if not value:
        return date.today().isoformat()
    try:
        parsed = date_parser.parse(value).date()
    except (ValueError, OverflowError) as e:
        raise ValidationError(f"Invalid date: '{value}'. Expected format: YYYY-MM-DD") from e
    if parsed > date.today():
        raise ValidationError(f"Invalid date: '{value}' is in the future")
    return parsed.isoformat()
