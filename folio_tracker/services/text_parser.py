"""Parse holdings pasted as freeform tabular text.

Handles tab, semicolon, pipe and comma separated exports, with or without a
header row. Headers are matched against an alias table per column role; when
no header is found, the column layout is inferred from the shape of the first
row. Parsing never raises: problems are reported per line.
"""

import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from folio_tracker.lib.validators import (
    is_isin,
    looks_like_ticker,
    normalize_asset_type,
    parse_flexible_number,
)
from folio_tracker.models import DEFAULT_PLATFORM, Position

logger = logging.getLogger(__name__)

SEPARATORS = ("\t", ";", "|", ",")
SEPARATOR_SCAN_LINES = 5
HEADER_SCAN_LINES = 3
LEGACY_LAYOUT_MIN_COLUMNS = 8

# Role order matters: a cell is assigned to the first unmapped role it matches
COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "symbol": (
        "ticker", "symbol", "isin", "code", "instrument", "stock", "asset code",
        "security", "id", "wkn", "sedol", "cusip", "valor",
    ),
    "shares": (
        "shares", "quantity", "qty", "units", "amount of shares", "no. of shares",
        "no of shares", "number of shares", "holding", "holdings", "position",
        "volume", "lots", "antal",
    ),
    "price": (
        "avg price", "avg unit price", "average price", "avg cost", "average cost",
        "unit cost", "cost price", "purchase price", "buy price", "price per share",
        "price/share", "entry price", "cost basis per share", "cost/share",
        "avg unit cost", "prix moyen", "snitt",
    ),
    "name": (
        "asset", "asset name", "name", "company", "company name", "description",
        "security name", "instrument name", "stock name", "product",
    ),
    "platform": (
        "platform", "broker", "account", "exchange", "market", "provider", "source",
        "brokerage",
    ),
    "type": (
        "type", "asset type", "security type", "instrument type", "asset class",
        "category", "class",
    ),
    "amount": (
        "invested", "invested amount", "total invested", "total cost", "cost basis",
        "total amount", "amount invested", "book value", "book cost", "market value",
        "value", "total value",
    ),
}  # fmt: skip

LEGACY_LAYOUT = {"name": 0, "symbol": 1, "platform": 2, "type": 3, "shares": 4, "price": 7}

_LEGACY_HEADER_WORDS = re.compile(
    r"\b(asset|ticker|symbol|name|shares|price|type|platform)\b", re.IGNORECASE
)
_HEADER_WORDS = re.compile(
    r"\b(asset|ticker|symbol|isin|name|shares|price|quantity|units)\b", re.IGNORECASE
)
_NON_ALNUM = re.compile(r"[^a-z0-9 ]")

NO_LAYOUT_ERROR = (
    "Could not detect column layout — need at least a Ticker/Symbol/ISIN column"
    " and a Quantity/Shares column"
)


@dataclass
class ParseResult:
    """Outcome of parsing pasted text."""

    positions: list[Position] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def needs_price_lookup(self) -> list[str]:
        """Symbols imported without a cost basis."""
        return [p.symbol for p in self.positions if p.needs_current_price]

    @property
    def identifiers_to_resolve(self) -> list[str]:
        """ISIN-shaped symbols that must be resolved to tickers before import."""
        return [p.symbol for p in self.positions if is_isin(p.symbol)]


def detect_separator(text: str) -> str:
    """
    Pick the column separator from the first few lines.

    Tab is preferred over ``;``, ``|`` and ``,`` whenever present, so
    tab-separated exports with commas in names still split correctly.

    Examples:
        >>> detect_separator("A;B;C")
        ';'
        >>> detect_separator("A\\tB,C")
        '\\t'
    """
    sample = "\n".join(text.splitlines()[:SEPARATOR_SCAN_LINES])
    for separator in SEPARATORS:
        if sample.count(separator) > 0:
            return separator
    return "\t"


def matches_role(cell: str, role: str) -> bool:
    """Case-insensitive alias match, tolerant of punctuation in the header cell."""
    value = cell.strip().lower()
    if not value:
        return False
    aliases = COLUMN_ALIASES[role]
    if value in aliases:
        return True
    stripped = _NON_ALNUM.sub("", value).strip()
    return stripped in aliases


def detect_column_mapping(cells: list[str]) -> Optional[dict[str, int]]:
    """
    Map header cells to column roles.

    Returns:
        Role -> column index, or None unless both symbol and shares were found
    """
    mapping: dict[str, int] = {}
    for index, cell in enumerate(cells):
        for role in COLUMN_ALIASES:
            if role not in mapping and matches_role(cell, role):
                mapping[role] = index
                break
    if "symbol" in mapping and "shares" in mapping:
        return mapping
    return None


def _classify_cell(cell: str) -> str:
    value = cell.strip()
    if not value:
        return "empty"
    if parse_flexible_number(value) is not None:
        return "number"
    if is_isin(value.upper()):
        return "isin"
    if looks_like_ticker(value):
        return "ticker"
    return "text"


def _infer_mapping(cells: list[str]) -> dict[str, int]:
    """Guess column roles from the shape of a data row."""
    kinds = [_classify_cell(cell) for cell in cells]
    mapping: dict[str, int] = {}
    numbers = [i for i, kind in enumerate(kinds) if kind == "number"]
    for i, kind in enumerate(kinds):
        if "symbol" not in mapping and kind in ("ticker", "isin"):
            mapping["symbol"] = i
        elif "name" not in mapping and kind == "text":
            mapping["name"] = i
    if numbers:
        mapping["shares"] = numbers[0]
    if len(numbers) > 1:
        mapping["price"] = numbers[1]
    return mapping


def _cell(cells: list[str], mapping: dict[str, int], role: str) -> str:
    index = mapping.get(role)
    if index is None or index >= len(cells):
        return ""
    return cells[index].strip()


def _find_layout(
    lines: list[str], separator: str
) -> tuple[Optional[dict[str, int]], int]:
    """Return (column mapping, index of the first data line)."""
    non_blank_seen = 0
    for index, line in enumerate(lines):
        if not line.strip():
            continue
        mapping = detect_column_mapping(line.split(separator))
        if mapping is not None:
            return mapping, index + 1
        non_blank_seen += 1
        if non_blank_seen >= HEADER_SCAN_LINES:
            break

    first_index = next((i for i, line in enumerate(lines) if line.strip()), None)
    if first_index is None:
        return None, 0
    first_line = lines[first_index]
    cells = first_line.split(separator)

    if len(cells) >= LEGACY_LAYOUT_MIN_COLUMNS:
        start = first_index + 1 if _LEGACY_HEADER_WORDS.search(first_line) else first_index
        return dict(LEGACY_LAYOUT), start

    if len(cells) >= 2:
        if _HEADER_WORDS.search(first_line):
            # A header row the alias table could not map; infer from the first data row
            data_index = next(
                (i for i in range(first_index + 1, len(lines)) if lines[i].strip()), None
            )
            if data_index is None:
                return None, 0
            mapping = _infer_mapping(lines[data_index].split(separator))
            start = data_index
        else:
            mapping = _infer_mapping(cells)
            start = first_index
        if "symbol" in mapping and "shares" in mapping:
            return mapping, start

    return None, 0


def _parse_row(
    cells: list[str], mapping: dict[str, int], line_number: int, result: ParseResult
) -> None:
    raw_symbol = _cell(cells, mapping, "symbol")
    if not raw_symbol:
        result.errors.append(f"Line {line_number}: Missing ticker/symbol/ISIN")
        return
    symbol = raw_symbol.upper()

    raw_shares = _cell(cells, mapping, "shares")
    shares = parse_flexible_number(raw_shares)
    if shares is None or shares <= 0:
        result.errors.append(f'Line {line_number}: Invalid quantity "{raw_shares}" for {symbol}')
        return

    price = parse_flexible_number(_cell(cells, mapping, "price"))
    needs_current_price = False
    if price is None or price <= 0:
        amount = parse_flexible_number(_cell(cells, mapping, "amount"))
        if amount is not None and amount > 0:
            price = amount / shares
        else:
            price = Decimal("0")
            needs_current_price = True
            result.warnings.append(
                f"{raw_symbol}: No acquisition price found — "
                "will use current market price as cost basis"
            )

    result.positions.append(
        Position(
            symbol=symbol,
            shares=shares,
            avg_price=price,
            name=_cell(cells, mapping, "name") or symbol,
            platform=_cell(cells, mapping, "platform") or DEFAULT_PLATFORM,
            asset_type=normalize_asset_type(_cell(cells, mapping, "type")),
            needs_current_price=needs_current_price,
        )
    )


def parse_text(text: Optional[str]) -> ParseResult:
    """
    Parse pasted holdings text into positions.

    Args:
        text: Tabular text, with or without a header row

    Returns:
        ParseResult with one Position per valid row, plus per-line errors and
        warnings. Rows whose symbol is ISIN-shaped are returned as-is and
        listed in ``identifiers_to_resolve``.
    """
    result = ParseResult()
    if text is None or not text.strip():
        result.errors.append("No text provided")
        return result

    lines = text.splitlines()
    separator = detect_separator(text)
    mapping, start = _find_layout(lines, separator)

    if mapping is None:
        result.errors.append(NO_LAYOUT_ERROR)
        return result

    logger.debug(f"Parsing with separator {separator!r}, columns {mapping}, from line {start + 1}")

    for index in range(start, len(lines)):
        line = lines[index]
        if not line.strip():
            continue
        _parse_row(line.split(separator), mapping, index + 1, result)

    return result
