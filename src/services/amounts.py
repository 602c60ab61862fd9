"""
Amount parsing shared by field mapping and line-item resolution.

Strips currency symbols, ISO codes and thousands separators, then parses what
is left. Never raises: unparsable text gives None (or 0 via parse_amount).

    >>> parse_decimal("$1,234.56")
    1234.56
    >>> parse_decimal("n/a") is None
    True
"""

import math
import re

# Localized dollar prefixes ("CA$", "AU$", "NZ$", "C$", "A$") go with the symbol
_DOLLAR_WITH_PREFIX = re.compile(r"(?:CA|AU|NZ|C|A)?\$", re.IGNORECASE)
_SYMBOLS_TO_STRIP = ("€", "£", "¥")
_CODES_TO_STRIP = ("USD", "EUR", "GBP", "JPY", "AUD", "CAD", "NZD", "INR")


def parse_decimal(raw: str | None) -> float | None:
    if raw is None:
        return None
    text = _DOLLAR_WITH_PREFIX.sub("", str(raw))
    for symbol in _SYMBOLS_TO_STRIP:
        text = text.replace(symbol, "")
    for code in _CODES_TO_STRIP:
        text = text.replace(code, "")
    text = text.replace(",", "").strip()
    if not text:
        return None
    try:
        value = float(text)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def parse_amount(raw: str | None) -> float:
    value = parse_decimal(raw)
    return value if value is not None else 0.0
