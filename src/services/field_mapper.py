"""
Map a document-analysis field bag onto ExtractedData.

Fields the model missed are repaired with layout and text heuristics. Each
heuristic is a pure function; they are tried in order and the first non-empty
answer wins. Nothing in this module raises on bad input: unparsable values
degrade to empty strings, 0, or the "USD" default.
"""

import re
from typing import Callable
from loguru import logger
from .amounts import parse_amount
from .invoice_types import AnalyzedDocument, field_text
from .line_items import resolve_line_items
from ..models.invoice import ExtractedData

DEFAULT_CURRENCY = "USD"

# Lines on page 1 that are never the vendor name
VENDOR_SKIP_TOKENS = (
    "INVOICE",
    "BILL TO",
    "SHIP TO",
    "DATE",
    "BALANCE DUE",
    "SUBTOTAL",
    "TOTAL",
    "DISCOUNT",
    "SHIPPING",
)
_LEADING_NUMBER = re.compile(r"^#?\d{3,}")
_MONEY_FRAGMENT = re.compile(r"[$€£¥]\s*\d")

# Codes may be glued to digits ("EUR500.00") but not to letters ("AUDIT")
_ISO_CODE = re.compile(r"(?<![A-Z])(USD|EUR|GBP|JPY|AUD|CAD|NZD|INR)(?![A-Z])")
_RUPEE_TOKEN = re.compile(r"(?<![A-Z])RS(?![A-Z])")
# Prefix must not be glued to a preceding word ("ERICA$5" is a bare dollar)
_DOLLAR = re.compile(r"(?:(?<![A-Z])(CA|AU|NZ|C|A))?\$")
_DOLLAR_PREFIXES = {"CA": "CAD", "C": "CAD", "AU": "AUD", "A": "AUD", "NZ": "NZD"}
_OTHER_SYMBOLS = (("€", "EUR"), ("£", "GBP"), ("¥", "JPY"))


def _field_string(document: AnalyzedDocument, name: str) -> str:
    text = field_text(document.fields.get(name))
    if text is None or not text.strip():
        return ""
    return text.strip()


# ---------------------------------------------------------------------------
# Vendor
# ---------------------------------------------------------------------------

def _is_vendor_candidate(line: str) -> bool:
    upper = line.upper()
    if any(token in upper for token in VENDOR_SKIP_TOKENS):
        return False
    if _LEADING_NUMBER.match(line):
        return False
    if _MONEY_FRAGMENT.search(line):
        return False
    return 1 <= len(line.split()) <= 3


def vendor_from_field(document: AnalyzedDocument) -> str:
    return _field_string(document, "VendorName")


def vendor_from_layout(document: AnalyzedDocument) -> str:
    """First short, non-boilerplate line on page 1"""
    if not document.pages:
        return ""
    for line in document.pages[0].lines:
        line = line.strip()
        if line and _is_vendor_candidate(line):
            return line
    return ""


VENDOR_STRATEGIES: tuple[Callable[[AnalyzedDocument], str], ...] = (
    vendor_from_field,
    vendor_from_layout,
)


def infer_vendor(document: AnalyzedDocument) -> str:
    for strategy in VENDOR_STRATEGIES:
        vendor = strategy(document)
        if vendor:
            if strategy is not vendor_from_field:
                logger.info("Vendor inferred from fallback", strategy=strategy.__name__, vendor=vendor)
            return vendor
    return ""


# ---------------------------------------------------------------------------
# Currency
# ---------------------------------------------------------------------------

def currency_from_iso_code(text: str) -> str | None:
    upper = text.upper()
    match = _ISO_CODE.search(upper)
    if match:
        return match.group(1)
    if _RUPEE_TOKEN.search(upper):
        return "INR"
    return None


def currency_from_symbol(text: str) -> str | None:
    upper = text.upper()
    match = _DOLLAR.search(upper)
    if match:
        return _DOLLAR_PREFIXES.get(match.group(1), "USD")
    for symbol, code in _OTHER_SYMBOLS:
        if symbol in text:
            return code
    return None


CURRENCY_DETECTORS: tuple[Callable[[str], str | None], ...] = (
    currency_from_iso_code,
    currency_from_symbol,
)


def _currency_from_field(document: AnalyzedDocument) -> str | None:
    code = _field_string(document, "CurrencyCode").upper()
    if len(code) == 3 and code.isalpha():
        return code
    return None


def infer_currency(document: AnalyzedDocument) -> str:
    """
    CurrencyCode field first, then signals in the total's raw text and the
    full document text. An explicit ISO code in either source beats any
    symbol; "USD" when nothing matches.
    """
    code = _currency_from_field(document)
    if code:
        return code

    total_raw = field_text(document.fields.get("InvoiceTotal")) or ""
    sources = [text for text in (total_raw, document.full_text) if text]
    for detect in CURRENCY_DETECTORS:
        for text in sources:
            code = detect(text)
            if code:
                logger.debug("Currency inferred", detector=detect.__name__, currency=code)
                return code
    return DEFAULT_CURRENCY


# ---------------------------------------------------------------------------
# ExtractedData
# ---------------------------------------------------------------------------

def map_extracted_data(document: AnalyzedDocument) -> ExtractedData:
    total_raw = _field_string(document, "InvoiceTotal")
    total = parse_amount(total_raw)
    if total < 0:
        logger.warning("Negative invoice total clamped to 0", raw=total_raw)
        total = 0.0

    extracted = ExtractedData(
        vendor=infer_vendor(document),
        invoice_number=_field_string(document, "InvoiceId"),
        invoice_date=_field_string(document, "InvoiceDate"),
        total_amount=total,
        currency=infer_currency(document),
        line_items=resolve_line_items(document),
    )

    logger.info(
        "Mapped invoice fields",
        vendor=extracted.vendor,
        invoice_number=extracted.invoice_number,
        total=extracted.total_amount,
        currency=extracted.currency,
        line_items=len(extracted.line_items or []),
    )
    return extracted
