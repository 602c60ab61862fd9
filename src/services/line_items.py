"""
Line-item resolution.

Prefers the structured list field from the document model; when that yields
nothing, reads line items out of detected tables by guessing column roles
from the header row.
"""

from typing import Callable
from loguru import logger
from .amounts import parse_decimal
from .invoice_types import AnalyzedDocument, DocumentTable, field_dict, field_list, field_text
from ..models.invoice import LineItem

LIST_FIELD_CANDIDATES = (
    "Item",
    "Items",
    "LineItems",
    "Line Items",
    "Services",
    "Products",
    "Details",
)

# Checked in this order; a header cell takes the first role it matches
COLUMN_ROLE_KEYWORDS = (
    ("description", ("item", "description", "product", "service")),
    ("quantity", ("qty", "quantity", "hrs")),
    ("unit_price", ("rate", "price", "unit", "cost")),
    ("amount", ("amount", "sub total", "subtotal")),
)

SUMMARY_ROW_MARKERS = ("subtotal", "shipping", "total", "tax")


def items_from_list_field(document: AnalyzedDocument) -> list[LineItem]:
    for name in LIST_FIELD_CANDIDATES:
        entries = field_list(document.fields.get(name))
        if entries is None:
            continue

        items = []
        for entry in entries:
            sub_fields = field_dict(entry)
            if sub_fields is None:
                continue
            amount = parse_decimal(field_text(sub_fields.get("Amount")))
            items.append(LineItem(
                description=(field_text(sub_fields.get("Description")) or "").strip(),
                quantity=parse_decimal(field_text(sub_fields.get("Quantity"))),
                unit_price=parse_decimal(field_text(sub_fields.get("UnitPrice"))),
                amount=amount if amount is not None else 0.0,
            ))
        logger.debug("Line items read from list field", field=name, count=len(items))
        return items
    return []


def classify_header(headers: list[str]) -> dict[str, int]:
    """Map column role -> column index using keyword matches on the header row"""
    roles: dict[str, int] = {}
    for index, header in enumerate(headers):
        text = header.lower()
        for role, keywords in COLUMN_ROLE_KEYWORDS:
            if any(keyword in text for keyword in keywords):
                roles.setdefault(role, index)
                break
    return roles


def _items_from_table(table: DocumentTable) -> list[LineItem]:
    rows = table.grid()
    if len(rows) < 2:
        return []

    roles = classify_header(rows[0])
    if "description" not in roles and "amount" not in roles:
        return []

    def cell(row: list[str], role: str) -> str | None:
        index = roles.get(role)
        return row[index] if index is not None else None

    items = []
    for row in rows[1:]:
        if not any(value.strip() for value in row):
            continue
        description = (cell(row, "description") or "").strip()
        lowered = description.lower()
        if any(marker in lowered for marker in SUMMARY_ROW_MARKERS):
            continue
        amount = parse_decimal(cell(row, "amount"))
        items.append(LineItem(
            description=description,
            quantity=parse_decimal(cell(row, "quantity")),
            unit_price=parse_decimal(cell(row, "unit_price")),
            amount=amount if amount is not None else 0.0,
        ))
    return items


def items_from_tables(document: AnalyzedDocument) -> list[LineItem]:
    items = []
    for table in document.tables:
        items.extend(_items_from_table(table))
    if items:
        logger.info("Line items recovered from tables", tables=len(document.tables), count=len(items))
    return items


LINE_ITEM_STRATEGIES: tuple[Callable[[AnalyzedDocument], list[LineItem]], ...] = (
    items_from_list_field,
    items_from_tables,
)


def resolve_line_items(document: AnalyzedDocument) -> list[LineItem] | None:
    """Ordered line items, or None when no source produced any"""
    for strategy in LINE_ITEM_STRATEGIES:
        items = strategy(document)
        if items:
            return items
    return None
