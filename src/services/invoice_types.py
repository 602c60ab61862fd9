"""
Typed view of a document-analysis result.

The document model returns a loosely typed field bag. Each entry is one of
four closed shapes (text, number, list, dictionary), told apart by ``kind``.
Callers read entries through the accessor functions below, which return
``None`` when the entry is missing or has a different shape.
"""

from typing import Annotated, Literal, Union
from pydantic import BaseModel, ConfigDict, Field


class _FieldBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Raw text as it appeared on the page (e.g. "$1,250.00")
    content: str | None = None


class TextField(_FieldBase):
    kind: Literal["text"] = "text"
    value: str | None = None


class NumberField(_FieldBase):
    kind: Literal["number"] = "number"
    value: float | None = None


class ListField(_FieldBase):
    kind: Literal["list"] = "list"
    items: list["FieldValue"] = Field(default_factory=list)


class DictField(_FieldBase):
    kind: Literal["dict"] = "dict"
    entries: dict[str, "FieldValue"] = Field(default_factory=dict)


FieldValue = Annotated[
    Union[TextField, NumberField, ListField, DictField],
    Field(discriminator="kind"),
]
FieldBag = dict[str, FieldValue]

ListField.model_rebuild()
DictField.model_rebuild()


def field_text(field: FieldValue | None) -> str | None:
    """Raw content of an entry, or its scalar value when no content was captured"""
    if field is None:
        return None
    if field.content is not None:
        return field.content
    if field.kind == "text":
        return field.value
    if field.kind == "number" and field.value is not None:
        return str(field.value)
    return None


def field_list(field: FieldValue | None) -> list[FieldValue] | None:
    if field is None or field.kind != "list":
        return None
    return field.items


def field_dict(field: FieldValue | None) -> dict[str, FieldValue] | None:
    if field is None or field.kind != "dict":
        return None
    return field.entries


class PageLayout(BaseModel):
    page_number: int = 1
    lines: list[str] = Field(default_factory=list)


class TableCell(BaseModel):
    row_index: int
    column_index: int
    content: str = ""


class DocumentTable(BaseModel):
    row_count: int
    column_count: int
    cells: list[TableCell] = Field(default_factory=list)

    def grid(self) -> list[list[str]]:
        """Cells laid out as rows of column strings (empty string for missing cells)"""
        rows = [["" for _ in range(self.column_count)] for _ in range(self.row_count)]
        for cell in self.cells:
            if 0 <= cell.row_index < self.row_count and 0 <= cell.column_index < self.column_count:
                rows[cell.row_index][cell.column_index] = cell.content or ""
        return rows


class AnalyzedDocument(BaseModel):
    fields: FieldBag = Field(default_factory=dict)
    pages: list[PageLayout] = Field(default_factory=list)
    tables: list[DocumentTable] = Field(default_factory=list)
    full_text: str = ""
    confidence: float = 0.0
