"""
Data model.
===========

Pydantic models that flow through the ingestion pipeline: normalised sheets,
target-schema columns, template definitions, column mappings, extracted rows and
the import request/response.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

DataType = Literal["text", "numeric", "integer", "date"]
ColumnScope = Literal["parent", "item"]
ExtractionMode = Literal["row-per-record", "horizontal-pivot"]

_DATA_TYPE_ALIASES = {
    "text": "text",
    "string": "text",
    "numeric": "numeric",
    "number": "numeric",
    "currency": "numeric",
    "float": "numeric",
    "integer": "integer",
    "int": "integer",
    "date": "date",
}


def ensure_data_type(value: Any) -> str:
    """Map a loosely spelled data type onto one of :data:`DataType`; unknown values read as text."""
    if not isinstance(value, str):
        return "text"
    return _DATA_TYPE_ALIASES.get(value.strip().lower(), "text")


# ---------------------------------------------------------------------------
# Normalised sheet
# ---------------------------------------------------------------------------

class Sheet(BaseModel):
    """
    One grid of a workbook (or the single grid of a CSV) after normalisation.

    Attributes:
        name: sheet/tab name, ``"CSV"`` for CSV input
        headers: detected header labels in column order, possibly repeated
        raw_rows: the full row-major matrix with merged ranges already filled
        data_rows: one mapping header -> raw value per non-empty row below the header
        header_row_index: index (in ``raw_rows``) of the last header row
    """
    name: str
    headers: List[str]
    raw_rows: List[List[Any]] = Field(default_factory=list)
    data_rows: List[Dict[str, Any]] = Field(default_factory=list)
    header_row_index: int = 0


class SheetSummary(BaseModel):
    name: str
    headers: List[str]
    row_count: int


# ---------------------------------------------------------------------------
# Target schema
# ---------------------------------------------------------------------------

class ColumnConfig(BaseModel):
    keywords: List[str] = Field(default_factory=list)
    scope: Optional[ColumnScope] = None

    @model_validator(mode="before")
    @classmethod
    def _accept_legacy_keys(cls, data: Any) -> Any:
        # Column configs written by the table editor use excelKeywords/ocrScope.
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "keywords" not in data and "excelKeywords" in data:
            data["keywords"] = data.pop("excelKeywords")
        if "scope" not in data and "ocrScope" in data:
            data["scope"] = data.pop("ocrScope")
        keywords = data.get("keywords")
        data["keywords"] = [k for k in keywords if isinstance(k, str)] if isinstance(keywords, list) else []
        if data.get("scope") not in ("parent", "item"):
            data["scope"] = None
        return data


class TargetColumn(BaseModel):
    """A destination column of a target table. Read-only to the engine."""
    id: str
    table_id: str
    field_key: str
    label: str
    data_type: DataType = "text"
    required: bool = False
    config: ColumnConfig = Field(default_factory=ColumnConfig)

    @field_validator("data_type", mode="before")
    @classmethod
    def _coerce_data_type(cls, v: Any) -> str:
        return ensure_data_type(v)

    @field_validator("config", mode="before")
    @classmethod
    def _coerce_config(cls, v: Any) -> Any:
        return {} if v is None else v


class TableSettings(BaseModel):
    spreadsheet_template: Optional[str] = None
    pinned_sheet: Optional[str] = None


class TargetTable(BaseModel):
    id: str
    name: str = "Tabla"
    settings: TableSettings = Field(default_factory=TableSettings)


# ---------------------------------------------------------------------------
# Fixed document templates
# ---------------------------------------------------------------------------

class TemplateColumnDef(BaseModel):
    key: str
    label: str
    data_type: DataType = "text"
    keywords: List[str] = Field(default_factory=list)

    @field_validator("data_type", mode="before")
    @classmethod
    def _coerce_data_type(cls, v: Any) -> str:
        return ensure_data_type(v)


class SheetNameBonus(BaseModel):
    """Bonus applied when the normalised sheet name contains every ``all_of`` marker and no ``none_of`` marker."""
    all_of: List[str]
    none_of: List[str] = Field(default_factory=list)
    bonus: float


class RowCountBonus(BaseModel):
    """Bonus applied when ``min_rows <= data rows <= max_rows`` (either bound optional)."""
    min_rows: Optional[int] = None
    max_rows: Optional[int] = None
    bonus: float = 0.05


class TemplateTableDef(BaseModel):
    id: str
    label: str
    extraction_mode: ExtractionMode = "row-per-record"
    columns: List[TemplateColumnDef]
    summary_cells: Dict[str, str] = Field(default_factory=dict)
    sheet_name_bonuses: List[SheetNameBonus] = Field(default_factory=list)
    row_count_bonus: Optional[RowCountBonus] = None

    def column(self, key: str) -> Optional[TemplateColumnDef]:
        for col in self.columns:
            if col.key == key:
                return col
        return None


# ---------------------------------------------------------------------------
# Mapping and extraction output
# ---------------------------------------------------------------------------

class ColumnMapping(BaseModel):
    column: TargetColumn
    matched_header: Optional[str] = None
    confidence: float = 0.0
    manual_override: Optional[str] = None


class Provenance(BaseModel):
    source_bucket: str
    source_path: str
    source_file_name: str


class ExtractedRow(BaseModel):
    target_table_id: str
    data: Dict[str, Any]
    provenance: Optional[Provenance] = None


class ProcessingStatus(BaseModel):
    table_id: str
    source_bucket: str
    source_path: str
    source_file_name: str
    status: str = "completed"
    rows_extracted: int = 0
    processed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# ---------------------------------------------------------------------------
# Request / response
# ---------------------------------------------------------------------------

class SourceFile(BaseModel):
    filename: str
    content: bytes


class ImportRequest(BaseModel):
    """
    One "import spreadsheet for N target tables" call.

    Either ``file`` or the ``existing_bucket``/``existing_path`` reference must be given.
    When both are present the fresh file is parsed and the reference supplies provenance.
    """
    table_ids: List[str]
    file: Optional[SourceFile] = None
    existing_bucket: Optional[str] = None
    existing_path: Optional[str] = None
    existing_file_name: Optional[str] = None
    sheet_assignments: Dict[str, Optional[str]] = Field(default_factory=dict)
    column_mappings: Dict[str, Dict[str, Optional[str]]] = Field(default_factory=dict)
    manual_values: Dict[str, Dict[str, str]] = Field(default_factory=dict)
    preview: bool = False


class MappingPreview(BaseModel):
    field_key: str
    label: str
    matched_header: Optional[str]
    confidence: float
    manual_value: str = ""


class TableResult(BaseModel):
    table_id: str
    table_name: str
    inserted: int = 0
    sheet_name: Optional[str] = None
    strategy: Optional[str] = None
    mappings: Optional[List[MappingPreview]] = None
    preview_rows: Optional[List[Dict[str, Any]]] = None
    available_sheets: Optional[List[SheetSummary]] = None
    error: Optional[str] = None


class ImportResponse(BaseModel):
    ok: bool = True
    preview: bool = False
    source_name: str = ""
    inserted: int = 0
    per_table: List[TableResult] = Field(default_factory=list)
    error: Optional[str] = None
