"""
Template catalog loading and recognition.

Provides:
- YAML catalogs shipped next to this module (one file per profile)
- recognition of which template table a target table corresponds to
- A1 cell references for fixed-position summary fields
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import yaml

from sheetmatch.errors import SheetMatchError
from sheetmatch.logger import get_logger
from sheetmatch.models import Sheet, TargetColumn, TemplateTableDef
from sheetmatch.text import normalize_text

logger = get_logger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent

_A1_RE = re.compile(r"^([A-Z]+)(\d+)$")


def _ensure_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _ensure_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _ensure_str_list(value: Any) -> List[str]:
    """Keep only non-blank strings, stripped."""
    return [item.strip() for item in _ensure_list(value) if isinstance(item, str) and item.strip()]


@dataclass(frozen=True)
class RecognitionRule:
    template_id: str
    keys: Tuple[str, ...]


@dataclass(frozen=True)
class TemplateCatalog:
    """All template tables of one profile, with the rules that recognise them."""
    profile: str
    tables: Dict[str, TemplateTableDef]
    recognition: Tuple[RecognitionRule, ...] = ()
    name_markers: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    def get(self, template_id: Optional[str]) -> Optional[TemplateTableDef]:
        if not template_id:
            return None
        return self.tables.get(template_id)

    def recognize(self, columns: Sequence[TargetColumn], table_name: str = "") -> Optional[TemplateTableDef]:
        """
        Template table matching a target table.

        Field keys are checked first (every key of a rule must be present); the
        normalised table name is the fallback.
        """
        keys = {c.field_key for c in columns}
        for rule in self.recognition:
            if all(k in keys for k in rule.keys):
                return self.get(rule.template_id)
        name = normalize_text(table_name)
        for template_id, marker in self.name_markers:
            if marker and marker in name:
                return self.get(template_id)
        return None


def parse_catalog(data: Dict[str, Any], profile: str = "") -> TemplateCatalog:
    data = _ensure_dict(data)
    tables: Dict[str, TemplateTableDef] = {}
    for raw in _ensure_list(data.get("tables")):
        table = TemplateTableDef.model_validate(raw)
        tables[table.id] = table

    recognition = []
    for raw in _ensure_list(data.get("recognition")):
        raw = _ensure_dict(raw)
        template_id = raw.get("template")
        keys = _ensure_str_list(raw.get("keys"))
        if isinstance(template_id, str) and template_id in tables and keys:
            recognition.append(RecognitionRule(template_id, tuple(keys)))

    markers = []
    for raw in _ensure_list(data.get("name_markers")):
        raw = _ensure_dict(raw)
        template_id, marker = raw.get("template"), raw.get("marker")
        if isinstance(template_id, str) and template_id in tables and isinstance(marker, str):
            markers.append((template_id, normalize_text(marker)))

    return TemplateCatalog(
        profile=str(data.get("profile") or profile),
        tables=tables,
        recognition=tuple(recognition),
        name_markers=tuple(markers),
    )


def load_catalog_file(path: Path) -> TemplateCatalog:
    """Load a catalog YAML; raises :class:`SheetMatchError` when the file is unreadable."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise SheetMatchError(f"Template catalog could not be loaded from {path}: {e}") from e
    return parse_catalog(data, profile=path.stem)


@lru_cache(maxsize=None)
def get_catalog(profile: Optional[str]) -> Optional[TemplateCatalog]:
    """Catalog shipped for *profile*, or ``None`` when the profile has no template layouts."""
    if not profile or not re.fullmatch(r"[a-z0-9_]+", profile):
        return None
    path = TEMPLATES_DIR / f"{profile}.yaml"
    if not path.is_file():
        return None
    catalog = load_catalog_file(path)
    logger.debug("Loaded template catalog %r (%d tables)", profile, len(catalog.tables))
    return catalog


def recognize_template(
    profile: Optional[str],
    columns: Sequence[TargetColumn],
    table_name: str = "",
) -> Optional[TemplateTableDef]:
    catalog = get_catalog(profile)
    if catalog is None:
        return None
    return catalog.recognize(columns, table_name)


# ---------------------------------------------------------------------------
# A1 references
# ---------------------------------------------------------------------------

def a1_to_row_col(ref: str) -> Optional[Tuple[int, int]]:
    """``"E197"`` -> ``(196, 4)`` (zero based); ``None`` for anything that is not a plain A1 ref."""
    match = _A1_RE.match((ref or "").strip().upper())
    if not match:
        return None
    letters, digits = match.groups()
    col = 0
    for ch in letters:
        col = col * 26 + (ord(ch) - 64)
    row = int(digits)
    if row < 1:
        return None
    return row - 1, col - 1


def cell_at(sheet: Sheet, ref: str) -> Any:
    """Raw value at an A1 reference of the sheet's grid, ``None`` when out of range."""
    pos = a1_to_row_col(ref)
    if pos is None:
        return None
    row, col = pos
    if row >= len(sheet.raw_rows):
        return None
    cells = sheet.raw_rows[row]
    return cells[col] if col < len(cells) else None
