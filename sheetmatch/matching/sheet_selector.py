"""
SheetSelector: choose which sheet of a workbook feeds a target table.

- generic tables: average over columns of the best header score; accepted when the
  average clears the mapping threshold of the table's profile
- template tables: average template-column score plus sheet-name and row-count
  bonuses, clamped to 1.0; accepted at >= 0.2
- a pinned sheet name always wins when it exists among the parsed sheets
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from sheetmatch.logger import get_logger
from sheetmatch.matching.column_matcher import ColumnMatcher
from sheetmatch.models import ColumnMapping, Sheet, TargetColumn, TemplateTableDef
from sheetmatch.text import normalize_text

logger = get_logger(__name__)


@dataclass
class SheetChoice:
    sheet: Optional[Sheet]
    score: float
    reason: str


@dataclass
class SheetAnalysis:
    """Template fit of one sheet, as reported by :func:`analyze_sheets`."""
    sheet_name: str
    headers: List[str]
    row_count: int
    best_table_id: Optional[str]
    score: float
    mappings: List[dict] = field(default_factory=list)


class SheetSelector:

    def __init__(self, matcher: Optional[ColumnMatcher] = None):
        self._matcher = matcher or ColumnMatcher()

    @property
    def matcher(self) -> ColumnMatcher:
        return self._matcher

    @staticmethod
    def find_pinned(sheets: Sequence[Sheet], pinned: Optional[str]) -> Optional[Sheet]:
        if not pinned:
            return None
        for sheet in sheets:
            if sheet.name == pinned:
                return sheet
        return None

    # ------------------------------------------------------------------
    # Generic tables
    # ------------------------------------------------------------------

    def score_sheet(self, sheet: Sheet, columns: Sequence[TargetColumn], profile: str = "") -> float:
        if not sheet.headers or not columns:
            return 0.0
        scores = [self._matcher.best_score(sheet.headers, col, profile) for col in columns]
        return sum(scores) / len(scores)

    def select(
        self,
        sheets: Sequence[Sheet],
        columns: Sequence[TargetColumn],
        profile: str = "",
        pinned: Optional[str] = None,
    ) -> SheetChoice:
        """Best sheet for a generic table; ``sheet`` is ``None`` when nothing clears the threshold."""
        pinned_sheet = self.find_pinned(sheets, pinned)
        if pinned_sheet is not None:
            return SheetChoice(pinned_sheet, 1.0, "pinned")

        best: Optional[Sheet] = None
        best_score = 0.0
        for sheet in sheets:
            s = self.score_sheet(sheet, columns, profile)
            if s > best_score:
                best, best_score = sheet, s

        threshold = self._matcher.config.mapping_threshold(profile)
        if best is None or not self._matcher.config.clears(best_score, threshold):
            return SheetChoice(None, best_score, "below_threshold")
        return SheetChoice(best, best_score, "score_max")

    # ------------------------------------------------------------------
    # Template tables
    # ------------------------------------------------------------------

    @staticmethod
    def name_bonus(sheet_name: str, template: TemplateTableDef) -> float:
        """Bonus of the last rule whose markers all appear in the normalised sheet name."""
        name = normalize_text(sheet_name)
        bonus = 0.0
        for rule in template.sheet_name_bonuses:
            if all(m in name for m in rule.all_of) and not any(m in name for m in rule.none_of):
                bonus = rule.bonus
        return bonus

    @staticmethod
    def row_bonus(row_count: int, template: TemplateTableDef) -> float:
        rule = template.row_count_bonus
        if rule is None:
            return 0.0
        if rule.min_rows is not None and row_count < rule.min_rows:
            return 0.0
        if rule.max_rows is not None and row_count > rule.max_rows:
            return 0.0
        return rule.bonus

    def score_template_sheet(self, sheet: Sheet, template: TemplateTableDef) -> float:
        if template.columns:
            scores = [self._matcher.best_template_score(sheet.headers, col) for col in template.columns]
            avg = sum(scores) / len(scores)
        else:
            avg = 0.0
        total = avg + self.name_bonus(sheet.name, template) + self.row_bonus(len(sheet.data_rows), template)
        return min(1.0, total)

    def select_for_template(
        self,
        sheets: Sequence[Sheet],
        template: TemplateTableDef,
        pinned: Optional[str] = None,
    ) -> SheetChoice:
        pinned_sheet = self.find_pinned(sheets, pinned)
        if pinned_sheet is not None:
            return SheetChoice(pinned_sheet, 1.0, "pinned")

        best: Optional[Sheet] = None
        best_score = 0.0
        for sheet in sheets:
            s = self.score_template_sheet(sheet, template)
            if s > best_score:
                best, best_score = sheet, s

        cfg = self._matcher.config
        if best is None or not cfg.clears(best_score, cfg.template_sheet_min_score):
            return SheetChoice(None, best_score, "below_threshold")
        return SheetChoice(best, best_score, "template_score_max")


def _template_as_columns(template: TemplateTableDef) -> List[TargetColumn]:
    return [
        TargetColumn(
            id=col.key,
            table_id=template.id,
            field_key=col.key,
            label=col.label,
            data_type=col.data_type,
            config={"keywords": list(col.keywords)},
        )
        for col in template.columns
    ]


def analyze_sheets(
    sheets: Sequence[Sheet],
    templates: Sequence[TemplateTableDef],
    selector: Optional[SheetSelector] = None,
) -> List[SheetAnalysis]:
    """
    Score every sheet against every template table.

    The best table is reported only when its score reaches the template acceptance
    threshold; proposed mappings come from the template scorer.
    """
    selector = selector or SheetSelector()
    matcher = selector.matcher
    min_score = matcher.config.template_sheet_min_score

    results: List[SheetAnalysis] = []
    for sheet in sheets:
        best_template: Optional[TemplateTableDef] = None
        best_score = 0.0
        for template in templates:
            s = selector.score_template_sheet(sheet, template)
            if s > best_score:
                best_template, best_score = template, s

        analysis = SheetAnalysis(
            sheet_name=sheet.name,
            headers=list(sheet.headers),
            row_count=len(sheet.data_rows),
            best_table_id=None,
            score=round(best_score, 4),
        )
        if best_template is not None and matcher.config.clears(best_score, min_score):
            analysis.best_table_id = best_template.id
            mappings: List[ColumnMapping] = matcher.build_template_mappings(
                sheet.headers, best_template, _template_as_columns(best_template)
            )
            analysis.mappings = [
                {
                    "field_key": m.column.field_key,
                    "label": m.column.label,
                    "matched_header": m.matched_header,
                    "confidence": round(m.confidence, 4),
                }
                for m in mappings
            ]
        logger.debug("Sheet %r best template %s (%.3f)", sheet.name, analysis.best_table_id, best_score)
        results.append(analysis)
    return results
