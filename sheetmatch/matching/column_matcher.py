"""
ColumnMatcher: score source headers against target columns and assign them greedily.

Two scorers share the same exact-match tiers (normalised label -> 1.0,
normalised field key -> 0.95):

- ``score``          generic target columns; substring overlap with the column's
                     label/key/configured keywords, capped at 0.9
- ``score_template`` fixed template columns; keyword overlap against header tokens,
                     with a jump to >= 0.82 once 60% of the keywords match

Assignment is greedy in column order. The set of consumed headers is passed
explicitly so a header is never mapped twice within one mapping set.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Set, Tuple

from sheetmatch.logger import get_logger
from sheetmatch.matching.config import DEFAULT_MATCH_CONFIG, MatchConfig
from sheetmatch.matching.profiles import profile_keywords
from sheetmatch.models import ColumnMapping, Sheet, TargetColumn, TemplateColumnDef, TemplateTableDef
from sheetmatch.text import field_key_as_text, normalize_field_key, normalize_text, tokenize

logger = get_logger(__name__)


class ColumnMatcher:
    """
    Stateless scorer; thresholds come from :class:`MatchConfig`.

    Typical use::

        matcher = ColumnMatcher()
        mappings = matcher.build_mappings(sheet.headers, columns, profile)
    """

    def __init__(self, cfg: MatchConfig = DEFAULT_MATCH_CONFIG):
        self._cfg = cfg

    @property
    def config(self) -> MatchConfig:
        return self._cfg

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    @staticmethod
    def keywords_for(column: TargetColumn) -> List[str]:
        """Normalised, de-duplicated keyword set: label, field key, derived key, configured keywords."""
        raw = [column.label, column.field_key, normalize_field_key(column.label), *column.config.keywords]
        out: List[str] = []
        for kw in raw:
            norm = normalize_text((kw or "").replace("_", " "))
            if norm and norm not in out:
                out.append(norm)
        return out

    def score(self, header: str, column: TargetColumn, profile: str = "") -> float:
        """Confidence in ``[0, 1]`` that *header* holds *column*'s values."""
        base = self._base_score(header, column)
        if not profile:
            return base
        boost_keywords = profile_keywords(profile, column.label, column.field_key)
        if boost_keywords and self._profile_hit(normalize_text(header), boost_keywords):
            return min(1.0, base + self._cfg.profile_boost)
        return base

    def _base_score(self, header: str, column: TargetColumn) -> float:
        h = normalize_text(header)
        if not h:
            return 0.0
        if h == normalize_text(column.label):
            return self._cfg.exact_label_score
        if h == field_key_as_text(column.field_key):
            return self._cfg.exact_key_score

        keywords = self.keywords_for(column)
        if not keywords:
            return 0.0
        matches = sum(1 for kw in keywords if kw in h or h in kw)
        if matches == 0:
            return 0.0
        cap = self._cfg.keyword_score_cap
        return min(cap, matches / len(keywords) * cap)

    @staticmethod
    def _profile_hit(normalized_header: str, keywords: Iterable[str]) -> bool:
        if not normalized_header:
            return False
        return any(kw in normalized_header or normalized_header in kw for kw in keywords)

    def score_template(self, header: str, column: TemplateColumnDef) -> float:
        """Template-column confidence; see module docstring for the curve."""
        h = normalize_text(header)
        if not h:
            return 0.0
        if h == normalize_text(column.label):
            return self._cfg.exact_label_score
        if h == field_key_as_text(column.key):
            return self._cfg.exact_key_score
        if not column.keywords:
            return 0.0

        # "%" and "$" normalise to "" and so match every header
        words = set(tokenize(header))
        matched = 0
        for kw in column.keywords:
            norm_kw = normalize_text(kw)
            if any(norm_kw in w or w in norm_kw for w in words) or norm_kw in h:
                matched += 1
        if matched == 0:
            return 0.0

        overlap = matched / len(column.keywords)
        c = self._cfg
        if overlap >= c.template_overlap_pivot:
            return c.template_high_base + overlap * c.template_high_weight
        return overlap * c.template_low_weight

    def best_score(self, headers: Iterable[str], column: TargetColumn, profile: str = "") -> float:
        return max((self.score(h, column, profile) for h in headers), default=0.0)

    def best_template_score(self, headers: Iterable[str], column: TemplateColumnDef) -> float:
        return max((self.score_template(h, column) for h in headers), default=0.0)

    # ------------------------------------------------------------------
    # Greedy assignment
    # ------------------------------------------------------------------

    def assign(
        self,
        headers: List[str],
        column: TargetColumn,
        used_headers: Set[str],
        threshold: float,
        profile: str = "",
    ) -> Tuple[Optional[str], float]:
        """
        Pick the best unused header for one column.

        On acceptance the header is added to *used_headers*. Ties keep the
        earliest header; the returned score is the best seen even when rejected.
        """
        best_header: Optional[str] = None
        best = 0.0
        for header in headers:
            if header in used_headers:
                continue
            s = self.score(header, column, profile)
            if s > best:
                best, best_header = s, header
        if best_header is not None and self._cfg.clears(best, threshold):
            used_headers.add(best_header)
            return best_header, best
        return None, best

    def build_mappings(
        self,
        headers: List[str],
        columns: List[TargetColumn],
        profile: str = "",
        used_headers: Optional[Set[str]] = None,
    ) -> List[ColumnMapping]:
        """
        Greedy one-to-one mapping in schema order.

        Earlier columns win contested headers; there is no global optimisation.
        """
        used = used_headers if used_headers is not None else set()
        threshold = self._cfg.mapping_threshold(profile)
        mappings: List[ColumnMapping] = []
        for column in columns:
            header, s = self.assign(headers, column, used, threshold, profile)
            mappings.append(ColumnMapping(column=column, matched_header=header, confidence=s if header else 0.0))
        return mappings

    def build_template_mappings(
        self,
        headers: List[str],
        template: TemplateTableDef,
        columns: List[TargetColumn],
    ) -> List[ColumnMapping]:
        """
        Greedy mapping using the template scorer, translated onto *columns* by field key.

        Columns whose key is not part of the template stay unmapped.
        """
        used: Set[str] = set()
        by_key: Dict[str, Tuple[Optional[str], float]] = {}
        for tcol in template.columns:
            best_header: Optional[str] = None
            best = 0.0
            for header in headers:
                if header in used:
                    continue
                s = self.score_template(header, tcol)
                if s > best:
                    best, best_header = s, header
            if best_header is not None and self._cfg.clears(best, self._cfg.template_mapping_threshold):
                used.add(best_header)
                by_key[tcol.key] = (best_header, best)
            else:
                by_key[tcol.key] = (None, 0.0)

        mappings = []
        for column in columns:
            header, s = by_key.get(column.field_key, (None, 0.0))
            mappings.append(ColumnMapping(column=column, matched_header=header, confidence=s))
        return mappings

    @staticmethod
    def explicit_mappings(
        sheet: Sheet,
        columns: List[TargetColumn],
        explicit: Dict[str, Optional[str]],
    ) -> List[ColumnMapping]:
        """
        Caller-supplied ``field_key -> header`` mapping.

        Headers that are not on the sheet are discarded (unmapped, confidence 0).
        """
        valid = set(sheet.headers)
        mappings = []
        for column in columns:
            header = explicit.get(column.field_key)
            if header and header in valid:
                mappings.append(ColumnMapping(column=column, matched_header=header, confidence=1.0))
            else:
                if header:
                    logger.debug("Ignoring mapping %s -> %r: header not on sheet %r", column.field_key, header, sheet.name)
                mappings.append(ColumnMapping(column=column, matched_header=None, confidence=0.0))
        return mappings

    # ------------------------------------------------------------------
    # Permissive fallback
    # ------------------------------------------------------------------

    @staticmethod
    def permissive_mappings(headers: List[str], columns: List[TargetColumn]) -> List[ColumnMapping]:
        """
        Ignore scores: take the first header whose normalised text equals, contains,
        or is contained in the column's normalised key, label or derived key.

        Headers may repeat across columns here.
        """
        normalized = [(h, normalize_text(h)) for h in headers]
        mappings = []
        for column in columns:
            targets = {
                t for t in (
                    field_key_as_text(column.field_key),
                    normalize_text(column.label),
                    field_key_as_text(normalize_field_key(column.label)),
                ) if t
            }
            match: Optional[str] = None
            for header, h in normalized:
                if not h:
                    continue
                if any(h == t or t in h or h in t for t in targets):
                    match = header
                    break
            mappings.append(ColumnMapping(column=column, matched_header=match, confidence=0.0))
        return mappings
