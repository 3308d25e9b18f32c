"""
Thresholds for column matching and sheet selection.
"""

from __future__ import annotations

from dataclasses import dataclass

# Profile name of the recognised certificate document family
CERTIFICADO_PROFILE = "certificado"


@dataclass(frozen=True)
class MatchConfig:
    """Immutable bag of scoring constants shared by the matcher and the sheet selector."""

    # Exact-match tiers
    exact_label_score: float = 1.0
    exact_key_score: float = 0.95

    # Generic keyword scorer: min(cap, matches / keywords * cap)
    keyword_score_cap: float = 0.9

    # Template scorer: overlap >= pivot -> base + overlap*high_weight, else overlap*low_weight
    template_overlap_pivot: float = 0.6
    template_high_base: float = 0.7
    template_high_weight: float = 0.2
    template_low_weight: float = 0.6

    # Profile keyword bags add this much, capped at 1.0
    profile_boost: float = 0.2

    # Greedy mapping / generic sheet acceptance
    generic_threshold: float = 0.15
    profile_threshold: float = 0.08

    # Template tables
    template_mapping_threshold: float = 0.15
    template_sheet_min_score: float = 0.2

    # Averages of thirds land a hair under their exact value (0.6 / 3 < 0.2)
    score_tolerance: float = 1e-9

    def mapping_threshold(self, profile: str = "") -> float:
        """Threshold used for greedy mapping and generic sheet acceptance under *profile*."""
        return self.profile_threshold if profile == CERTIFICADO_PROFILE else self.generic_threshold

    def clears(self, score: float, threshold: float) -> bool:
        """True when *score* reaches *threshold*, ignoring float rounding."""
        return score >= threshold - self.score_tolerance


DEFAULT_MATCH_CONFIG = MatchConfig()
