"""
Sustainability scoring engine for a single product.

Scoring Approach:
    - Three independent metrics, each on a 0-100 scale or unavailable (None):
        * Ecological: the Eco-Score number from the API, clamped to 0-100
        * Carbon:     linear penalty on kg CO2e/kg, 0 kg → 100, 10 kg → 0, clamped
        * Packaging:  the Eco-Score packaging adjustment score, clamped to 0-100
    - Aggregate = mean of the AVAILABLE metrics only (missing metrics are not zeros),
      rounded half-up to an integer. No metrics → None (sort key -1, ranks last)

Icon Counts (0-5 for the detail view):
    - Ecological and packaging: score / 20 (linear)
    - Carbon: discrete bands on the raw kg figure (<1, ≤3, ≤5, ≤10, else)
    - The two schemes are intentionally different; do not merge them

Band boundaries for descriptions and colors are part of the contract:
the wording is presentation and may change, the thresholds may not.
"""

import html
import math
from dataclasses import dataclass
from typing import Optional

from ecochoice.records import ProductRecord

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
CARBON_PENALTY_PER_KG = 10      # 100 - 10 * kg → 10 kg CO2e/kg scores zero
ICON_SCALE = 20                 # 0-100 score → 0-5 icons
MAX_ICONS = 5
UNAVAILABLE_SORT_KEY = -1       # Below every real aggregate (0-100)

NO_DATA = "No data available."
NO_OVERALL_DATA = "No overall sustainability data available."

RING_COLOR_NONE = '#ccc'
GRADE_COLOR_UNKNOWN = '#aaa'

# (minimum score, color), first match wins
RING_COLOR_BANDS = [
    (80, '#4CAF50'),  # Green
    (60, '#8BC34A'),  # Light green
    (40, '#FFC107'),  # Amber
    (20, '#FF9800'),  # Orange
]
RING_COLOR_FLOOR = '#F44336'  # Red

GRADE_COLORS = {
    'a+': '#1B5E20',  # Dark green
    'a': '#4CAF50',
    'b': '#8BC34A',
    'c': '#FFC107',
    'd': '#FF9800',
    'e': '#F44336',
}
# The API spells the top Eco-Score grade "a-plus"
GRADE_ALIASES = {'a-plus': 'a+'}

ECO_DESCRIPTIONS = [
    (80, "🌱 Excellent Eco-Score! This product has a low environmental impact."),
    (60, "🌿 Good Eco-Score. This product is fairly sustainable."),
]
ECO_DESCRIPTION_FLOOR = "🍂 Low Eco-Score. Consider more sustainable alternatives."

PACKAGING_DESCRIPTIONS = [
    (90, "♻️ Excellent! Packaging is highly recyclable and eco-friendly."),
    (70, "✅ Good! Packaging is mostly recyclable with minimal waste."),
    (50, "♻️ Moderate. Packaging is partially recyclable, but could be improved."),
    (30, "⚠️ Low. Packaging is mostly non-recyclable and generates waste."),
]
PACKAGING_DESCRIPTION_FLOOR = "🗑️ Poor. Packaging is not recyclable and has a high environmental impact."

OVERALL_DESCRIPTIONS = [
    (90, "🌟 Outstanding sustainability!"),
    (75, "✅ Very good sustainability."),
    (60, "👍 Good sustainability."),
    (40, "⚠️ Moderate sustainability. Could be improved."),
    (20, "❗ Low sustainability. Consider alternatives."),
]
OVERALL_DESCRIPTION_FLOOR = "🚫 Very low sustainability. Avoid if possible."


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))


def _band(value: float, bands, floor):
    for minimum, label in bands:
        if value >= minimum:
            return label
    return floor


# ---------------------------------------------------------------------------
# Per-metric scores
# ---------------------------------------------------------------------------

def _clamp_score(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    return max(0.0, min(100.0, value))


def eco_score(record: ProductRecord) -> Optional[float]:
    """Eco-Score number, clamped to 0-100."""
    return _clamp_score(record.ecoscore_score)


def carbon_score(record: ProductRecord) -> Optional[float]:
    """Linear penalty on co2_total: clamp(100 - 10 * kg, 0, 100)."""
    if record.co2_total is None:
        return None
    return _clamp_score(100 - CARBON_PENALTY_PER_KG * record.co2_total)


def packaging_score(record: ProductRecord) -> Optional[float]:
    """Packaging adjustment score, clamped to 0-100."""
    return _clamp_score(record.packaging_score)


def aggregate_score(record: ProductRecord) -> Optional[int]:
    """
    Mean of the available metric scores, rounded half-up.

    Unavailable metrics are skipped rather than counted as zero, so a product
    with only an Eco-Score of 70 aggregates to 70. Returns None when no
    metric is available.
    """
    values = [v for v in (eco_score(record), carbon_score(record), packaging_score(record))
              if v is not None]
    if not values:
        return None
    return round_half_up(sum(values) / len(values))


def aggregate_sort_key(record: ProductRecord) -> int:
    """Aggregate score for ranking; unavailable → -1 so it sorts below every real score."""
    score = aggregate_score(record)
    return UNAVAILABLE_SORT_KEY if score is None else score


# ---------------------------------------------------------------------------
# Icon counts
# ---------------------------------------------------------------------------

def linear_icon_count(score: Optional[float]) -> Optional[float]:
    """0-100 score → 0-5 icon count (unrounded). Used for eco and packaging."""
    if score is None:
        return None
    return score / ICON_SCALE


def carbon_icon_count(co2_total: Optional[float]) -> Optional[int]:
    """kg CO2e/kg → icons via discrete bands: <1 → 5, ≤3 → 4, ≤5 → 3, ≤10 → 2, else 1."""
    if co2_total is None:
        return None
    if co2_total < 1:
        return 5
    if co2_total <= 3:
        return 4
    if co2_total <= 5:
        return 3
    if co2_total <= 10:
        return 2
    return 1


def icon_display_count(count: Optional[float]) -> Optional[int]:
    """
    Number of icons actually drawn for a count.

    None means "N/A": missing, non-finite, or zero/negative counts. Anything
    else is rounded half-up and clamped to 0-5.
    """
    if count is None or not math.isfinite(count) or count <= 0:
        return None
    return max(0, min(MAX_ICONS, round_half_up(count)))


# ---------------------------------------------------------------------------
# Descriptions and colors
# ---------------------------------------------------------------------------

def describe_eco(score: Optional[float]) -> str:
    if score is None:
        return NO_DATA
    return _band(score, ECO_DESCRIPTIONS, ECO_DESCRIPTION_FLOOR)


def describe_carbon(co2_total: Optional[float]) -> str:
    """Carbon description bands on the raw kg figure; the two best bands quote it."""
    if co2_total is None:
        return NO_DATA
    if co2_total < 1:
        return (f"🌍 Excellent! With CO₂ emissions of {co2_total:.2f} kg CO₂e/kg, "
                "this product has a very low carbon footprint.")
    if co2_total <= 3:
        return (f"🌱 Good! With CO₂ emissions of {co2_total:.2f} kg CO₂e/kg, "
                "this product is relatively low in CO₂ emissions.")
    if co2_total <= 5:
        return "🍃 Moderate CO₂ emissions. Consider alternatives with lower impact!"
    if co2_total <= 10:
        return "🌿 High CO₂ emissions. Look for greener options."
    return "🌍 Very high CO₂ emissions. Avoid if possible."


def describe_packaging(score: Optional[float]) -> str:
    if score is None:
        return NO_DATA
    return _band(score, PACKAGING_DESCRIPTIONS, PACKAGING_DESCRIPTION_FLOOR)


def describe_overall(score: Optional[float]) -> str:
    if score is None:
        return NO_OVERALL_DATA
    return _band(score, OVERALL_DESCRIPTIONS, OVERALL_DESCRIPTION_FLOOR)


def ring_color(score: Optional[float]) -> str:
    """Severity color for an aggregate score (neutral gray when unavailable)."""
    if score is None:
        return RING_COLOR_NONE
    return _band(score, RING_COLOR_BANDS, RING_COLOR_FLOOR)


def grade_color(grade: Optional[str]) -> str:
    """Badge color for a raw A-E letter grade (A+ included). Unknown → gray."""
    if not isinstance(grade, str):
        return GRADE_COLOR_UNKNOWN
    key = grade.strip().lower()
    key = GRADE_ALIASES.get(key, key)
    return GRADE_COLORS.get(key, GRADE_COLOR_UNKNOWN)


def grade_badge(label: str, grade: Optional[str]) -> str:
    """HTML badge for a letter grade; only the color is trusted, the grade text is escaped."""
    text = html.escape((grade or '?').strip().upper())
    return (f"<span style='background:{grade_color(grade)};color:#fff;padding:2px 8px'>"
            f"{html.escape(label)}: {text}</span>")


# ---------------------------------------------------------------------------
# Assessment
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SustainabilityAssessment:
    """Derived, ephemeral view of one product. Recomputing it is idempotent."""

    eco_score: Optional[float]
    carbon_score: Optional[float]
    packaging_score: Optional[float]
    aggregate_score: Optional[int]
    co2_total: Optional[float]
    eco_icons: Optional[float]
    carbon_icons: Optional[int]
    packaging_icons: Optional[float]
    eco_description: str
    carbon_description: str
    packaging_description: str
    overall_description: str
    ring_color: str

    @property
    def sort_key(self) -> int:
        return UNAVAILABLE_SORT_KEY if self.aggregate_score is None else self.aggregate_score

    @property
    def is_available(self) -> bool:
        return self.aggregate_score is not None


def assess(record: ProductRecord) -> SustainabilityAssessment:
    """Compute the full sustainability assessment for one product."""
    eco = eco_score(record)
    carbon = carbon_score(record)
    packaging = packaging_score(record)
    overall = aggregate_score(record)

    return SustainabilityAssessment(
        eco_score=eco,
        carbon_score=carbon,
        packaging_score=packaging,
        aggregate_score=overall,
        co2_total=record.co2_total,
        eco_icons=linear_icon_count(eco),
        carbon_icons=carbon_icon_count(record.co2_total),
        packaging_icons=linear_icon_count(packaging),
        eco_description=describe_eco(eco),
        carbon_description=describe_carbon(record.co2_total),
        packaging_description=describe_packaging(packaging),
        overall_description=describe_overall(overall),
        ring_color=ring_color(overall),
    )
