"""
Product records decoded from an Open Food Facts search response.

The API returns schema-less JSON: any field may be missing, null, or of the
wrong type. ProductRecord.from_api() is a total parser: every optional field
degrades to None (or an empty set of tags) instead of raising, so the
curation and scoring code never has to guard individual field lookups.

Field mapping (API key → attribute):
    code                                        → code
    product_name                                → product_name
    brands                                      → brands
    packaging                                   → packaging
    quantity                                    → quantity
    nutrition_grades                            → nutrition_grade
    ecoscore_grade                              → ecoscore_grade
    ecoscore_score                              → ecoscore_score
    carbon_footprint_100g                       → carbon_footprint_100g
    ecoscore_data.agribalyse.co2_total          → co2_total
    ecoscore_data.adjustments.packaging.score   → packaging_score
    countries_tags                              → countries_tags
    image_front_small_url / image_front_url     → image_url
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Field coercion helpers
# ---------------------------------------------------------------------------

def _as_text(value: Any) -> Optional[str]:
    """Return a stripped string, or None for non-strings and blank strings."""
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def _as_name(value: Any) -> Optional[str]:
    """Like _as_text, but a non-blank name is kept exactly as sent."""
    if _as_text(value) is None:
        return None
    return value


def _as_number(value: Any) -> Optional[float]:
    """
    Return a finite float for int/float values, otherwise None.

    Booleans are rejected even though bool subclasses int; a JSON `true`
    is not a score. Numeric strings are rejected too: the search filter
    only ever accepted real JSON numbers.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    value = float(value)
    if not math.isfinite(value):
        return None
    return value


def _nested(data: Dict, *keys: str) -> Any:
    """Walk nested dicts, returning None as soon as a level is missing or not a dict."""
    current: Any = data
    for key in keys:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def _as_tags(value: Any) -> FrozenSet[str]:
    if not isinstance(value, (list, tuple, set, frozenset)):
        return frozenset()
    return frozenset(tag.strip() for tag in value if isinstance(tag, str) and tag.strip())


# ---------------------------------------------------------------------------
# Record
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProductRecord:
    """One product from the search API. Read-only; absence of a field is None."""

    code: str = ''
    product_name: Optional[str] = None
    brands: Optional[str] = None
    packaging: Optional[str] = None
    quantity: Optional[str] = None
    nutrition_grade: Optional[str] = None
    ecoscore_grade: Optional[str] = None
    ecoscore_score: Optional[float] = None
    carbon_footprint_100g: Optional[float] = None
    co2_total: Optional[float] = None
    packaging_score: Optional[float] = None
    countries_tags: FrozenSet[str] = field(default_factory=frozenset)
    image_url: Optional[str] = None

    @classmethod
    def from_api(cls, data: Any) -> 'ProductRecord':
        """Build a record from one decoded API product dict. Never raises."""
        if not isinstance(data, dict):
            logger.debug("Ignoring non-dict product entry of type %s", type(data).__name__)
            return cls()

        code = data.get('code')
        if isinstance(code, (int, float)) and not isinstance(code, bool):
            code = str(code)

        image_url = _as_text(data.get('image_front_small_url')) or _as_text(data.get('image_front_url'))

        return cls(
            code=_as_text(code) or '',
            product_name=_as_name(data.get('product_name')),
            brands=_as_text(data.get('brands')),
            packaging=_as_text(data.get('packaging')),
            quantity=_as_text(data.get('quantity')),
            nutrition_grade=_as_text(data.get('nutrition_grades')),
            ecoscore_grade=_as_text(data.get('ecoscore_grade')),
            ecoscore_score=_as_number(data.get('ecoscore_score')),
            carbon_footprint_100g=_as_number(data.get('carbon_footprint_100g')),
            co2_total=_as_number(_nested(data, 'ecoscore_data', 'agribalyse', 'co2_total')),
            packaging_score=_as_number(
                _nested(data, 'ecoscore_data', 'adjustments', 'packaging', 'score')
            ),
            countries_tags=_as_tags(data.get('countries_tags')),
            image_url=image_url,
        )

    @property
    def primary_brand(self) -> str:
        """First brand of a comma-separated brands string ('' when unknown)."""
        if not self.brands:
            return ''
        return self.brands.split(',')[0].strip()


def parse_search_response(payload: Any) -> List[ProductRecord]:
    """
    Turn a decoded search response ({"products": [...]}) into records.

    A payload without a products list (error body, unexpected shape) yields
    an empty list, which the curator turns into "no results".
    """
    products = payload.get('products') if isinstance(payload, dict) else None
    if not isinstance(products, list):
        logger.debug("Search response has no products list; treating as empty")
        return []
    return [ProductRecord.from_api(item) for item in products]
