"""
Result-curation pipeline for food-product search results.

Pipeline (one-way, no state kept between calls):
    raw records → filter → dedupe → score → sort → truncate

Filtering:
    - Keep records with a display name, the configured country tag, and at
      least one numeric sustainability figure (Eco-Score number or carbon
      footprint per 100g)

Deduplication:
    - Name-identity dedup: names are normalized (lowercase, punctuation
      stripped, filler words / units / packaging words removed) and the FIRST
      record per normalized key survives
    - Names that are merely similar are NOT merged by default: a fuzzy merge
      of "Peanut Butter" and "Peanut Butter Cups" would hide a distinct product.
      dedupe_similar() is the opt-in similarity-threshold variant

Ranking:
    - Descending by aggregate sustainability score; unavailable (-1) sorts last
    - Tie-break policy is chosen by the caller:
        * TIE_BREAK_STABLE:  keep the API's relative order
        * TIE_BREAK_QUALITY: prefer more complete records (quality score 0-9)
    - The score itself is pluggable (score_fn); the older "rank by record
      completeness" behavior is score_fn=quality_score

Observability:
    - Optional trace(stage, records) hook, called after every stage
    - Module logger at DEBUG level; nothing is printed
"""

import logging
import re
from functools import lru_cache
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Union

from rapidfuzz import process
from rapidfuzz.distance import Levenshtein

from ecochoice.records import ProductRecord
from ecochoice.sustainability import aggregate_sort_key

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
DEFAULT_COUNTRY_TAG = "en:singapore"
DEFAULT_RESULT_CAP = 15
DEFAULT_FUZZY_THRESHOLD = 0.9   # Similarity ratio (0-1) for dedupe_similar()

TIE_BREAK_STABLE = "stable"     # Equal scores keep input order
TIE_BREAK_QUALITY = "quality"   # Equal scores → higher quality score first
TIE_BREAK_POLICIES = (TIE_BREAK_STABLE, TIE_BREAK_QUALITY)

STAGE_RECEIVED = "received"
STAGE_FILTERED = "filtered"
STAGE_DEDUPED = "deduped"
STAGE_RANKED = "ranked"
STAGE_TRUNCATED = "truncated"

# Quality score weights, independent presence checks, max 9
QUALITY_IMAGE = 2
QUALITY_ECO_GRADE = 2
QUALITY_NUTRITION_GRADE = 2
QUALITY_CARBON_100G = 1
QUALITY_LONG_NAME = 1
QUALITY_BRAND = 1
LONG_NAME_MIN_CHARS = 11        # "longer than 10 characters"

RecordLike = Union[ProductRecord, dict]
TraceHook = Callable[[str, List[ProductRecord]], None]


# ---------------------------------------------------------------------------
# String normalization
# ---------------------------------------------------------------------------

_NON_ALNUM = re.compile(r'[^\w\s]|_')
_WHITESPACE = re.compile(r'\s+')
_FILLER_WORDS = re.compile(r'\b(?:original|classic|traditional|regular)\b')
_UNIT_TOKENS = re.compile(r'\b\d+\s*(?:g|kg|ml|l|oz|lb)\b')
_PACKAGING_WORDS = re.compile(r'\b(?:pack|jar|bottle|can|box)\b')


@lru_cache(maxsize=50000)
def normalize(name: Optional[str]) -> str:
    """
    Normalize a product name into its dedup key.

    Steps:
        1. Lowercase
        2. Strip everything that is not a letter, digit or whitespace
        3. Collapse whitespace
        4. Remove filler words: original, classic, traditional, regular
        5. Remove quantities: "500g", "1 kg", "330ml", "2l", "16oz", "1lb"
        6. Remove packaging words: pack, jar, bottle, can, box
        7. Collapse again and trim

    "Original Peanut Butter 500g Jar" → "peanut butter".
    Missing or empty names normalize to "" (all nameless records share one key).
    """
    if not isinstance(name, str):
        return ""

    s = name.lower()
    s = _NON_ALNUM.sub('', s)
    s = _WHITESPACE.sub(' ', s)
    s = _FILLER_WORDS.sub('', s)
    s = _UNIT_TOKENS.sub('', s)
    s = _PACKAGING_WORDS.sub('', s)
    # Removing an inner word leaves a double space behind
    s = _WHITESPACE.sub(' ', s).strip()

    return s


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance (insert / delete / substitute, cost 1 each)."""
    rows, cols = len(a) + 1, len(b) + 1
    table = [[0] * cols for _ in range(rows)]
    for i in range(rows):
        table[i][0] = i
    for j in range(cols):
        table[0][j] = j

    for i in range(1, rows):
        for j in range(1, cols):
            cost = 0 if a[i - 1] == b[j - 1] else 1
            table[i][j] = min(
                table[i - 1][j] + 1,         # deletion
                table[i][j - 1] + 1,         # insertion
                table[i - 1][j - 1] + cost,  # substitution
            )
    return table[-1][-1]


def similarity(a: str, b: str) -> float:
    """
    Similarity ratio in [0, 1]: (L - edit_distance) / L, L = the longer length.

    Two empty strings are identical, so they score 1.0 rather than dividing by zero.
    """
    if not a and not b:
        return 1.0
    longer, shorter = (a, b) if len(a) >= len(b) else (b, a)
    length = len(longer)
    return (length - edit_distance(longer, shorter)) / length


# ---------------------------------------------------------------------------
# Quality score
# ---------------------------------------------------------------------------

def quality_score(record: ProductRecord) -> int:
    """
    Heuristic completeness score (0-9) for one record.

    Each check is independent, so adding a field never lowers the score:
        image URL +2, Eco-Score grade +2, Nutri-Score grade +2,
        carbon footprint per 100g present (0 counts) +1,
        name longer than 10 characters +1, brand +1
    """
    score = 0
    if record.image_url:
        score += QUALITY_IMAGE
    if record.ecoscore_grade:
        score += QUALITY_ECO_GRADE
    if record.nutrition_grade:
        score += QUALITY_NUTRITION_GRADE
    if record.carbon_footprint_100g is not None:
        score += QUALITY_CARBON_100G
    if record.product_name and len(record.product_name) >= LONG_NAME_MIN_CHARS:
        score += QUALITY_LONG_NAME
    if record.brands:
        score += QUALITY_BRAND
    return score


# ---------------------------------------------------------------------------
# Deduplication
# ---------------------------------------------------------------------------

def dedupe(records: Iterable[ProductRecord], collapse_unnamed: bool = True) -> List[ProductRecord]:
    """
    Keep the first record per normalized name, preserving input order.

    With collapse_unnamed=True every record whose name normalizes to ""
    (missing name, or a name made only of stripped tokens like "Original 500g")
    collapses into the first of them. Pass False to keep each of them.
    """
    seen = set()
    kept = []
    for record in records:
        key = normalize(record.product_name)
        if key in seen and (key or collapse_unnamed):
            logger.debug("Dropping duplicate %r (key %r)", record.code, key)
            continue
        seen.add(key)
        kept.append(record)
    return kept


def dedupe_similar(
    records: Iterable[ProductRecord],
    threshold: float = DEFAULT_FUZZY_THRESHOLD,
    collapse_unnamed: bool = True,
) -> List[ProductRecord]:
    """
    Name-identity dedup plus a similarity-threshold merge.

    A record is also dropped when its normalized name scores >= threshold
    against any already-kept name. rapidfuzz's normalized Levenshtein
    similarity is the same ratio as similarity(), just vectorized.

    Opt-in only: near names can be genuinely different products.
    """
    if not 0 <= threshold <= 1:
        raise ValueError(f"threshold must be between 0 and 1, got {threshold!r}")

    seen = set()
    kept_keys: List[str] = []
    kept = []
    for record in records:
        key = normalize(record.product_name)
        if key in seen and (key or collapse_unnamed):
            logger.debug("Dropping duplicate %r (key %r)", record.code, key)
            continue
        if key and kept_keys:
            hit = process.extractOne(
                key,
                kept_keys,
                scorer=Levenshtein.normalized_similarity,
                processor=None,
                score_cutoff=threshold,
            )
            if hit is not None:
                logger.debug("Dropping near-duplicate %r: %r ~ %r (%.2f)",
                             record.code, key, hit[0], hit[1])
                continue
        seen.add(key)
        if key:
            kept_keys.append(key)
        kept.append(record)
    return kept


# ---------------------------------------------------------------------------
# Filtering and ranking
# ---------------------------------------------------------------------------

def is_eligible(record: ProductRecord, country_filter: str = DEFAULT_COUNTRY_TAG) -> bool:
    """Named, sold in the filtered country, and carrying at least one numeric figure."""
    return bool(
        record.product_name
        and country_filter in record.countries_tags
        and (record.ecoscore_score is not None or record.carbon_footprint_100g is not None)
    )


def rank(
    records: Sequence[ProductRecord],
    tie_break: str = TIE_BREAK_STABLE,
    score_fn: Optional[Callable[[ProductRecord], float]] = None,
) -> List[ProductRecord]:
    """Sort descending by score_fn (default: aggregate sustainability score)."""
    _check_tie_break(tie_break)
    score_fn = score_fn or aggregate_sort_key

    if tie_break == TIE_BREAK_QUALITY:
        return sorted(records, key=lambda r: (-score_fn(r), -quality_score(r)))
    # sorted() is stable, equal scores keep their relative input order
    return sorted(records, key=lambda r: -score_fn(r))


def _check_tie_break(tie_break: str) -> None:
    if tie_break not in TIE_BREAK_POLICIES:
        raise ValueError(f"Unknown tie-break policy {tie_break!r}; expected one of {TIE_BREAK_POLICIES}")


def _as_record(item: RecordLike) -> ProductRecord:
    if isinstance(item, ProductRecord):
        return item
    return ProductRecord.from_api(item)


# ---------------------------------------------------------------------------
# Curation entry point
# ---------------------------------------------------------------------------

def curate(
    raw: Optional[Iterable[RecordLike]],
    country_filter: str = DEFAULT_COUNTRY_TAG,
    cap: int = DEFAULT_RESULT_CAP,
    tie_break: str = TIE_BREAK_STABLE,
    score_fn: Optional[Callable[[ProductRecord], float]] = None,
    dedupe_fn: Optional[Callable[[List[ProductRecord]], List[ProductRecord]]] = None,
    trace: Optional[TraceHook] = None,
) -> List[ProductRecord]:
    """
    Turn a raw search response into the list shown to the user.

    Args:
        raw: products from the search API, ProductRecord instances or the
             decoded JSON dicts. None or empty → empty result.
        country_filter: countries_tags value a product must carry (e.g. "en:singapore")
        cap: maximum number of results returned
        tie_break: TIE_BREAK_STABLE or TIE_BREAK_QUALITY
        score_fn: ranking score (higher first); default aggregate sustainability
                  score with unavailable = -1
        dedupe_fn: dedup strategy; default dedupe() (name identity)
        trace: optional callable(stage, records) invoked after every stage

    Returns:
        New list of at most `cap` records, deduplicated and ranked. The input
        is never mutated and nothing is cached between calls.

    Raises:
        ValueError: negative or non-integer cap, unknown tie-break policy.
    """
    if isinstance(cap, bool) or not isinstance(cap, int) or cap < 0:
        raise ValueError(f"cap must be a non-negative integer, got {cap!r}")
    _check_tie_break(tie_break)
    dedupe_fn = dedupe_fn or dedupe

    records = [_as_record(item) for item in (raw or [])]
    _emit(trace, STAGE_RECEIVED, records)

    eligible = [r for r in records if is_eligible(r, country_filter)]
    _emit(trace, STAGE_FILTERED, eligible)

    unique = dedupe_fn(eligible)
    _emit(trace, STAGE_DEDUPED, unique)

    ranked = rank(unique, tie_break=tie_break, score_fn=score_fn)
    _emit(trace, STAGE_RANKED, ranked)

    result = ranked[:cap]
    _emit(trace, STAGE_TRUNCATED, result)

    logger.debug(
        "Curated %d → %d eligible → %d unique → %d returned (country=%s, cap=%d, tie_break=%s)",
        len(records), len(eligible), len(unique), len(result), country_filter, cap, tie_break,
    )
    return result


def _emit(trace: Optional[TraceHook], stage: str, records: List[ProductRecord]) -> None:
    if trace is not None:
        trace(stage, list(records))


class StageCounter:
    """
    Trace hook that records how many records survived each stage.

        counter = StageCounter()
        curate(products, trace=counter)
        counter.counts  # {'received': 50, 'filtered': 31, 'deduped': 22, ...}
    """

    def __init__(self):
        self.counts: Dict[str, int] = {}

    def __call__(self, stage: str, records: List[ProductRecord]) -> None:
        self.counts[stage] = len(records)

    def get(self, stage: str) -> int:
        return self.counts.get(stage, 0)
