"""
Tabular views of curated results for review and Excel export.
"""

import io
from typing import Dict, Optional, Sequence

import pandas as pd

from ecochoice.curation import (
    StageCounter,
    quality_score,
    STAGE_RECEIVED,
    STAGE_FILTERED,
    STAGE_DEDUPED,
    STAGE_TRUNCATED,
)
from ecochoice.records import ProductRecord
from ecochoice.sustainability import assess

RESULT_COLUMNS = [
    'rank', 'code', 'product_name', 'brand', 'ecoscore_grade', 'nutrition_grade',
    'eco_score', 'carbon_score', 'packaging_score', 'aggregate_score',
    'quality_score', 'ring_color',
]


def results_frame(records: Sequence[ProductRecord]) -> pd.DataFrame:
    """One row per record, in the given order, with its scores attached."""
    rows = []
    for position, record in enumerate(records, 1):
        assessment = assess(record)
        rows.append({
            'rank': position,
            'code': record.code,
            'product_name': record.product_name or '',
            'brand': record.primary_brand,
            'ecoscore_grade': (record.ecoscore_grade or '').upper(),
            'nutrition_grade': (record.nutrition_grade or '').upper(),
            'eco_score': assessment.eco_score,
            'carbon_score': assessment.carbon_score,
            'packaging_score': assessment.packaging_score,
            'aggregate_score': assessment.aggregate_score,
            'quality_score': quality_score(record),
            'ring_color': assessment.ring_color,
        })
    return pd.DataFrame(rows, columns=RESULT_COLUMNS)


def curation_summary(counter: StageCounter, cap: int) -> Dict[str, float]:
    """
    Summarize one curate() run from its StageCounter.

    Returns a dict with:
        received / eligible / unique / returned: record counts per stage
        filtered_out: records failing the name / country / metric filter
        duplicates_removed: eligible records merged away by dedup
        truncated: unique records cut by the cap
        eligible_rate: eligible / received, in percent
    """
    received = counter.get(STAGE_RECEIVED)
    eligible = counter.get(STAGE_FILTERED)
    unique = counter.get(STAGE_DEDUPED)
    returned = counter.get(STAGE_TRUNCATED)

    return {
        'received': received,
        'eligible': eligible,
        'unique': unique,
        'returned': returned,
        'cap': cap,
        'filtered_out': received - eligible,
        'duplicates_removed': eligible - unique,
        'truncated': unique - returned,
        'eligible_rate': round(eligible / received * 100, 1) if received else 0.0,
    }


def export_excel(records: Sequence[ProductRecord], summary: Optional[Dict] = None) -> bytes:
    """Write the curated results (and optionally the run summary) to an .xlsx workbook."""
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine='openpyxl') as writer:
        results_frame(records).to_excel(writer, sheet_name='Curated Results', index=False)
        if summary:
            summary_df = pd.DataFrame(
                [{'metric': key, 'value': value} for key, value in summary.items()]
            )
            summary_df.to_excel(writer, sheet_name='Summary', index=False)
    return output.getvalue()
