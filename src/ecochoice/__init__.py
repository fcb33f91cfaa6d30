"""Curation and sustainability scoring for Open Food Facts search results."""

from ecochoice.curation import curate, dedupe, normalize, quality_score
from ecochoice.records import ProductRecord, parse_search_response
from ecochoice.sustainability import SustainabilityAssessment, assess

__version__ = "0.1.0"

__all__ = [
    "ProductRecord",
    "SustainabilityAssessment",
    "assess",
    "curate",
    "dedupe",
    "normalize",
    "parse_search_response",
    "quality_score",
]
