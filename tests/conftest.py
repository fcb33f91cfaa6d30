"""Shared fixtures: builders for Open Food Facts product dicts and records."""

import sys
from pathlib import Path

import pytest


def ensure_src_on_path() -> None:
    root = Path(__file__).resolve().parent.parent
    src_path = root / "src"
    if str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))


ensure_src_on_path()

from ecochoice.records import ProductRecord  # noqa: E402


def build_product(
    code='001',
    name='Peanut Butter',
    eco=70,
    co2=None,
    packaging_score=None,
    countries=('en:singapore',),
    **extra,
):
    """API-shaped product dict; eco/co2/packaging_score=None leaves the field out."""
    data = {'code': code, 'product_name': name, 'countries_tags': list(countries)}
    if eco is not None:
        data['ecoscore_score'] = eco
    ecoscore_data = {}
    if co2 is not None:
        ecoscore_data['agribalyse'] = {'co2_total': co2}
    if packaging_score is not None:
        ecoscore_data['adjustments'] = {'packaging': {'score': packaging_score}}
    if ecoscore_data:
        data['ecoscore_data'] = ecoscore_data
    data.update(extra)
    return data


@pytest.fixture
def make_product():
    return build_product


@pytest.fixture
def make_record():
    def _make(**kwargs):
        return ProductRecord.from_api(build_product(**kwargs))
    return _make


@pytest.fixture
def complete_product():
    """A product with every field the scorers look at."""
    return build_product(
        code='8888',
        name='Organic Peanut Butter Smooth',
        eco=90,
        co2=0.5,
        packaging_score=80,
        brands='Skippy, Unilever',
        nutrition_grades='c',
        ecoscore_grade='a',
        carbon_footprint_100g=0,
        image_front_small_url='https://images.example/8888.jpg',
        packaging='Glass jar',
        quantity='500 g',
    )
