import math

import pytest

from ecochoice.curation import quality_score
from ecochoice.records import ProductRecord, parse_search_response


def test_from_api_maps_every_field(complete_product):
    record = ProductRecord.from_api(complete_product)

    assert record.code == '8888'
    assert record.product_name == 'Organic Peanut Butter Smooth'
    assert record.brands == 'Skippy, Unilever'
    assert record.packaging == 'Glass jar'
    assert record.quantity == '500 g'
    assert record.nutrition_grade == 'c'
    assert record.ecoscore_grade == 'a'
    assert record.ecoscore_score == 90.0
    assert record.carbon_footprint_100g == 0.0
    assert record.co2_total == 0.5
    assert record.packaging_score == 80.0
    assert record.countries_tags == frozenset({'en:singapore'})
    assert record.image_url == 'https://images.example/8888.jpg'


def test_from_api_tolerates_empty_dict():
    record = ProductRecord.from_api({})
    assert record == ProductRecord()
    assert record.code == ''
    assert record.product_name is None
    assert record.countries_tags == frozenset()


@pytest.mark.parametrize("payload", [None, [], "product", 42])
def test_from_api_non_dict_becomes_empty_record(payload):
    assert ProductRecord.from_api(payload) == ProductRecord()


@pytest.mark.parametrize("value", [True, False, "55", "", [], {}, float('nan'), float('inf')])
def test_non_numeric_scores_are_unavailable(value):
    record = ProductRecord.from_api({'ecoscore_score': value, 'carbon_footprint_100g': value})
    assert record.ecoscore_score is None
    assert record.carbon_footprint_100g is None


def test_integer_scores_become_floats():
    record = ProductRecord.from_api({'ecoscore_score': 42})
    assert record.ecoscore_score == 42.0
    assert isinstance(record.ecoscore_score, float)
    assert not math.isnan(record.ecoscore_score)


@pytest.mark.parametrize("ecoscore_data", [
    "not a dict",
    {'agribalyse': 'broken', 'adjustments': None},
    {'agribalyse': {}, 'adjustments': {'packaging': 'x'}},
    {'agribalyse': {'co2_total': 'high'}, 'adjustments': {'packaging': {'score': None}}},
])
def test_malformed_nested_breakdown_degrades_to_none(ecoscore_data):
    record = ProductRecord.from_api({'ecoscore_data': ecoscore_data})
    assert record.co2_total is None
    assert record.packaging_score is None


def test_countries_tags_ignores_non_strings():
    record = ProductRecord.from_api({'countries_tags': ['en:singapore', None, 3, ' en:france ', '']})
    assert record.countries_tags == frozenset({'en:singapore', 'en:france'})


def test_countries_tags_not_a_list():
    assert ProductRecord.from_api({'countries_tags': 'en:singapore'}).countries_tags == frozenset()


def test_blank_text_fields_are_none():
    record = ProductRecord.from_api({'product_name': '   ', 'brands': '', 'nutrition_grades': 7})
    assert record.product_name is None
    assert record.brands is None
    assert record.nutrition_grade is None


def test_numeric_code_is_stringified():
    assert ProductRecord.from_api({'code': 5012345678900}).code == '5012345678900'


def test_image_falls_back_to_full_size_url():
    record = ProductRecord.from_api({'image_front_url': 'https://images.example/full.jpg'})
    assert record.image_url == 'https://images.example/full.jpg'


@pytest.mark.parametrize("brands, expected", [
    ('Skippy, Unilever', 'Skippy'),
    ('Milo', 'Milo'),
    (None, ''),
])
def test_primary_brand(brands, expected):
    assert ProductRecord(brands=brands).primary_brand == expected


def test_parse_search_response(make_product):
    payload = {'count': 2, 'products': [make_product(code='1'), make_product(code='2')]}
    records = parse_search_response(payload)
    assert [r.code for r in records] == ['1', '2']
    assert all(isinstance(r, ProductRecord) for r in records)


@pytest.mark.parametrize("payload", [None, {}, {'products': None}, {'products': 'oops'}, [{'code': '1'}]])
def test_parse_search_response_without_products_is_empty(payload):
    assert parse_search_response(payload) == []


def test_product_name_keeps_its_raw_length():
    record = ProductRecord.from_api({'product_name': ' Oat Drink '})
    assert record.product_name == ' Oat Drink '
    assert quality_score(record) == 1
    assert quality_score(ProductRecord.from_api({'product_name': 'Oat Drink'})) == 0
