import pytest

from ecochoice.curation import dedupe, dedupe_similar, normalize


def _codes(records):
    return [r.code for r in records]


def test_peanut_butter_variants_collapse_to_first(make_record):
    records = [
        make_record(code='1', name='Original Peanut Butter 500g Jar'),
        make_record(code='2', name='Peanut Butter'),
    ]
    assert _codes(dedupe(records)) == ['1']


def test_keeps_first_seen_order(make_record):
    records = [
        make_record(code='1', name='Apple Juice'),
        make_record(code='2', name='Banana Chips'),
        make_record(code='3', name='apple juice 1l'),
        make_record(code='4', name='Cherry Jam'),
        make_record(code='5', name='Banana Chips Original'),
    ]
    assert _codes(dedupe(records)) == ['1', '2', '4']


def test_dedupe_is_idempotent(make_record):
    records = [
        make_record(code=str(i), name=name)
        for i, name in enumerate(['Kaya Spread', 'kaya spread 250g', 'Milo', 'MILO Pack', 'Oat Milk'])
    ]
    once = dedupe(records)
    assert dedupe(once) == once


def test_dedupe_does_not_mutate_input(make_record):
    records = [make_record(code='1', name='Milo'), make_record(code='2', name='Milo')]
    snapshot = list(records)
    dedupe(records)
    assert records == snapshot


def test_identifier_is_not_the_identity(make_record):
    records = [make_record(code='same', name='Oat Milk'), make_record(code='same', name='Soy Milk')]
    assert len(dedupe(records)) == 2


def test_similar_names_are_not_merged(make_record):
    records = [
        make_record(code='1', name='Peanut Butter'),
        make_record(code='2', name='Peanut Butter Cups'),
        make_record(code='3', name='Peanut Butter Crunchy'),
        make_record(code='4', name='Peanut Butter Crunchie'),
    ]
    assert _codes(dedupe(records)) == ['1', '2', '3', '4']


def test_unnamed_records_collapse_by_default(make_record):
    records = [
        make_record(code='1', name=None),
        make_record(code='2', name=''),
        make_record(code='3', name='Original 500g'),
        make_record(code='4', name='Milk'),
    ]
    assert normalize(records[2].product_name) == ''
    assert _codes(dedupe(records)) == ['1', '4']


def test_unnamed_records_kept_when_not_collapsing(make_record):
    records = [
        make_record(code='1', name=None),
        make_record(code='2', name=''),
        make_record(code='3', name='Milk'),
        make_record(code='4', name='milk'),
    ]
    assert _codes(dedupe(records, collapse_unnamed=False)) == ['1', '2', '3']


def test_empty_input():
    assert dedupe([]) == []
    assert dedupe_similar([]) == []


def test_dedupe_similar_merges_near_names(make_record):
    records = [
        make_record(code='1', name='Peanut Butter Crunchy'),
        make_record(code='2', name='Peanut Butter Crunchie'),
        make_record(code='3', name='Strawberry Jam'),
    ]
    assert _codes(dedupe_similar(records, threshold=0.9)) == ['1', '3']


def test_dedupe_similar_also_drops_exact_duplicates(make_record):
    records = [make_record(code='1', name='Milo 1kg'), make_record(code='2', name='MILO')]
    assert _codes(dedupe_similar(records)) == ['1']


def test_dedupe_similar_threshold_one_equals_identity_dedup(make_record):
    records = [
        make_record(code='1', name='Peanut Butter Crunchy'),
        make_record(code='2', name='Peanut Butter Crunchie'),
        make_record(code='3', name='peanut butter crunchy 340g'),
    ]
    assert dedupe_similar(records, threshold=1.0) == dedupe(records)


@pytest.mark.parametrize("threshold", [-0.1, 1.5])
def test_dedupe_similar_rejects_bad_threshold(make_record, threshold):
    with pytest.raises(ValueError):
        dedupe_similar([make_record()], threshold=threshold)
