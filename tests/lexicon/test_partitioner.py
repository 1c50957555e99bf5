import pathlib
import sys

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[2]
SRC_ROOT = PROJECT_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

import pytest

from lemma_dict.lexicon.aggregator import HeadwordEntry, HeadwordTable
from lemma_dict.lexicon.normalizer import classify
from lemma_dict.lexicon.partitioner import (
    LetterGroupScheme,
    assign,
    build_buckets,
    letter_range,
    partition,
    sample_bucket,
    single_bucket,
)


def _table(*entries):
    table = HeadwordTable()
    for headword, inflections in entries:
        table.merge(HeadwordEntry(headword, "noun", ["gloss"], inflections=inflections))
    table.freeze()
    return table


@pytest.fixture
def two_groups():
    return LetterGroupScheme.from_letters("test", [["Α", "Β"], ["Γ", "Δ"]])


def test_headword_is_copied_where_an_inflection_starts(two_groups):
    table = _table(("αγάπη", ["δαγαπημένος"]))

    assert partition(table, two_groups) == {1: {"αγάπη"}, 2: {"αγάπη"}}

    first, second = build_buckets(table, two_groups)
    assert first.primary == frozenset({"αγάπη"})
    assert second.primary == frozenset()
    assert second.summary()["secondary"] == 1


def test_every_headword_has_one_primary_group_and_stays_reachable():
    scheme = LetterGroupScheme.load("five")
    table = _table(
        ("άνθρωπος", ["ανθρώπου", "Άνθρωπε"]),
        ("ζωή", ["ζωής"]),
        ("λέω", ["είπα", "πω"]),
        ("ώρα", ["ώρες"]),
        ("φέρνω", ["έφερα", "φέρε"]),
    )
    assignment = assign(table, scheme)

    for headword in table:
        homes = [i for i, words in assignment.primary.items() if headword in words]
        assert len(homes) == 1

    buckets = partition(table, scheme)
    for headword in table:
        for form in table.inflections_of(headword):
            group = scheme.group_for(classify(form))
            assert headword in buckets[group.index]


def test_words_outside_the_alphabet_are_unplaced(two_groups):
    table = _table(("2ος", []), ("βάση", []))
    assignment = assign(table, two_groups)

    assert assignment.unplaced == ["2ος"]
    assert assignment.members(1) == {"βάση"}


def test_scheme_validation():
    with pytest.raises(ValueError):
        LetterGroupScheme.from_letters("overlap", [["Α", "Β"], ["Β", "Γ"]])
    with pytest.raises(ValueError):
        LetterGroupScheme.from_letters("gap", [["Α"], ["Γ"]], alphabet=["Α", "Β", "Γ"])
    with pytest.raises(ValueError):
        LetterGroupScheme.from_letters("empty", [])


def test_configured_schemes_cover_the_alphabet():
    five = LetterGroupScheme.load("five")
    twelve = LetterGroupScheme.load("twelve")

    assert len(five) == 5
    assert [group.label for group in five.groups] == ["Α-Ε", "Ζ-Κ", "Λ-Ο", "Π-Υ", "Φ-Ω"]
    assert len(twelve) == 12
    assert twelve.get(12).letters == ("Ψ", "Ω")
    with pytest.raises(ValueError):
        five.get(6)
    with pytest.raises(ValueError):
        LetterGroupScheme.load("nope")


def test_bucket_range_comes_from_primary_members(two_groups):
    table = _table(("αγάπη", ["δαγαπημένος"]), ("γάτα", []), ("δέντρο", []))
    second = build_buckets(table, two_groups, parts=[2])[0]

    assert second.headwords == ["αγάπη", "γάτα", "δέντρο"]
    assert second.letter_range == "Γ-Δ"
    assert letter_range(["ωμέγα", "άλφα", "..."]) == "Α-Ω"
    assert letter_range([]) == ""


def test_sample_and_single_buckets():
    table = _table(("γάτα", []), ("άλφα", []), ("βήτα", []))

    assert single_bucket(table).headwords == ["άλφα", "βήτα", "γάτα"]
    assert single_bucket(table).label == "all"
    assert sample_bucket(table, 50).headwords == ["άλφα", "βήτα"]
    assert sample_bucket(table, 100).headwords == ["άλφα", "βήτα", "γάτα"]
    assert sample_bucket(table, 10).label == "10pct"
