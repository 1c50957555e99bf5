import pathlib
import sys

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[2]
SRC_ROOT = PROJECT_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

import pytest

from lemma_dict.lexicon.paradigms import ParadigmTable


@pytest.fixture(scope="module")
def paradigms() -> ParadigmTable:
    return ParadigmTable.load()


def test_masculine_os_declension(paradigms):
    assert paradigms.expand("δρόμος", "el-nM-ος-οι") == [
        "δρόμος",
        "δρόμου",
        "δρόμο",
        "δρόμε",
        "δρόμοι",
        "δρόμων",
        "δρόμους",
    ]


def test_stressed_ending_picks_the_matching_rule(paradigms):
    forms = paradigms.expand("ουρανός", "el-nM-ος-οι")
    assert forms[:2] == ["ουρανός", "ουρανού"]
    assert "ουρανοί" in forms


def test_numbered_template_resolves_to_base_pattern(paradigms):
    assert paradigms.resolve("el-nF-η-ες-2b") == "el-nF-η-ες"
    assert paradigms.is_declension_template("el-nM-ος-οι-1")
    assert "αγάπες" in paradigms.expand("αγάπη", "el-nF-η-ες-1")


def test_unknown_names_and_unfit_lemmas_yield_nothing(paradigms):
    assert not paradigms.is_declension_template("el-noun")
    assert not paradigms.is_declension_template(None)
    assert paradigms.expand("δρόμος", "el-noun") == []
    assert paradigms.expand("αγάπη", "el-nM-ος-οι") == []
    assert paradigms.expand("", "el-nM-ος-οι") == []


def test_from_mapping_drops_rules_without_suffixes():
    table = ParadigmTable.from_mapping(
        {
            "empty": [{"strip": "ος", "append": []}],
            "tiny": [{"strip": "α", "append": ["α", "ες"]}],
        }
    )
    assert not table.is_declension_template("empty")
    assert table.expand("ώρα", "tiny") == ["ώρα", "ώρες"]
