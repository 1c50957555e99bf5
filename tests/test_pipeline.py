import json
import pathlib
import sys

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC_ROOT = PROJECT_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

import pytest

import lemma_dict.render.converter as converter_module
from lemma_dict.common.config import BuildSettings
from lemma_dict.pipeline import build, plan_buckets, run_aggregation
from lemma_dict.render.converter import STATUS_FAILED, STATUS_OK

RECORDS = [
    {"word": "αγάπη", "pos": "noun", "senses": [{"glosses": ["love"]}], "meta": {"extracted": "2025-07-01"}},
    {"word": "λέω", "pos": "verb", "senses": [{"glosses": ["to say"]}], "forms": ["είπα", "πω"]},
    {"word": "είπα", "pos": "verb", "senses": [{"form_of": [{"word": "λέω"}]}]},
    {"word": "ζωή", "pos": "noun", "senses": [{"glosses": ["life"]}]},
    {"word": "πόλη", "pos": "noun", "senses": [{"glosses": ["city"]}]},
    {"word": "φως", "pos": "noun", "senses": [{"glosses": ["light"]}]},
    {"word": "house", "pos": "noun", "senses": [{"glosses": ["not Greek"]}]},
]


@pytest.fixture
def data_file(tmp_path):
    path = tmp_path / "greek_data_el_20250101.jsonl"
    lines = [json.dumps({"lang": "Greek", "lang_code": "el", **record}, ensure_ascii=False) for record in RECORDS]
    lines.append("{broken")
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def _settings(data_file, tmp_path, **overrides):
    values = dict(
        source_lang="el",
        input_path=data_file,
        output_root=tmp_path / "out",
        download_date="20250101",
        convert=False,
    )
    values.update(overrides)
    return BuildSettings(**values)


def test_monolingual_build_splits_into_letter_parts(data_file, tmp_path):
    report = build(_settings(data_file, tmp_path))

    assert [bucket.label for bucket in report.buckets] == ["Α-Ε", "Ζ-Κ", "Λ-Ο", "Π-Υ", "Φ-Ω"]
    assert all(outcome.status == STATUS_OK for outcome in report.outcomes)
    assert not report.failed
    assert report.buckets[0].headwords == ["αγάπη", "λέω"]
    assert report.buckets[3].headwords == ["λέω", "πόλη"]
    assert report.aggregation.stats.malformed == 1
    assert report.aggregation.stats.rejected["no_target_script"] == 1
    assert report.aggregation.extraction_date == "2025-07-01"

    content = (report.outcomes[0].output.parent / "content.html").read_text(encoding="utf-8")
    assert '<idx:iform value="είπα" exact="yes" />' in content


def test_single_part_and_sampled_builds(data_file, tmp_path):
    single = build(_settings(data_file, tmp_path, part=3))
    assert [bucket.label for bucket in single.buckets] == ["Λ-Ο"]

    result = run_aggregation(_settings(data_file, tmp_path, limit_percent=40))
    assert result.stats.limit == 3
    assert result.table.headwords() == ["αγάπη", "λέω"]
    buckets = plan_buckets(result, _settings(data_file, tmp_path, limit_percent=40))
    assert [bucket.label for bucket in buckets] == ["40pct"]
    assert buckets[0].headwords == ["αγάπη"]


def test_english_build_is_one_volume(data_file, tmp_path):
    report = build(_settings(data_file, tmp_path, source_lang="en"))

    assert [bucket.label for bucket in report.buckets] == ["all"]
    assert report.outcomes[0].output.name == "lemma_greek_en_20250101.opf"


def test_failed_bucket_does_not_stop_the_others(data_file, tmp_path, monkeypatch):
    script = tmp_path / "fake_converter.py"
    script.write_text(
        "import pathlib, sys\n"
        "opf = pathlib.Path(sys.argv[1])\n"
        "if opf.stem.endswith('_alpha'):\n"
        "    sys.exit(4)\n"
        "opf.with_suffix('.mobi').write_text('mobi')\n",
        encoding="utf-8",
    )
    monkeypatch.setattr(
        converter_module,
        "converter_command",
        lambda converter, opf_path: [sys.executable, converter, opf_path.name],
    )

    report = build(_settings(data_file, tmp_path, convert=True, converter=str(script)))

    statuses = [outcome.status for outcome in report.outcomes]
    assert statuses == [STATUS_FAILED, STATUS_OK, STATUS_OK, STATUS_OK, STATUS_OK]
    assert report.failed
    assert (tmp_path / "dist" / "lemma_greek_el_20250101_zeta.mobi").is_file()
