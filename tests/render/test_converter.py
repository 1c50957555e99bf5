import pathlib
import sys

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[2]
SRC_ROOT = PROJECT_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

import pytest

from lemma_dict.render.converter import (
    STATUS_FAILED,
    STATUS_OK,
    STATUS_SKIPPED,
    STATUS_TIMEOUT,
    copy_to_dist,
    find_converter,
    run_converter,
)


@pytest.fixture
def opf_path(tmp_path):
    path = tmp_path / "book" / "book.opf"
    path.parent.mkdir()
    path.write_text("<package />", encoding="utf-8")
    return path


def test_successful_conversion(opf_path):
    outcome = run_converter(
        "Α-Ε",
        opf_path,
        converter=sys.executable,
        timeout=30,
        command=[sys.executable, "-c", "open('book.mobi', 'w').write('mobi')"],
    )

    assert outcome.status == STATUS_OK
    assert outcome.output == opf_path.with_suffix(".mobi")
    assert not outcome.failed
    assert outcome.as_record()["output"] == str(opf_path.with_suffix(".mobi"))


def test_nonzero_exit_is_a_failure(opf_path):
    outcome = run_converter(
        "Α-Ε",
        opf_path,
        converter=sys.executable,
        timeout=30,
        command=[sys.executable, "-c", "import sys; print('bad opf', file=sys.stderr); sys.exit(3)"],
    )

    assert outcome.status == STATUS_FAILED
    assert outcome.message == "Exit code 3: bad opf"
    assert outcome.failed


def test_missing_output_is_a_failure(opf_path):
    outcome = run_converter(
        "Α-Ε", opf_path, converter=sys.executable, timeout=30, command=[sys.executable, "-c", "pass"]
    )
    assert outcome.status == STATUS_FAILED


def test_slow_converter_times_out(opf_path):
    outcome = run_converter(
        "Α-Ε",
        opf_path,
        converter=sys.executable,
        timeout=0.5,
        command=[sys.executable, "-c", "import time; time.sleep(10)"],
    )

    assert outcome.status == STATUS_TIMEOUT
    assert outcome.failed


def test_missing_converter_is_skipped(opf_path):
    outcome = run_converter("Α-Ε", opf_path, converter=None, timeout=30)

    assert outcome.status == STATUS_SKIPPED
    assert not outcome.failed


def test_find_converter(tmp_path):
    assert find_converter(sys.executable) == sys.executable
    assert find_converter(str(tmp_path / "no-such-converter")) is None


def test_copy_to_dist(tmp_path):
    output = tmp_path / "book.mobi"
    output.write_text("mobi", encoding="utf-8")

    target = copy_to_dist(output, tmp_path / "dist")

    assert target == tmp_path / "dist" / "book.mobi"
    assert target.read_text(encoding="utf-8") == "mobi"
