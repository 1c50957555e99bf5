import pathlib
import sys

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[2]
SRC_ROOT = PROJECT_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

import httpx
import pytest

from lemma_dict.ingest.downloader import (
    KAIKKI_URLS,
    LOCAL_FALLBACK_FILES,
    MIRROR_URLS,
    download,
)

PAYLOAD = b'{"word": "\\u03bd\\u03b5\\u03c1\\u03cc"}\n'


def _client(ok_urls):
    def handler(request: httpx.Request) -> httpx.Response:
        if str(request.url) in ok_urls:
            return httpx.Response(200, content=PAYLOAD)
        return httpx.Response(404)

    return httpx.Client(transport=httpx.MockTransport(handler))


def test_primary_download(tmp_path):
    with _client({KAIKKI_URLS["el"]}) as client:
        result = download("el", "20250101", work_dir=tmp_path, client=client)

    assert result.source == "kaikki"
    assert result.path == tmp_path / "greek_data_el_20250101.jsonl"
    assert result.path.read_bytes() == PAYLOAD
    assert not list(tmp_path.glob("*.part"))


def test_existing_file_is_reused(tmp_path):
    existing = tmp_path / "greek_data_en_20250101.jsonl"
    existing.write_text("{}\n", encoding="utf-8")

    with _client(set()) as client:
        result = download("en", "20250101", work_dir=tmp_path, client=client)

    assert result.source == "existing"
    assert existing.read_text(encoding="utf-8") == "{}\n"


def test_local_fallback_keeps_its_own_date(tmp_path):
    local = tmp_path / LOCAL_FALLBACK_FILES["en"]
    local.write_text("{}\n", encoding="utf-8")

    with _client(set()) as client:
        result = download("en", "20250101", work_dir=tmp_path, client=client)

    assert result.source == "local"
    assert result.path == local
    assert result.download_date == "20250716"


def test_mirror_is_last_resort(tmp_path):
    with _client({MIRROR_URLS["el"]}) as client:
        result = download("el", "20250101", work_dir=tmp_path, client=client)

    assert result.source == "mirror"
    assert result.download_date == "20250717"
    assert result.path.name == "greek_data_el_20250717.jsonl"


def test_all_sources_failing_raises(tmp_path):
    with _client(set()) as client:
        with pytest.raises(RuntimeError, match="manually"):
            download("el", "20250101", work_dir=tmp_path, client=client)
    assert not list(tmp_path.iterdir())


def test_unknown_language_is_rejected(tmp_path):
    with pytest.raises(ValueError):
        download("fr", "20250101", work_dir=tmp_path)
