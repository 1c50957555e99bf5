import os

import pytest

LEMMA_ENV_VARS = (
    "LEMMA_OUTPUT_DIR",
    "LEMMA_CONVERTER",
    "LEMMA_CONVERTER_TIMEOUT",
    "LEMMA_GROUP_SCHEME",
)


@pytest.fixture(autouse=True)
def clean_lemma_env(monkeypatch, tmp_path):
    """Keep builds isolated from the developer's shell and .env files."""
    for name in LEMMA_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    yield
    # load_dotenv writes straight into os.environ
    for name in LEMMA_ENV_VARS:
        os.environ.pop(name, None)
