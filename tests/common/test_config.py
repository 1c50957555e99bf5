import pathlib
import sys

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[2]
SRC_ROOT = PROJECT_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

import pytest

from lemma_dict.common.config import (
    DEFAULT_CONVERTER_TIMEOUT,
    BuildSettings,
    available_group_schemes,
    get_config_paths,
)


def test_config_paths_point_at_packaged_tables():
    paths = get_config_paths()
    for key in ("filters", "paradigms", "letter_groups"):
        assert paths[key].is_file()
    assert paths["dist_dir"] == pathlib.Path.cwd() / "dist"


def test_available_group_schemes():
    assert available_group_schemes() == {"five": 5, "twelve": 12}


def test_defaults_and_derived_values():
    settings = BuildSettings.from_env(source_lang="el", download_date="20250101")

    assert settings.converter_timeout == DEFAULT_CONVERTER_TIMEOUT
    assert settings.split
    assert settings.data_filename == "greek_data_el_20250101.jsonl"
    assert settings.resolved_input() == pathlib.Path.cwd() / "greek_data_el_20250101.jsonl"
    assert not BuildSettings(source_lang="el", limit_percent=5).split
    assert not BuildSettings(source_lang="en").split


def test_environment_and_dotenv_feed_settings(monkeypatch, tmp_path):
    env_file = tmp_path / "custom.env"
    env_file.write_text("LEMMA_GROUP_SCHEME=twelve\nLEMMA_CONVERTER=/opt/kp\n", encoding="utf-8")
    monkeypatch.setenv("LEMMA_CONVERTER_TIMEOUT", "12")

    settings = BuildSettings.from_env(dotenv_path=str(env_file), converter="/usr/bin/kp")

    assert settings.group_scheme == "twelve"
    assert settings.converter_timeout == 12.0
    assert settings.converter == "/usr/bin/kp"


def test_bad_timeout_in_environment(monkeypatch):
    monkeypatch.setenv("LEMMA_CONVERTER_TIMEOUT", "soon")
    with pytest.raises(ValueError, match="LEMMA_CONVERTER_TIMEOUT"):
        BuildSettings.from_env()


@pytest.mark.parametrize(
    "overrides",
    [
        {"source_lang": "fr"},
        {"limit_percent": 0},
        {"limit_percent": 150},
        {"converter_timeout": 0},
        {"group_scheme": "seven"},
        {"source_lang": "el", "part": 2, "limit_percent": 10},
        {"source_lang": "en", "part": 1},
        {"source_lang": "el", "part": 6},
        {"source_lang": "el", "part": 0},
    ],
)
def test_validate_rejects_bad_settings(overrides):
    with pytest.raises(ValueError):
        BuildSettings(**overrides).validate()


def test_validate_accepts_parts_of_larger_scheme():
    BuildSettings(source_lang="el", part=12, group_scheme="twelve").validate()
