from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path

import yaml
from dotenv import find_dotenv, load_dotenv

SOURCE_LANGUAGES = ("en", "el")
DEFAULT_GROUP_SCHEME = "five"
DEFAULT_CONVERTER_TIMEOUT = 1800.0
MAX_RENDERED_INFLECTIONS = 50
MAX_MONOLINGUAL_DEFINITIONS = 5


def get_config_paths() -> dict[str, Path]:
    """Return canonical on-disk locations for configuration tables and artifacts."""

    package_dir = Path(__file__).resolve().parents[1]
    data_dir = package_dir / "data"
    work_dir = Path.cwd()

    return {
        "data_dir": data_dir,
        "filters": data_dir / "filters.yaml",
        "paradigms": data_dir / "paradigms.yaml",
        "letter_groups": data_dir / "letter_groups.yaml",
        "work_dir": work_dir,
        "output_dir": work_dir / "build",
        "dist_dir": work_dir / "dist",
    }


def available_group_schemes(path: Path | None = None) -> dict[str, int]:
    """Map each configured letter group scheme to its number of parts."""
    path = path or get_config_paths()["letter_groups"]
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    return {
        str(name): len(groups or [])
        for name, groups in (data.get("schemes") or {}).items()
    }


def _env_float(name: str) -> float | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


@dataclass
class BuildSettings:
    """Parameters for one dictionary build, owned by the command line layer."""

    source_lang: str = "en"
    input_path: Path | None = None
    output_root: Path = field(default_factory=lambda: get_config_paths()["output_dir"])
    download_date: str = field(default_factory=lambda: date.today().strftime("%Y%m%d"))
    limit_percent: float | None = None
    part: int | None = None
    group_scheme: str = DEFAULT_GROUP_SCHEME
    converter: str | None = None
    converter_timeout: float = DEFAULT_CONVERTER_TIMEOUT
    convert: bool = True
    max_inflections: int = MAX_RENDERED_INFLECTIONS
    max_definitions: int = MAX_MONOLINGUAL_DEFINITIONS

    @classmethod
    def from_env(cls, *, dotenv_path: str | None = None, **overrides: object) -> "BuildSettings":
        """Build settings from ``.env``/environment, letting non-None overrides win."""
        env_file = dotenv_path or find_dotenv(usecwd=True)
        if env_file:
            load_dotenv(env_file, override=False)

        values: dict[str, object] = {}
        if os.getenv("LEMMA_OUTPUT_DIR"):
            values["output_root"] = Path(os.environ["LEMMA_OUTPUT_DIR"]).expanduser()
        if os.getenv("LEMMA_CONVERTER"):
            values["converter"] = os.environ["LEMMA_CONVERTER"]
        if os.getenv("LEMMA_GROUP_SCHEME"):
            values["group_scheme"] = os.environ["LEMMA_GROUP_SCHEME"].strip()
        timeout = _env_float("LEMMA_CONVERTER_TIMEOUT")
        if timeout is not None:
            values["converter_timeout"] = timeout

        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)  # type: ignore[arg-type]

    @property
    def split(self) -> bool:
        """Monolingual builds are split into letter parts unless sampling."""
        return self.source_lang == "el" and self.limit_percent is None

    @property
    def data_filename(self) -> str:
        return f"greek_data_{self.source_lang}_{self.download_date}.jsonl"

    def resolved_input(self) -> Path:
        return Path(self.input_path) if self.input_path else Path.cwd() / self.data_filename

    def validate(self, schemes: dict[str, int] | None = None) -> None:
        """Reject misconfigured builds before any record is read."""
        if self.source_lang not in SOURCE_LANGUAGES:
            raise ValueError(
                f"Source language must be one of {', '.join(SOURCE_LANGUAGES)}, got {self.source_lang!r}"
            )
        if self.limit_percent is not None and not (0 < self.limit_percent <= 100):
            raise ValueError(f"Limit must be in (0, 100], got {self.limit_percent}")
        if self.converter_timeout <= 0:
            raise ValueError(f"Converter timeout must be positive, got {self.converter_timeout}")

        schemes = schemes if schemes is not None else available_group_schemes()
        if self.group_scheme not in schemes:
            raise ValueError(
                f"Unknown letter group scheme {self.group_scheme!r}; expected one of {sorted(schemes)}"
            )
        if self.part is None:
            return
        if self.limit_percent is not None:
            raise ValueError("A part cannot be combined with a sampling limit")
        if self.source_lang != "el":
            raise ValueError("Parts can only be built for the Greek source (el)")
        total = schemes[self.group_scheme]
        if not (1 <= self.part <= total):
            raise ValueError(f"Part must be between 1 and {total}, got {self.part}")
