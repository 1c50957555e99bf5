"""Decide which raw records belong in the Greek dictionary."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from lemma_dict.common.config import get_config_paths
from lemma_dict.lexicon.normalizer import (
    has_foreign_script,
    has_target_script,
    is_bound_morpheme,
)

from .records import RawRecord


@dataclass(frozen=True)
class FilterConfig:
    language_names: frozenset[str]
    language_codes: frozenset[str]
    latin_exceptions: frozenset[str]
    single_letter_words: frozenset[str]
    pos_denylist: tuple[str, ...]

    @classmethod
    def load(cls, path: Path | None = None) -> "FilterConfig":
        path = path or get_config_paths()["filters"]
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        return cls(
            language_names=frozenset(str(v) for v in data.get("language_names", [])),
            language_codes=frozenset(str(v) for v in data.get("language_codes", [])),
            latin_exceptions=frozenset(str(v) for v in data.get("latin_exceptions", [])),
            single_letter_words=frozenset(
                str(v).lower() for v in data.get("single_letter_words", [])
            ),
            pos_denylist=tuple(
                str(v).strip().lower() for v in data.get("pos_denylist", []) if v
            ),
        )


class RecordFilter:
    """Pure predicate over raw records; see :meth:`rejection_reason`."""

    def __init__(self, config: FilterConfig | None = None) -> None:
        self.config = config or FilterConfig.load()

    def accept(self, record: RawRecord) -> bool:
        return self.rejection_reason(record) is None

    def rejection_reason(self, record: RawRecord) -> Optional[str]:
        if not self.matches_language(record):
            return "language"
        word = record.word
        if not word:
            return "no_word"
        if not has_target_script(word):
            return "no_target_script"
        if self.has_disallowed_script(word):
            return "foreign_script"
        if self.is_denied_pos(record.part_of_speech):
            return "pos"
        if is_bound_morpheme(word):
            return "bound_morpheme"
        if len(word) == 1 and word.lower() not in self.config.single_letter_words:
            return "single_letter"
        return None

    def matches_language(self, record: RawRecord) -> bool:
        return (
            record.lang in self.config.language_names
            or record.lang_code in self.config.language_codes
        )

    def has_disallowed_script(self, word: str) -> bool:
        if word in self.config.latin_exceptions:
            return False
        return has_foreign_script(word)

    def is_denied_pos(self, pos: str) -> bool:
        label = pos.lower()
        return any(denied in label for denied in self.config.pos_denylist)
