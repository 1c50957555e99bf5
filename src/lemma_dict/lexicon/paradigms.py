"""Fallback inflection of lemmas from named declension patterns."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping

import yaml

from lemma_dict.common.config import get_config_paths

logger = logging.getLogger(__name__)

_VARIANT_SUFFIX_RE = re.compile(r"-\d+[a-z]?$")


@dataclass(frozen=True)
class SuffixRule:
    strip: str
    append: tuple[str, ...]

    def applies_to(self, lemma: str) -> bool:
        return len(lemma) > len(self.strip) and lemma.endswith(self.strip)

    def forms(self, lemma: str) -> list[str]:
        stem = lemma[: len(lemma) - len(self.strip)] if self.strip else lemma
        return [stem + suffix for suffix in self.append]


@dataclass(frozen=True)
class ParadigmTable:
    """Read-only table of named paradigms, each an ordered list of suffix rules."""

    paradigms: Mapping[str, tuple[SuffixRule, ...]] = field(default_factory=dict)

    @classmethod
    def load(cls, path: Path | None = None) -> "ParadigmTable":
        path = path or get_config_paths()["paradigms"]
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        return cls.from_mapping(data.get("paradigms") or {})

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Iterable[Mapping[str, object]]]) -> "ParadigmTable":
        table: dict[str, tuple[SuffixRule, ...]] = {}
        for name, rules in raw.items():
            parsed = []
            for rule in rules or []:
                strip = str(rule.get("strip") or "")
                append = tuple(str(suffix) for suffix in rule.get("append") or [] if suffix)
                if not append:
                    logger.warning("Paradigm %s has a rule without suffixes; ignoring it", name)
                    continue
                parsed.append(SuffixRule(strip=strip, append=append))
            if parsed:
                table[str(name)] = tuple(parsed)
        logger.debug("Loaded %d paradigms", len(table))
        return cls(paradigms=table)

    def resolve(self, name: str | None) -> str | None:
        """Return the table key for a template name, or ``None`` if unknown.

        Numbered variants such as ``el-nM-ος-οι-2b`` resolve to their base pattern.
        """
        if not name:
            return None
        name = name.strip()
        if name in self.paradigms:
            return name
        base = _VARIANT_SUFFIX_RE.sub("", name)
        if base != name and base in self.paradigms:
            return base
        return None

    def is_declension_template(self, name: str | None) -> bool:
        return self.resolve(name) is not None

    def expand(self, lemma: str, paradigm_name: str) -> list[str]:
        """Surface forms of ``lemma`` under ``paradigm_name``.

        Forms are de-duplicated in rule order. Unknown paradigms, and lemmas
        no rule of the paradigm fits, give an empty list.
        """
        key = self.resolve(paradigm_name)
        if key is None or not lemma:
            return []
        for rule in self.paradigms[key]:
            if rule.applies_to(lemma):
                return list(dict.fromkeys(rule.forms(lemma)))
        logger.debug("No %s rule fits lemma %r", key, lemma)
        return []
