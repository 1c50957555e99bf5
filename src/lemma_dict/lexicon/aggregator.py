"""Merge per-sense Wiktionary records into per-headword dictionary entries.

Records arrive one sense group at a time. Each accepted record either
contributes definitions to the ``(headword, pos)`` entry it names, or, when
its senses only point at another lemma ("form of ..."), contributes its
surface form to that lemma's inflections. Pointers are collected in a
separate :class:`LemmaInflectionMap` and resolved once, in
:meth:`EntryAggregator.finalize`, after the whole stream has been read.
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Optional

from lemma_dict.ingest.record_filter import RecordFilter
from lemma_dict.ingest.records import RawRecord, Sense

from .normalizer import case_variants, has_foreign_script, is_bound_morpheme
from .paradigms import ParadigmTable

logger = logging.getLogger(__name__)

PLACEHOLDER_DEFINITION = "No definition available"


@dataclass
class HeadwordEntry:
    headword: str
    pos: str
    definitions: list[str] = field(default_factory=list)
    etymology: Optional[str] = None
    inflections: list[str] = field(default_factory=list)
    expanded_from_paradigm: bool = False
    _definition_set: set[str] = field(default_factory=set, init=False, repr=False, compare=False)
    _inflection_set: set[str] = field(default_factory=set, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        definitions, self.definitions = self.definitions, []
        inflections, self.inflections = self.inflections, []
        self.add_definitions(definitions)
        self.add_inflections(inflections)
        if self.etymology is not None and not self.etymology.strip():
            self.etymology = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.headword, self.pos)

    @property
    def has_placeholder(self) -> bool:
        return self.definitions == [PLACEHOLDER_DEFINITION]

    def add_definitions(self, definitions: Iterable[str]) -> None:
        """Union definitions in first-seen order.

        The placeholder is only ever the sole definition: it is added to an
        empty entry and dropped once a real definition arrives.
        """
        real = [d for d in definitions if d and d != PLACEHOLDER_DEFINITION]
        if not real:
            if not self.definitions:
                self.definitions.append(PLACEHOLDER_DEFINITION)
                self._definition_set.add(PLACEHOLDER_DEFINITION)
            return
        if self.has_placeholder:
            self.definitions.clear()
            self._definition_set.clear()
        for definition in real:
            if definition not in self._definition_set:
                self._definition_set.add(definition)
                self.definitions.append(definition)

    def add_inflections(self, forms: Iterable[str]) -> int:
        added = 0
        for form in forms:
            if not form or form == self.headword or form in self._inflection_set:
                continue
            self._inflection_set.add(form)
            self.inflections.append(form)
            added += 1
        return added

    def set_etymology(self, text: Optional[str]) -> None:
        if self.etymology is None and text and text.strip():
            self.etymology = text.strip()

    def merge(self, other: "HeadwordEntry") -> None:
        if other.key != self.key:
            raise ValueError(f"Cannot merge {other.key} into {self.key}")
        self.add_definitions(other.definitions)
        self.add_inflections(other.inflections)
        self.set_etymology(other.etymology)
        self.expanded_from_paradigm = self.expanded_from_paradigm or other.expanded_from_paradigm


class HeadwordTable:
    """``headword -> pos -> HeadwordEntry``; read-only once frozen."""

    def __init__(self) -> None:
        self._entries: dict[str, dict[str, HeadwordEntry]] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        self._frozen = True

    def merge(self, entry: HeadwordEntry) -> HeadwordEntry:
        if self._frozen:
            raise RuntimeError("Headword table is frozen")
        by_pos = self._entries.setdefault(entry.headword, {})
        existing = by_pos.get(entry.pos)
        if existing is None:
            by_pos[entry.pos] = entry
            return entry
        existing.merge(entry)
        return existing

    def get(self, headword: str, pos: str) -> Optional[HeadwordEntry]:
        return self._entries.get(headword, {}).get(pos)

    def entries_for(self, headword: str) -> list[HeadwordEntry]:
        return list(self._entries.get(headword, {}).values())

    def headwords(self) -> list[str]:
        return list(self._entries)

    def items(self) -> Iterator[tuple[str, list[HeadwordEntry]]]:
        for headword, by_pos in self._entries.items():
            yield headword, list(by_pos.values())

    def entries(self) -> Iterator[HeadwordEntry]:
        for by_pos in self._entries.values():
            yield from by_pos.values()

    def inflections_of(self, headword: str) -> list[str]:
        """All inflections of ``headword`` across its parts of speech."""
        seen: dict[str, None] = {}
        for entry in self.entries_for(headword):
            seen.update(dict.fromkeys(entry.inflections))
        return list(seen)

    @property
    def entry_count(self) -> int:
        return sum(len(by_pos) for by_pos in self._entries.values())

    @property
    def inflection_count(self) -> int:
        return sum(len(entry.inflections) for entry in self.entries())

    def __contains__(self, headword: object) -> bool:
        return headword in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


class LemmaInflectionMap:
    """``lemma -> inflected surface forms`` gathered from pointer senses.

    The lemma may never receive an entry of its own; such mappings are kept
    but have no effect on the output.
    """

    def __init__(self) -> None:
        self._forms: dict[str, dict[str, None]] = {}

    def add(self, lemma: str, form: str) -> None:
        if not lemma or not form:
            return
        forms = self._forms.setdefault(lemma, {})
        forms[form] = None
        for variant in case_variants(form):
            forms[variant] = None

    def forms(self, lemma: str) -> list[str]:
        return list(self._forms.get(lemma, {}))

    def items(self) -> Iterator[tuple[str, list[str]]]:
        for lemma, forms in self._forms.items():
            yield lemma, list(forms)

    def unresolved(self, table: HeadwordTable) -> list[str]:
        return [lemma for lemma in self._forms if lemma not in table]

    def __contains__(self, lemma: object) -> bool:
        return lemma in self._forms

    def __len__(self) -> int:
        return len(self._forms)


@dataclass
class AggregationStats:
    lines: int = 0
    malformed: int = 0
    records: int = 0
    accepted: int = 0
    ingested: int = 0
    rejected: Counter = field(default_factory=Counter)
    pointer_records: int = 0
    paradigm_expansions: int = 0
    placeholder_entries: int = 0
    headwords: int = 0
    entries: int = 0
    inflections: int = 0
    unresolved_lemmas: int = 0
    limit: Optional[int] = None
    truncated: bool = False


def extract_definition(sense: Sense) -> str:
    """Definition text of a sense, ``""`` when it has none.

    Glosses win over raw glosses; raw tags become a bracketed label.
    """
    glosses = [g.strip() for g in sense.glosses if g and g.strip()]
    if not glosses:
        glosses = [g.strip() for g in sense.raw_glosses if g and g.strip()]
    if not glosses:
        return ""
    definition = "; ".join(glosses)
    tags = [t.strip() for t in sense.raw_tags if t and t.strip()]
    if tags:
        definition = f"[{', '.join(tags)}] {definition}"
    return definition.strip()


def _usable_form(form: Optional[str], word: str) -> bool:
    if not form or not form.strip() or form == word:
        return False
    return not has_foreign_script(form) and not is_bound_morpheme(form)


def collect_inflections(
    record: RawRecord, word: str, paradigms: Optional[ParadigmTable] = None
) -> tuple[list[str], bool]:
    """Gather inflections from forms, related words and paradigm fallback.

    Returns the forms (without case variants) and whether any of them came
    from paradigm expansion.
    """
    explicit: dict[str, None] = {}
    for form in record.forms:
        if "romanization" in form.tags:
            continue
        candidate = (form.form or "").strip()
        if _usable_form(candidate, word):
            explicit[candidate] = None

    collected = dict(explicit)
    for related in record.related:
        candidate = (related.word or "").strip()
        if _usable_form(candidate, word):
            collected[candidate] = None

    expanded = False
    if paradigms is not None and not explicit:
        for name in record.template_names():
            if not paradigms.is_declension_template(name):
                continue
            for candidate in paradigms.expand(word, name):
                if candidate in collected or not _usable_form(candidate, word):
                    continue
                collected[candidate] = None
                expanded = True

    return list(collected), expanded


def with_case_variants(word: str, forms: Iterable[str]) -> list[str]:
    """``forms`` plus capitalisation variants of each form and of ``word``."""
    out: dict[str, None] = {}
    for form in forms:
        out[form] = None
        out.update(dict.fromkeys(case_variants(form)))
    out.update(dict.fromkeys(case_variants(word)))
    out.pop(word, None)
    return list(out)


class EntryAggregator:
    """Single-pass accumulator of headword entries and lemma pointers."""

    def __init__(self, paradigms: Optional[ParadigmTable] = None) -> None:
        self.paradigms = paradigms
        self.table = HeadwordTable()
        self.lemma_inflections = LemmaInflectionMap()
        self.stats = AggregationStats()
        self._finalized = False

    def ingest(self, record: RawRecord) -> Optional[HeadwordEntry]:
        """Fold one accepted record into the table.

        Returns the entry it was merged into, or ``None`` for records that
        only point at another lemma.
        """
        if self._finalized:
            raise RuntimeError("Aggregator already finalized")
        word = (record.word or "").strip()
        if not word:
            return None
        self.stats.ingested += 1

        definitions: list[str] = []
        pointers = 0
        for sense in record.senses:
            lemma = sense.pointer_target()
            if lemma:
                self.lemma_inflections.add(lemma, word)
                pointers += 1
                continue
            definition = extract_definition(sense)
            if definition:
                definitions.append(definition)

        if pointers and not definitions:
            self.stats.pointer_records += 1
            return None

        forms, expanded = collect_inflections(record, word, self.paradigms)
        if expanded:
            self.stats.paradigm_expansions += 1

        entry = HeadwordEntry(
            headword=word,
            pos=record.part_of_speech,
            definitions=definitions or [PLACEHOLDER_DEFINITION],
            etymology=record.etymology_text,
            inflections=with_case_variants(word, forms),
            expanded_from_paradigm=expanded,
        )
        return self.table.merge(entry)

    def finalize(self) -> tuple[HeadwordTable, LemmaInflectionMap]:
        """Resolve lemma pointers into entries and freeze the table."""
        if self._finalized:
            return self.table, self.lemma_inflections

        for lemma, forms in self.lemma_inflections.items():
            entries = self.table.entries_for(lemma)
            if not entries:
                continue
            usable = [form for form in forms if not is_bound_morpheme(form)]
            for entry in entries:
                entry.add_inflections(usable)

        self.table.freeze()
        self._finalized = True

        stats = self.stats
        stats.headwords = len(self.table)
        stats.entries = self.table.entry_count
        stats.inflections = self.table.inflection_count
        stats.placeholder_entries = sum(1 for e in self.table.entries() if e.has_placeholder)
        stats.unresolved_lemmas = len(self.lemma_inflections.unresolved(self.table))
        logger.info(
            "Aggregated %d headwords (%d entries, %d inflections)",
            stats.headwords,
            stats.entries,
            stats.inflections,
            extra={
                "lemma_mappings": len(self.lemma_inflections),
                "unresolved_lemmas": stats.unresolved_lemmas,
                "placeholder_entries": stats.placeholder_entries,
            },
        )
        return self.table, self.lemma_inflections


@dataclass
class AggregationResult:
    table: HeadwordTable
    lemma_inflections: LemmaInflectionMap
    stats: AggregationStats
    extraction_date: Optional[str] = None


def sample_size(total: int, percent: Optional[float]) -> Optional[int]:
    """``ceil(total * percent / 100)``; never zero for a non-empty total."""
    if percent is None:
        return None
    if total <= 0:
        return 0
    return max(1, math.ceil(total * percent / 100.0))


def aggregate(
    records: Iterable[RawRecord],
    *,
    record_filter: Optional[RecordFilter] = None,
    paradigms: Optional[ParadigmTable] = None,
    limit_percent: Optional[float] = None,
) -> AggregationResult:
    """Filter and aggregate a record stream into a frozen headword table.

    With ``limit_percent`` the stream is read twice: once to count the
    records the filter accepts, once to ingest the first share of them, so
    the sample size does not depend on how many raw lines were rejected.
    ``records`` must therefore be re-iterable in that case.
    """
    record_filter = record_filter or RecordFilter()
    aggregator = EntryAggregator(paradigms)
    stats = aggregator.stats

    if limit_percent is not None:
        total = sum(1 for record in records if record_filter.accept(record))
        stats.limit = sample_size(total, limit_percent)
        logger.info(
            "Sampling %s of %d accepted records (%s%%)",
            stats.limit,
            total,
            limit_percent,
        )

    for record in records:
        stats.records += 1
        reason = record_filter.rejection_reason(record)
        if reason is not None:
            stats.rejected[reason] += 1
            continue
        if stats.limit is not None and stats.accepted >= stats.limit:
            stats.truncated = True
            logger.info("Reached sampling limit of %d records", stats.limit)
            break
        stats.accepted += 1
        aggregator.ingest(record)

    read_stats = getattr(records, "stats", None)
    if read_stats is not None:
        stats.lines = read_stats.lines
        stats.malformed = read_stats.malformed

    table, lemma_map = aggregator.finalize()
    return AggregationResult(
        table=table,
        lemma_inflections=lemma_map,
        stats=stats,
        extraction_date=getattr(records, "extraction_date", None),
    )
